"""
Estimate Parser - classifies free-text estimate lines into repair operations.

Each line is checked against an ignore set (scans, notes, totals, headers),
then tagged with an operation type and a component category. Lines that
yield neither are dropped. Surviving operations are deduplicated on
(category, operation, side, position), first occurrence wins.

Category detection runs two passes: specific patterns in table order, then
side-agnostic fallbacks (generic mirror, generic headlamp) only when no
specific pattern matched.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from loguru import logger

from adas_scrub.src.models import (
    Component,
    EstimateVehicleInfo,
    Location,
    OperationType,
    ParsedEstimate,
    Position,
    RepairCategory,
    RepairOperation,
    RepairSummary,
    Side,
)

MIN_LINE_LENGTH = 3
DESCRIPTION_LENGTH = 80

_I = re.IGNORECASE

LEFT = r"(?:left|lt|lh|driver)"
RIGHT = r"(?:right|rt|rh|passenger)"
FRONT = r"(?:front|fr|frt)"
REAR = r"(?:rear|rr|back)"

_REAR_TOKEN = re.compile(r"\b(?:rear|rr|back)\b", _I)
_MIRROR_TOKEN = re.compile(r"\bmirror", _I)


def _no_rear(line: str) -> bool:
    return not _REAR_TOKEN.search(line)


def _has_rear(line: str) -> bool:
    return bool(_REAR_TOKEN.search(line))


def _no_mirror(line: str) -> bool:
    return not _MIRROR_TOKEN.search(line)


@dataclass(frozen=True)
class ComponentPattern:
    """Patterns for one repair category, with an optional context guard."""
    category: RepairCategory
    patterns: list[str]
    guard: Optional[Callable[[str], bool]] = None
    fallback_only: bool = False
    compiled: list[re.Pattern] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "compiled", [re.compile(p, _I) for p in self.patterns])

    def match(self, line: str) -> Optional[str]:
        for pattern in self.compiled:
            m = pattern.search(line)
            if m:
                if self.guard and not self.guard(line):
                    return None
                return m.group(0)
        return None


OPERATION_PATTERNS: list[tuple[OperationType, re.Pattern]] = [
    (OperationType.REPLACE, re.compile(r"\brepl(?:ace(?:d|ment)?)?\b|\brplc\b", _I)),
    (OperationType.REMOVE_REPLACE, re.compile(r"\br\s?[/&]\s?r\b|\bremove\s*(?:and|&)\s*replace\b", _I)),
    (OperationType.REMOVE_INSTALL, re.compile(r"\br\s?[/&]\s?i\b|\bremove\s*(?:and|&)\s*(?:re)?install\b", _I)),
    (OperationType.REPAIR, re.compile(r"\brpr\b|\brepair\b", _I)),
    (OperationType.REFINISH, re.compile(r"\brefn\b|\brefinish(?:ed)?\b|\bpaint(?:ed)?\b|\bblend(?:ed)?\b", _I)),
    (OperationType.AIM, re.compile(r"\baim(?:ing)?\b|\badjust(?:ment)?\b", _I)),
    (OperationType.ALIGNMENT, re.compile(r"\b(?:4[\s-]?wheel\s*)?align(?:ment)?\b", _I)),
    (OperationType.PROGRAM, re.compile(r"\bprogram(?:ming)?\b|\bflash\b|\bsetup\b", _I)),
    (OperationType.SECTIONING, re.compile(r"\bsection(?:ing)?\b", _I)),
]

SUSPENSION_PART = r"(?:lower\s*|upper\s*)?(?:strut|shock|coil\s*spring|spring|(?:control|suspension|trailing)\s*arm|knuckle|sway\s*bar|stabilizer)"

COMPONENT_PATTERNS: list[ComponentPattern] = [
    ComponentPattern(RepairCategory.WINDSHIELD, [
        r"windshield",
        r"front\s*glass",
        r"laminated\s*(?:front\s*)?glass",
        r"\bw/s(?:\s|$)",
    ]),
    ComponentPattern(RepairCategory.REAR_GLASS, [
        r"rear\s*(?:window|glass)",
        r"back\s*(?:window|glass)",
        r"liftgate\s*glass",
        r"tailgate\s*glass",
    ]),
    ComponentPattern(RepairCategory.FRONT_BUMPER, [
        rf"\b{FRONT}\s*bumper",
        rf"bumper\s*(?:cover|fascia|assembly|assy)\s*{FRONT}\b",
    ]),
    ComponentPattern(RepairCategory.REAR_BUMPER, [
        rf"\b{REAR}\s*bumper",
        rf"bumper\s*(?:cover|fascia|assembly|assy)\s*(?:rear|rr)\b",
    ]),
    # Unqualified "bumper": rear when a rear token appears anywhere, else front
    ComponentPattern(RepairCategory.REAR_BUMPER, [r"\bbumper"], guard=_has_rear),
    ComponentPattern(RepairCategory.FRONT_BUMPER, [r"\bbumper"], guard=_no_rear),
    ComponentPattern(RepairCategory.GRILLE, [
        r"(?:front\s*)?grille",
        r"radiator\s*grille",
    ]),
    ComponentPattern(RepairCategory.SIDE_MIRROR_LEFT, [
        rf"\b{LEFT}\s*(?:front\s*)?(?:side\s*|door\s*)?mirror",
        rf"mirror\s*(?:assy|assembly)?\s*{LEFT}\b",
    ]),
    ComponentPattern(RepairCategory.SIDE_MIRROR_RIGHT, [
        rf"\b{RIGHT}\s*(?:front\s*)?(?:side\s*|door\s*)?mirror",
        rf"mirror\s*(?:assy|assembly)?\s*{RIGHT}\b",
    ]),
    ComponentPattern(RepairCategory.SIDE_MIRROR, [
        r"(?:side|door|exterior)\s*mirror",
        r"mirror\s*(?:base|housing|glass|cap)",
    ], fallback_only=True),
    ComponentPattern(RepairCategory.LIFTGATE, [
        r"lift\s*gate",
        r"rear\s*hatch",
        r"hatchback\s*(?:door|panel)",
    ]),
    ComponentPattern(RepairCategory.TAILGATE, [
        r"tail\s*gate",
        r"pickup\s*(?:bed\s*)?gate",
    ]),
    ComponentPattern(RepairCategory.HOOD, [
        r"\bhood\b",
        r"engine\s*hood",
    ]),
    ComponentPattern(RepairCategory.QUARTER_PANEL_LEFT, [
        rf"\b{LEFT}\s*(?:rear\s*)?quarter\s*panel",
        rf"quarter\s*panel\s*{LEFT}\b",
    ]),
    ComponentPattern(RepairCategory.QUARTER_PANEL_RIGHT, [
        rf"\b{RIGHT}\s*(?:rear\s*)?quarter\s*panel",
        rf"quarter\s*panel\s*{RIGHT}\b",
    ]),
    ComponentPattern(RepairCategory.DOOR_FRONT_LEFT, [
        rf"\b{LEFT}\s*{FRONT}\s*door",
        rf"\b{FRONT}\s*door\s*(?:shell|skin|panel|assy|assembly)?\s*{LEFT}\b",
    ], guard=_no_mirror),
    ComponentPattern(RepairCategory.DOOR_FRONT_RIGHT, [
        rf"\b{RIGHT}\s*{FRONT}\s*door",
        rf"\b{FRONT}\s*door\s*(?:shell|skin|panel|assy|assembly)?\s*{RIGHT}\b",
    ], guard=_no_mirror),
    ComponentPattern(RepairCategory.DOOR_REAR_LEFT, [
        rf"\b{LEFT}\s*(?:rear|rr)\s*door",
        rf"\b(?:rear|rr)\s*door\s*(?:shell|skin|panel|assy|assembly)?\s*{LEFT}\b",
    ], guard=_no_mirror),
    ComponentPattern(RepairCategory.DOOR_REAR_RIGHT, [
        rf"\b{RIGHT}\s*(?:rear|rr)\s*door",
        rf"\b(?:rear|rr)\s*door\s*(?:shell|skin|panel|assy|assembly)?\s*{RIGHT}\b",
    ], guard=_no_mirror),
    ComponentPattern(RepairCategory.HEADLAMP_LEFT, [
        rf"\b{LEFT}\s*headl(?:amp|ight)",
        rf"headl(?:amp|ight)\s*(?:assy|assembly)?\s*{LEFT}\b",
    ]),
    ComponentPattern(RepairCategory.HEADLAMP_RIGHT, [
        rf"\b{RIGHT}\s*headl(?:amp|ight)",
        rf"headl(?:amp|ight)\s*(?:assy|assembly)?\s*{RIGHT}\b",
    ]),
    ComponentPattern(RepairCategory.HEADLAMP, [r"headl(?:amp|ight)"], fallback_only=True),
    ComponentPattern(RepairCategory.TAIL_LAMP_LEFT, [
        rf"\b{LEFT}\s*tail\s*l(?:amp|ight)",
        rf"tail\s*l(?:amp|ight)\s*{LEFT}\b",
    ]),
    ComponentPattern(RepairCategory.TAIL_LAMP_RIGHT, [
        rf"\b{RIGHT}\s*tail\s*l(?:amp|ight)",
        rf"tail\s*l(?:amp|ight)\s*{RIGHT}\b",
    ]),
    ComponentPattern(RepairCategory.FRONT_CAMERA, [
        r"(?:front|forward|fwd)\s*camera",
        r"(?:adas|sensing|eyesight)\s*camera",
        r"lane\s*(?:departure|keep)\s*camera",
        r"camera\s*(?:bracket|mount)\s*(?:front|windshield)",
    ]),
    ComponentPattern(RepairCategory.REAR_CAMERA, [
        r"(?:rear|back(?:up)?|reverse)\s*camera",
        r"camera\s*(?:rear|back)\b",
    ]),
    ComponentPattern(RepairCategory.SURROUND_CAMERA, [
        r"surround\s*(?:view)?\s*camera",
        r"360\s*(?:degree)?\s*camera",
        r"around\s*view\s*(?:monitor)?\s*camera",
        r"bird(?:'?s)?\s*eye\s*camera",
    ]),
    ComponentPattern(RepairCategory.FRONT_RADAR, [
        r"(?:front|forward|fwd)\s*radar",
        r"\b(?:acc|adaptive\s*cruise)\s*(?:radar|sensor)",
        r"radar\s*(?:sensor|unit|module)",
        r"distance\s*sensor",
        r"millimeter\s*wave\s*radar",
    ], guard=_no_rear),
    ComponentPattern(RepairCategory.REAR_RADAR, [
        r"(?:rear|back)\s*radar",
        r"rear\s*(?:cross[\s-]?traffic|rcta)\s*(?:radar|sensor)",
    ]),
    ComponentPattern(RepairCategory.SIDE_RADAR, [
        r"corner\s*radar",
        r"short\s*range\s*radar",
        r"\bsrr\s*(?:sensor|module)",
    ]),
    ComponentPattern(RepairCategory.BSM_SENSOR, [
        r"blind\s*spot\s*(?:monitor|sensor|radar|module)",
        r"\bbsm\s*(?:sensor|module|radar)",
        r"\bblis\s*(?:sensor|module)",
        r"side\s*(?:object\s*)?(?:radar|sensor)",
        r"lane\s*change\s*(?:assist|warning)\s*sensor",
    ]),
    ComponentPattern(RepairCategory.PARKING_SENSOR_FRONT, [
        rf"\b{FRONT}\s*(?:parking|park)\s*(?:sensor|aid)",
        rf"\b{FRONT}\s*ultrasonic\s*sensor",
        rf"\b{FRONT}\s*(?:sonar|proximity)\s*sensor",
    ]),
    ComponentPattern(RepairCategory.PARKING_SENSOR_REAR, [
        rf"\b{REAR}\s*(?:parking|park)\s*(?:sensor|aid)",
        rf"\b{REAR}\s*ultrasonic\s*sensor",
        rf"\b{REAR}\s*(?:sonar|proximity)\s*sensor",
        r"back(?:up)?\s*(?:sonar|sensor)",
    ]),
    ComponentPattern(RepairCategory.STEERING_COLUMN, [
        r"steering\s*column",
        r"column\s*(?:assy|assembly)",
    ]),
    ComponentPattern(RepairCategory.STEERING_GEAR, [
        r"steering\s*(?:gear|rack)",
        r"power\s*steering\s*(?:gear|rack|unit)",
    ]),
    ComponentPattern(RepairCategory.STEERING_WHEEL, [r"steering\s*wheel"]),
    ComponentPattern(RepairCategory.WHEEL_ALIGNMENT, [
        r"\b(?:4[\s-]?wheel\s*)?align(?:ment)?\b",
        r"front\s*(?:end\s*)?align",
    ]),
    ComponentPattern(RepairCategory.SUSPENSION_FRONT, [
        rf"\b{FRONT}\s*{SUSPENSION_PART}",
        r"front\s*suspension",
    ]),
    ComponentPattern(RepairCategory.SUSPENSION_REAR, [
        rf"\b(?:rear|rr)\s*{SUSPENSION_PART}",
        r"rear\s*suspension",
    ]),
    ComponentPattern(RepairCategory.SUSPENSION_REAR, [SUSPENSION_PART], guard=_has_rear),
    ComponentPattern(RepairCategory.STRUT, [
        r"\bstruts?\b",
        r"shock\s*absorber",
        r"\bshocks?\b",
        r"coil\s*spring",
    ]),
    ComponentPattern(RepairCategory.CONTROL_ARM, [
        r"(?:control|suspension)\s*arm",
        r"\bsway\s*bar|\bstabilizer\s*(?:bar|link)",
    ]),
    ComponentPattern(RepairCategory.KNUCKLE, [
        r"\bknuckle",
        r"\bspindle\b",
    ]),
    ComponentPattern(RepairCategory.SUBFRAME, [
        r"sub[\s-]?frame",
        r"crossmember",
        r"engine\s*cradle",
    ]),
    ComponentPattern(RepairCategory.MODULE_ADAS, [
        r"\badas\s*(?:module|control|ecu)",
        r"sensing\s*(?:module|control)",
    ]),
    ComponentPattern(RepairCategory.MODULE_ABS, [
        r"\babs\s*(?:module|control|unit)",
        r"anti[\s-]?lock\s*(?:brake\s*)?(?:module|unit)",
    ]),
    ComponentPattern(RepairCategory.MODULE_SAS, [r"(?:\bsas|steering\s*angle)\s*(?:sensor|module)"]),
    ComponentPattern(RepairCategory.MODULE_EPS, [r"(?:\beps|electric\s*power\s*steering)\s*(?:module|unit)"]),
    ComponentPattern(RepairCategory.MODULE_IPMA, [
        r"\bipma\b",
        r"image\s*processing\s*module",
    ]),
    ComponentPattern(RepairCategory.MODULE_BCM, [
        r"\bbcm\b",
        r"body\s*control\s*module",
    ]),
    ComponentPattern(RepairCategory.AIRBAG_DEPLOYMENT, [
        r"air\s*bag\s*(?:deployed|deployment|module)",
        r"\bsrs\s*(?:deployed|module)",
        r"restraint\s*(?:deployed|module)",
        r"inflat(?:or|ed)",
    ]),
]

IGNORE_PATTERNS: list[re.Pattern] = [re.compile(p, _I) for p in [
    # Scans and diagnostics
    r"(?:pre|post)[\s-]?(?:repair\s*)?scan",
    r"diagnostic\s*(?:scan|check|test)",
    r"scan\s*(?:tool|system)",
    r"\bdtc\s*(?:check|clear|read)",
    r"health\s*check",
    # Labor-only lines
    r"labor\s*(?:only|charge)",
    r"misc(?:ellaneous)?\s*(?:labor|charge)",
    # Notes and disclaimers
    r"^note[:\s]",
    r"^disclaimer",
    r"^caution",
    r"^warning",
    r"customer\s*(?:states|says)",
    # Estimate metadata
    r"estimate\s*(?:date|total|subtotal)",
    r"repair\s*order",
    r"claim\s*(?:number|no\b|#)",
    r"insur(?:ance|er)",
    r"deductible",
    r"^(?:[a-z&/-]+\s+){0,3}(?:estimate|invoice|quote)(?:\s*(?:#|no\.?|number)\s*[\w-]+)?\s*:?$",
    # Shop info
    r"body\s*shop",
    r"shop\s*(?:name|address)",
    r"technician",
    # Totals
    r"^total",
    r"^subtotal",
    r"^parts\s*total",
    r"^labor\s*total",
    # Calibration recommendations are output, not repair work
    r"calibration\s*(?:required|needed|recommended)",
    r"needs?\s*calibration",
]]

LINE_NUMBER_PATTERNS = [
    re.compile(r"^(?:line\s*)?#?(\d{1,3})[.:)\s]", _I),
    re.compile(r"^\s*(\d{1,3})\s*[.):]"),
    re.compile(r"\bline\s*(\d{1,3})\b", _I),
]

_LEADING_NUMBER = re.compile(r"^(?:line\s*)?#?\d{1,3}(?:\s*[.:)]|\s+)\s*", _I)

PART_NUMBER_PATTERNS = [
    re.compile(r"\b(?:part|p/n|pn)\b[:\s#]*([A-Z0-9][\w\-]{4,})", _I),
    re.compile(r"\b([A-Z]{1,3}\d{4,}[\w\-]*)\b"),
    re.compile(r"\b(\d{8,})\b"),
]

_SIDE_PATTERNS = [
    (Side.LEFT, re.compile(r"\b(?:left|lt|lh|driver)\b", _I)),
    (Side.RIGHT, re.compile(r"\b(?:right|rt|rh|passenger)\b", _I)),
]
_POSITION_PATTERNS = [
    (Position.FRONT, re.compile(r"\b(?:front|fr|frt|fwd)\b", _I)),
    (Position.REAR, re.compile(r"\b(?:rear|rr|back)\b", _I)),
]

VIN_PATTERN = re.compile(r"\b([A-HJ-NPR-Z0-9]{17})\b", _I)
YEAR_PATTERN = re.compile(r"\b(199\d|20[0-3]\d)\b")

_WITH = r"\b(?:with|w/|has|equipped(?:\s*with)?)\s*"
FEATURE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(_WITH + r"(?:surround|360)\s*(?:view|camera)", _I), "surround_view"),
    (re.compile(r"around\s*view\s*monitor", _I), "surround_view"),
    (re.compile(_WITH + r"(?:blind\s*spot|bsm\b|blis\b)", _I), "blind_spot_monitor"),
    (re.compile(_WITH + r"(?:front|forward)\s*(?:camera|sensing)", _I), "front_camera"),
    (re.compile(_WITH + r"(?:adaptive\s*cruise|acc\b|radar)", _I), "front_radar"),
    (re.compile(_WITH + r"(?:lane\s*(?:keep|departure)|lka\b|ldw\b)", _I), "lane_assist"),
    (re.compile(_WITH + r"(?:parking\s*(?:sensor|aid|assist))", _I), "parking_sensors"),
    (re.compile(_WITH + r"(?:backup|rear|reverse)\s*camera", _I), "rear_camera"),
    (re.compile(_WITH + r"(?:air\s*suspension)", _I), "air_suspension"),
    (re.compile(r"\beyesight\b", _I), "eyesight"),
    (re.compile(r"honda\s*sensing", _I), "honda_sensing"),
    (re.compile(r"toyota\s*safety\s*sense|\btss(?:-?[pc]|\s*[23]\.\d)?\b", _I), "toyota_safety_sense"),
    (re.compile(r"nissan\s*(?:safety\s*shield|intelligent\s*mobility)", _I), "nissan_safety"),
    (re.compile(r"lane\s*watch", _I), "lanewatch"),
    (re.compile(r"\bdistronic\b", _I), "distronic"),
    (re.compile(r"\bairmatic\b", _I), "airmatic"),
    (re.compile(r"co[\s-]?pilot\s*360", _I), "copilot360"),
]


class EstimateParser:
    """Turns estimate text into RepairOperation records."""

    def __init__(self, tables=None):
        # Tables are only needed to recognise makes in the estimate header
        self.tables = tables

    def parse(self, estimate_text) -> ParsedEstimate:
        """Parse full estimate text. Never raises on bad input."""
        if not estimate_text or not isinstance(estimate_text, str):
            return ParsedEstimate()

        lines = estimate_text.splitlines()
        operations: list[RepairOperation] = []
        ignored = 0
        for i, line in enumerate(lines):
            op = self.parse_line(line, i)
            if op:
                operations.append(op)
            elif line.strip():
                ignored += 1

        seen = set()
        deduped = []
        for op in operations:
            if op.dedup_key in seen:
                logger.debug(f"Dropping duplicate repair line {op.line_number}: {op.raw_text[:60]}")
                continue
            seen.add(op.dedup_key)
            deduped.append(op)

        logger.info(
            f"Parsed estimate: {len(deduped)} repair operations from {len(lines)} lines "
            f"({ignored} ignored, {len(operations) - len(deduped)} duplicates)"
        )
        return ParsedEstimate(
            operations=deduped,
            total_lines=len(lines),
            ignored_lines=ignored,
            duplicates_removed=len(operations) - len(deduped),
        )

    def parse_line(self, line: str, index: int = 0) -> Optional[RepairOperation]:
        """Classify one line, or None when it is not a repair operation."""
        if self.should_ignore(line):
            return None

        text = line.strip()
        operation = self.detect_operation(text)
        category, matched_text = self.detect_category(text)
        if operation is None and category == RepairCategory.UNKNOWN:
            return None

        return RepairOperation(
            line_number=self.extract_line_number(text) or index + 1,
            raw_text=text,
            operation=operation or OperationType.REPAIR,
            component=Component(
                category=category,
                matched_text=matched_text,
                description=_LEADING_NUMBER.sub("", text).strip()[:DESCRIPTION_LENGTH],
            ),
            location=self.extract_location(text),
            part_number=self.extract_part_number(text),
            estimate_index=index,
        )

    @staticmethod
    def should_ignore(line) -> bool:
        if not line or len(line.strip()) < MIN_LINE_LENGTH:
            return True
        text = line.strip()
        return any(p.search(text) for p in IGNORE_PATTERNS)

    @staticmethod
    def detect_operation(line: str) -> Optional[OperationType]:
        for op_type, pattern in OPERATION_PATTERNS:
            if pattern.search(line):
                return op_type
        return None

    @staticmethod
    def detect_category(line: str) -> tuple[RepairCategory, Optional[str]]:
        for fallback_pass in (False, True):
            for component in COMPONENT_PATTERNS:
                if component.fallback_only != fallback_pass:
                    continue
                matched = component.match(line)
                if matched:
                    return component.category, matched
        return RepairCategory.UNKNOWN, None

    @staticmethod
    def extract_location(line: str) -> Location:
        side = next((s for s, p in _SIDE_PATTERNS if p.search(line)), None)
        position = next((pos for pos, p in _POSITION_PATTERNS if p.search(line)), None)
        return Location(side=side, position=position)

    @staticmethod
    def extract_line_number(line: str) -> Optional[int]:
        for pattern in LINE_NUMBER_PATTERNS:
            m = pattern.search(line)
            if m:
                return int(m.group(1))
        return None

    @staticmethod
    def extract_part_number(line: str) -> Optional[str]:
        for pattern in PART_NUMBER_PATTERNS:
            m = pattern.search(line)
            if m:
                return m.group(1)
        return None

    def extract_vehicle_info(self, estimate_text) -> EstimateVehicleInfo:
        """VIN, model year and make mentioned anywhere in the estimate."""
        if not estimate_text or not isinstance(estimate_text, str):
            return EstimateVehicleInfo()

        vin = None
        for m in VIN_PATTERN.finditer(estimate_text):
            candidate = m.group(1).upper()
            # All-digit or all-letter runs are part numbers or words, not VINs
            if re.search(r"\d", candidate) and re.search(r"[A-Z]", candidate):
                vin = candidate
                break

        year = None
        latest = date.today().year + 2
        for m in YEAR_PATTERN.finditer(estimate_text):
            if 1990 <= int(m.group(1)) <= latest:
                year = int(m.group(1))
                break

        make = self.tables.find_brand(estimate_text, min_alias_length=3) if self.tables else None
        return EstimateVehicleInfo(vin=vin, year=year, make=make)

    @staticmethod
    def extract_mentioned_features(estimate_text) -> list[str]:
        """Equipment tags the estimate itself states ('w/surround view', 'EyeSight')."""
        if not estimate_text or not isinstance(estimate_text, str):
            return []
        features = []
        for pattern, feature in FEATURE_PATTERNS:
            if feature not in features and pattern.search(estimate_text):
                features.append(feature)
        return features

    @staticmethod
    def repair_summary(parsed: ParsedEstimate) -> RepairSummary:
        by_category: dict[str, int] = {}
        by_operation: dict[str, int] = {}
        locations = {"front": 0, "rear": 0, "left": 0, "right": 0}
        for op in parsed.operations:
            by_category[op.component.category.value] = by_category.get(op.component.category.value, 0) + 1
            by_operation[op.operation.value] = by_operation.get(op.operation.value, 0) + 1
            if op.location.side:
                locations[op.location.side.value] += 1
            if op.location.position:
                locations[op.location.position.value] += 1
        return RepairSummary(
            total_operations=len(parsed.operations),
            by_category=by_category,
            by_operation=by_operation,
            locations=locations,
        )
