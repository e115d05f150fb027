"""
Reconciler - cross-checks triggered calibrations against the secondary report.

Classification per item:
- Matched:       both sides name the system and the methods agree, or one is unstated or defaulted
- TypeConflict:  both sides name the system but the OEM method differs from the report's
- ScrubOnly:     repair lines triggered it, the report does not list it
- SecondaryOnly: the report lists it, no repair line triggered it

Billing policy: ScrubOnly is never billed (likely a phantom from keyword
matching). SecondaryOnly is billed, the report being the source of truth,
unless no repair operation is one a trigger rule lists for its category. In that
case the report is describing equipment, not repair scope, and its items are
withheld for verification. TypeConflict is billed with the OEM method by
default.
"""

import re
from typing import Optional

from loguru import logger

from adas_scrub.config.settings import EngineSettings
from adas_scrub.src.models import (
    CalibrationCandidate,
    CalibrationType,
    Confidence,
    FinalCalibration,
    Matched,
    ReconciliationCounts,
    ReconciliationReport,
    ReconciliationStatus,
    ScrubOnly,
    SecondaryCalibration,
    SecondaryOnly,
    TypeConflict,
    TypeSource,
    VerificationItem,
)
from adas_scrub.src.stages.aliases import normalize_name
from adas_scrub.src.stages.calibration_types import display_type

SECONDARY_SOURCE_LABEL = "secondary report"

_SPLIT = re.compile(r"[;,\n]")
_BULLET = re.compile(r"^\s*(?:[-*•·]+|\d{1,2}[.)])\s*")
_STATIC = re.compile(r"\bstatic\b", re.IGNORECASE)
_DYNAMIC = re.compile(r"\bdynamic\b", re.IGNORECASE)
_SELF_LEARNING = re.compile(r"\bself[\s-]?(?:learn|calibrat)", re.IGNORECASE)


def detect_calibration_type(text: str) -> Optional[CalibrationType]:
    static, dynamic = bool(_STATIC.search(text)), bool(_DYNAMIC.search(text))
    if static and dynamic:
        return CalibrationType.STATIC_AND_DYNAMIC
    if static:
        return CalibrationType.STATIC
    if dynamic:
        return CalibrationType.DYNAMIC
    if _SELF_LEARNING.search(text):
        return CalibrationType.SELF_LEARNING
    return None


def determine_status(scrub_only: list, type_conflicts: list) -> ReconciliationStatus:
    if scrub_only:
        return ReconciliationStatus.DISCREPANCY
    if type_conflicts:
        return ReconciliationStatus.NEEDS_REVIEW
    return ReconciliationStatus.OK


def _conflicts(candidate: CalibrationCandidate, item: SecondaryCalibration) -> bool:
    """Only an OEM-derived method can disagree with the report; the static default defers to it."""
    if item.calibration_type is None or candidate.type_source != TypeSource.OEM_OVERRIDE:
        return False
    return item.calibration_type != candidate.calibration_type


def _agreed_type(candidate: CalibrationCandidate, item: SecondaryCalibration) -> CalibrationType:
    if candidate.type_source == TypeSource.DEFAULT and item.calibration_type:
        return item.calibration_type
    return candidate.calibration_type


class Reconciler:
    """Single reconciliation algorithm over canonical system names."""

    def __init__(self, tables, settings: EngineSettings | None = None):
        self.aliases = tables.alias_index
        self.settings = settings or EngineSettings()

    def parse_secondary(self, secondary_text: Optional[str]) -> list[SecondaryCalibration]:
        """Split the report into calibration items and resolve their systems."""
        if not secondary_text or not isinstance(secondary_text, str):
            return []

        items = []
        for chunk in _SPLIT.split(secondary_text):
            raw = _BULLET.sub("", chunk).strip()
            if len(raw) < 3 or raw.endswith(":"):
                continue
            items.append(SecondaryCalibration(
                raw_text=raw,
                name=normalize_name(raw),
                systems=self.aliases.resolve_systems(raw),
                calibration_type=detect_calibration_type(raw),
            ))
        logger.info(f"Parsed {len(items)} calibrations from secondary report")
        return items

    def reconcile(
        self,
        scrub_set: list[CalibrationCandidate],
        secondary_items: list[SecondaryCalibration],
        repair_scope: bool = True,
    ) -> ReconciliationReport:
        """
        Compare calibrations the estimate requires against the report.

        Args:
            scrub_set: candidates the vehicle is known to carry
            secondary_items: output of parse_secondary
            repair_scope: whether the estimate has calibration-relevant repair work

        Returns:
            ReconciliationReport with every scrub item and every report item
            classified exactly once.
        """
        consumed = [False] * len(secondary_items)
        matched: list[Matched] = []
        scrub_only: list[ScrubOnly] = []
        type_conflicts: list[TypeConflict] = []

        for candidate in scrub_set:
            idx = self._find_match(candidate, secondary_items, consumed)
            if idx is None:
                scrub_only.append(ScrubOnly(
                    system=candidate.system,
                    calibration_type=candidate.calibration_type,
                    triggered_by=candidate.triggered_by,
                    reason=candidate.reason,
                    confidence=candidate.confidence,
                ))
                continue

            consumed[idx] = True
            item = secondary_items[idx]
            if _conflicts(candidate, item):
                type_conflicts.append(TypeConflict(
                    system=candidate.system,
                    scrub_type=candidate.calibration_type,
                    secondary_type=item.calibration_type,
                    triggered_by=candidate.triggered_by,
                    secondary_text=item.raw_text,
                ))
            else:
                matched.append(Matched(
                    system=candidate.system,
                    calibration_type=_agreed_type(candidate, item),
                    triggered_by=candidate.triggered_by,
                    secondary_text=item.raw_text,
                ))

        billable = repair_scope or not self.settings.secondary_requires_repair_scope
        secondary_only = [
            SecondaryOnly(
                raw_text=item.raw_text,
                normalized_system=item.normalized_system,
                calibration_type=item.calibration_type,
                billable=billable,
            )
            for item, used in zip(secondary_items, consumed)
            if not used
        ]

        status = determine_status(scrub_only, type_conflicts)
        counts = ReconciliationCounts(
            total_scrub=len(scrub_set),
            total_secondary=len(secondary_items),
            matched=len(matched),
            scrub_only=len(scrub_only),
            secondary_only=len(secondary_only),
            type_conflicts=len(type_conflicts),
            discrepancies=len(scrub_only) + len(secondary_only) + len(type_conflicts),
        )
        report = ReconciliationReport(
            status=status,
            matched=matched,
            scrub_only=scrub_only,
            secondary_only=secondary_only,
            type_conflicts=type_conflicts,
            counts=counts,
        )
        report = report.model_copy(update={"notes": self.reconciliation_notes(report)})

        logger.info(
            f"Reconciliation {status.value}: {counts.matched} matched, {counts.scrub_only} scrub-only, "
            f"{counts.secondary_only} secondary-only, {counts.type_conflicts} type conflicts"
        )
        return report

    @staticmethod
    def _find_match(
        candidate: CalibrationCandidate,
        items: list[SecondaryCalibration],
        consumed: list[bool],
    ) -> Optional[int]:
        fallback = None
        for i, item in enumerate(items):
            if consumed[i] or candidate.system not in item.systems:
                continue
            if not _conflicts(candidate, item):
                return i
            if fallback is None:
                fallback = i
        return fallback

    def final_calibration_list(self, report: ReconciliationReport) -> list[FinalCalibration]:
        """Billable calibrations. Never contains a ScrubOnly system."""
        final = []
        for item in report.matched:
            final.append(FinalCalibration(
                name=item.system.value,
                system=item.system,
                calibration_type=item.calibration_type,
                source="matched",
                triggered_by=item.triggered_by.label,
                confidence=Confidence.HIGH,
            ))

        for item in report.type_conflicts:
            chosen = item.scrub_type if self.settings.prefer_scrub_type else item.secondary_type
            final.append(FinalCalibration(
                name=item.system.value,
                system=item.system,
                calibration_type=chosen,
                source="type_conflict",
                triggered_by=item.triggered_by.label,
                confidence=Confidence.MEDIUM,
                note=(
                    f"Type conflict: scrub={display_type(item.scrub_type)}, "
                    f"secondary={display_type(item.secondary_type)}"
                ),
            ))

        for item in report.secondary_only:
            if not item.billable:
                continue
            final.append(FinalCalibration(
                name=item.normalized_system.value if item.normalized_system else item.raw_text,
                system=item.normalized_system,
                calibration_type=item.calibration_type,
                source="secondary_only",
                triggered_by=SECONDARY_SOURCE_LABEL,
                confidence=Confidence.HIGH,
                note="Listed by the secondary report without a triggering repair line",
            ))
        return final

    @staticmethod
    def verification_items(
        report: ReconciliationReport,
        candidates: list[CalibrationCandidate],
    ) -> list[VerificationItem]:
        """Items a person should confirm before anything is billed for them."""
        items = [
            VerificationItem(
                name=entry.system.value,
                system=entry.system,
                source="scrub_only",
                reason=f"Not in secondary report, excluded from billing. Triggered by {entry.triggered_by.label}",
            )
            for entry in report.scrub_only
        ]

        confirmed = {entry.system for entry in [*report.matched, *report.type_conflicts]}
        for candidate in candidates:
            if candidate.vehicle_has_system is None:
                items.append(VerificationItem(
                    name=candidate.system.value,
                    system=candidate.system,
                    source="possible_equipment",
                    reason="Vehicle may not have this system; confirm equipment",
                ))
            elif candidate.condition and candidate.system not in confirmed:
                items.append(VerificationItem(
                    name=candidate.system.value,
                    system=candidate.system,
                    source="condition",
                    reason=f"Depends on sensor placement ({candidate.condition})",
                ))

        for entry in report.secondary_only:
            if not entry.billable:
                items.append(VerificationItem(
                    name=entry.normalized_system.value if entry.normalized_system else entry.raw_text,
                    system=entry.normalized_system,
                    source="withheld_secondary",
                    reason="Listed by secondary report but no repair line in scope; confirm before billing",
                ))
        return items

    @staticmethod
    def reconciliation_notes(report: ReconciliationReport) -> list[str]:
        lines = [
            f"Reconciliation Status: {report.status.value}",
            f"Matched: {report.counts.matched} | Discrepancies: {report.counts.discrepancies}",
        ]

        if report.matched:
            lines.append("CONFIRMED CALIBRATIONS:")
            for item in report.matched:
                lines.append(f"  + {item.system.value} ({display_type(item.calibration_type)})")
                lines.append(f"    Triggered by: {item.triggered_by.label}")

        if report.scrub_only:
            lines.append("POTENTIAL PHANTOM DETECTIONS (not in secondary report), EXCLUDED:")
            for item in report.scrub_only:
                lines.append(f"  x {item.system.value} ({display_type(item.calibration_type)})")
                lines.append(f"    Detection reason: {item.reason}")

        if report.secondary_only:
            lines.append("FROM SECONDARY REPORT:")
            for item in report.secondary_only:
                action = "INCLUDE" if item.billable else "WITHHELD, no repair line in scope"
                type_text = f" ({display_type(item.calibration_type)})" if item.calibration_type else ""
                lines.append(f"  + {item.raw_text}{type_text} - {action}")

        if report.type_conflicts:
            lines.append("CALIBRATION TYPE CONFLICTS:")
            for item in report.type_conflicts:
                lines.append(f"  ! {item.system.value}")
                lines.append(
                    f"    Scrub says: {display_type(item.scrub_type)} | "
                    f"Secondary says: {display_type(item.secondary_type)}"
                )
        return lines
