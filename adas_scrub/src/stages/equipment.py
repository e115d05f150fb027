"""
Equipment Profile - what ADAS hardware the vehicle carries, by trust tier.

confirmed: named by the secondary calibration report or stated in the estimate
likely:    brand/year table says the feature has been around 3+ model years,
           plus federally mandated equipment
possible:  introduced for the brand but too recently to assume

A tag already present in a higher tier, or equivalent to one that is, is
never repeated in a lower tier.
"""

import re
from typing import Optional

from loguru import logger

from adas_scrub.config.settings import EngineSettings
from adas_scrub.src.models import (
    BrandYearExpectation,
    CalibrationSystem,
    Confidence,
    EquipmentProfile,
    EquipmentSources,
    SystemCheck,
    VinDecode,
)
from adas_scrub.src.reference import DEFAULT_BRAND_KEY

_I = re.IGNORECASE

SECONDARY_EQUIPMENT_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"(?:front|forward)\s*(?:facing\s*)?camera|windshield\s*camera|lane\s*(?:departure|keep)|\bkafas\b|multi[\s-]?purpose\s*camera", _I), "front_camera"),
    (re.compile(r"(?:adaptive|acc)\s*cruise|\bacc\s*(?:radar|sensor)|(?:front|forward)\s*radar|millimeter\s*wave|\bdistronic\b", _I), "front_radar"),
    (re.compile(r"blind\s*spot|\b(?:bsm|blis|bsi)\b", _I), "blind_spot_monitor"),
    (re.compile(r"rear\s*cross[\s-]?traffic|rear\s*radar|\brcta\b", _I), "rear_radar"),
    (re.compile(r"(?:surround|around)\s*view|surround\s*vision|360\s*(?:°|deg(?:ree)?)?\s*(?:view|camera)", _I), "surround_view"),
    (re.compile(r"(?:rear|back[\s-]?up|reverse)\s*(?:view\s*)?camera", _I), "rear_camera"),
    (re.compile(r"front\s*park(?:ing)?\s*(?:sensor|aid|assist)|front\s*sonar", _I), "front_parking_sensors"),
    (re.compile(r"rear\s*park(?:ing)?\s*(?:sensor|aid|assist)|(?:back|rear)\s*sonar", _I), "rear_parking_sensors"),
    (re.compile(r"\beyesight\b", _I), "eyesight"),
    (re.compile(r"lane\s*watch", _I), "lanewatch"),
    (re.compile(r"steering\s*angle|\bsas\b", _I), "steering_angle_sensor"),
    (re.compile(r"(?:adaptive|auto[\s-]?leveling)\s*head\s*l|\bafs\b|adaptive\s*front\s*lighting", _I), "adaptive_headlamps"),
    (re.compile(r"air(?:matic)?\s*(?:suspension|ride)|\bairmatic\b|ride\s*height", _I), "air_suspension"),
]

# Only used when neither a front nor a rear parking pattern matched
_GENERIC_PARKING = re.compile(r"park(?:ing)?\s*(?:sensor|aid|assist)|ultrasonic\s*sensor|clearance\s*sonar", _I)

REAR_CAMERA_TAG = "rear_camera"


class EquipmentProfiler:
    """Builds the confidence-tiered equipment profile for a vehicle."""

    def __init__(self, tables, settings: EngineSettings | None = None):
        self.tables = tables
        self.settings = settings or EngineSettings()
        self.aliases = tables.alias_index

    def expected_by_brand_year(self, brand: Optional[str], year: Optional[int]) -> Optional[BrandYearExpectation]:
        """Features the brand offered by this model year."""
        normalized = self.tables.normalize_brand(brand)
        if not normalized or not year:
            return None

        feature_years = self.tables.feature_years.get(normalized)
        if feature_years is None:
            logger.debug(f"No feature table for {normalized}, using industry defaults")
            feature_years = self.tables.feature_years[DEFAULT_BRAND_KEY]

        standard, likely, optional, unavailable = [], [], [], []
        for feature, intro_year in feature_years.items():
            if year < intro_year:
                unavailable.append(feature)
            elif year >= intro_year + self.settings.likely_after_years:
                likely.append(feature)
            else:
                optional.append(feature)

        if year >= self.settings.rear_camera_mandate_year and REAR_CAMERA_TAG not in likely:
            standard.append(REAR_CAMERA_TAG)
            optional = [f for f in optional if f != REAR_CAMERA_TAG]
            unavailable = [f for f in unavailable if f != REAR_CAMERA_TAG]

        return BrandYearExpectation(
            brand=normalized,
            year=year,
            standard=standard,
            likely=likely,
            optional=optional,
            unavailable=unavailable,
        )

    @staticmethod
    def parse_secondary_equipment(secondary_text: Optional[str]) -> list[str]:
        """Equipment tags named anywhere in the secondary report."""
        if not secondary_text or not isinstance(secondary_text, str):
            return []
        tags = []
        for pattern, tag in SECONDARY_EQUIPMENT_PATTERNS:
            if tag not in tags and pattern.search(secondary_text):
                tags.append(tag)
        sided = "front_parking_sensors" in tags or "rear_parking_sensors" in tags
        if not sided and _GENERIC_PARKING.search(secondary_text):
            tags.append("parking_sensors")
        return tags

    def _add_tier(self, tier: list[str], tags: list[str], higher: list[str]):
        for tag in tags:
            if any(self.aliases.tags_equivalent(tag, existing) for existing in [*higher, *tier]):
                continue
            tier.append(tag)

    def build(
        self,
        vin_decode: Optional[VinDecode] = None,
        brand: Optional[str] = None,
        year: Optional[int] = None,
        secondary_text: Optional[str] = None,
        estimate_features: Optional[list[str]] = None,
    ) -> tuple[EquipmentProfile, Optional[BrandYearExpectation]]:
        secondary_tags = self.parse_secondary_equipment(secondary_text)
        estimate_features = list(estimate_features or [])
        expectation = self.expected_by_brand_year(brand, year)

        confirmed: list[str] = []
        for tag in [*secondary_tags, *estimate_features]:
            if tag not in confirmed:
                confirmed.append(tag)

        likely: list[str] = []
        possible: list[str] = []
        if expectation:
            self._add_tier(likely, [*expectation.standard, *expectation.likely], confirmed)
            self._add_tier(possible, expectation.optional, [*confirmed, *likely])

        profile = EquipmentProfile(
            confirmed=confirmed,
            likely=likely,
            possible=possible,
            sources=EquipmentSources(
                has_vin=vin_decode is not None,
                has_secondary_report=bool(secondary_tags),
                has_estimate_notes=bool(estimate_features),
                has_brand_year_data=expectation is not None,
            ),
        )
        logger.info(
            f"Equipment profile: {len(confirmed)} confirmed, {len(likely)} likely, {len(possible)} possible"
        )
        return profile, expectation

    def check_system(self, profile: EquipmentProfile, system: CalibrationSystem) -> SystemCheck:
        """Does the vehicle carry the hardware behind this calibration?"""
        tiers = [
            (profile.confirmed, True, Confidence.HIGH, "confirmed"),
            (profile.likely, True, Confidence.MEDIUM, "likely"),
            (profile.possible, None, Confidence.LOW, "possible"),
        ]
        for tags, has_system, confidence, source in tiers:
            if any(self.aliases.tag_indicates_system(tag, system) for tag in tags):
                return SystemCheck(has_system=has_system, confidence=confidence, source=source)
        return SystemCheck(has_system=False)
