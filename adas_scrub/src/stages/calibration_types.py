"""Brand-specific calibration method lookup."""

from typing import Optional

from adas_scrub.src.models import CalibrationSystem, CalibrationType, TypeSource

DEFAULT_CALIBRATION_TYPE = CalibrationType.STATIC

DISPLAY_NAMES = {
    CalibrationType.STATIC: "Static",
    CalibrationType.DYNAMIC: "Dynamic",
    CalibrationType.STATIC_AND_DYNAMIC: "Static + Dynamic",
    CalibrationType.SELF_LEARNING: "Self-Learning",
    CalibrationType.PROGRAMMING_ONLY: "Programming Only",
}


def display_type(cal_type: Optional[CalibrationType]) -> str:
    if cal_type is None:
        return "Unspecified"
    return DISPLAY_NAMES.get(cal_type, cal_type.value)


class CalibrationTypeResolver:
    """(brand, system) -> calibration method, static when the table is silent."""

    def __init__(self, tables):
        self.tables = tables

    def resolve(self, brand: Optional[str], system: CalibrationSystem) -> tuple[CalibrationType, TypeSource]:
        normalized = self.tables.normalize_brand(brand)
        if normalized:
            cal_type = self.tables.calibration_types.get((normalized, system))
            if cal_type:
                return cal_type, TypeSource.OEM_OVERRIDE
        return DEFAULT_CALIBRATION_TYPE, TypeSource.DEFAULT

    def calibration_type(self, brand: Optional[str], system: CalibrationSystem) -> CalibrationType:
        return self.resolve(brand, system)[0]
