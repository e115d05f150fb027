"""
Pytest fixtures shared across the scrub engine tests.
Reference tables are loaded once per session from the packaged dataset.
"""

import pytest

from adas_scrub.config.settings import EngineSettings
from adas_scrub.src.models import (
    CalibrationCandidate,
    CalibrationType,
    Component,
    Confidence,
    OperationType,
    RepairCategory,
    RepairOperation,
    TypeSource,
)
from adas_scrub.src.reference import ReferenceTables, get_reference_tables


WINDSHIELD_ESTIMATE = """\
1 R&R Windshield – laminated glass w/rain sensor
2 Pre-repair scan
3 Calibration required for front camera
"""

MIRROR_ESTIMATE = """\
1 Repl RT Mirror base w/surround view
2 Refinish RT mirror cap
"""

PAINT_ONLY_ESTIMATE = """\
1 Refinish hood
2 Blend LT fender
3 Paint RT front door
"""

ALIGNMENT_ESTIMATE = "1 4-wheel alignment\n"

BUMPER_ESTIMATE = "1 R&R Front bumper cover\n"


@pytest.fixture(scope="session")
def tables() -> ReferenceTables:
    return get_reference_tables()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def alias_index(tables):
    return tables.alias_index


def make_operation(
    category: RepairCategory = RepairCategory.WINDSHIELD,
    operation: OperationType = OperationType.REPLACE,
    description: str = "R&R windshield",
    line_number: int = 1,
) -> RepairOperation:
    return RepairOperation(
        line_number=line_number,
        raw_text=description,
        operation=operation,
        component=Component(category=category, description=description),
    )


def make_candidate(
    system,
    calibration_type: CalibrationType = CalibrationType.STATIC,
    vehicle_has_system=True,
    condition=None,
    type_source: TypeSource = TypeSource.OEM_OVERRIDE,
    operation: RepairOperation | None = None,
) -> CalibrationCandidate:
    return CalibrationCandidate(
        system=system,
        calibration_type=calibration_type,
        triggered_by=operation or make_operation(),
        confidence=Confidence.HIGH,
        reason="test rule",
        condition=condition,
        type_source=type_source,
        vehicle_has_system=vehicle_has_system,
    )
