"""Data models for the estimate scrub engine."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OperationType(str, Enum):
    REPLACE = "replace"
    REMOVE_REPLACE = "r&r"
    REMOVE_INSTALL = "r&i"
    REPAIR = "repair"
    REFINISH = "refinish"
    AIM = "aim"
    PROGRAM = "program"
    ALIGNMENT = "alignment"
    SECTIONING = "sectioning"


class RepairCategory(str, Enum):
    WINDSHIELD = "windshield"
    REAR_GLASS = "rear_glass"
    FRONT_BUMPER = "front_bumper"
    REAR_BUMPER = "rear_bumper"
    GRILLE = "grille"
    SIDE_MIRROR_LEFT = "side_mirror_left"
    SIDE_MIRROR_RIGHT = "side_mirror_right"
    SIDE_MIRROR = "side_mirror"
    LIFTGATE = "liftgate"
    TAILGATE = "tailgate"
    HOOD = "hood"
    QUARTER_PANEL_LEFT = "quarter_panel_left"
    QUARTER_PANEL_RIGHT = "quarter_panel_right"
    DOOR_FRONT_LEFT = "door_front_left"
    DOOR_FRONT_RIGHT = "door_front_right"
    DOOR_REAR_LEFT = "door_rear_left"
    DOOR_REAR_RIGHT = "door_rear_right"
    HEADLAMP_LEFT = "headlamp_left"
    HEADLAMP_RIGHT = "headlamp_right"
    HEADLAMP = "headlamp"
    TAIL_LAMP_LEFT = "tail_lamp_left"
    TAIL_LAMP_RIGHT = "tail_lamp_right"
    FRONT_CAMERA = "front_camera"
    REAR_CAMERA = "rear_camera"
    SURROUND_CAMERA = "surround_camera"
    FRONT_RADAR = "front_radar"
    REAR_RADAR = "rear_radar"
    SIDE_RADAR = "side_radar"
    BSM_SENSOR = "bsm_sensor"
    PARKING_SENSOR_FRONT = "parking_sensor_front"
    PARKING_SENSOR_REAR = "parking_sensor_rear"
    STEERING_COLUMN = "steering_column"
    STEERING_GEAR = "steering_gear"
    STEERING_WHEEL = "steering_wheel"
    WHEEL_ALIGNMENT = "wheel_alignment"
    SUSPENSION_FRONT = "suspension_front"
    SUSPENSION_REAR = "suspension_rear"
    STRUT = "strut"
    CONTROL_ARM = "control_arm"
    KNUCKLE = "knuckle"
    SUBFRAME = "subframe"
    MODULE_ADAS = "module_adas"
    MODULE_ABS = "module_abs"
    MODULE_SAS = "module_sas"
    MODULE_EPS = "module_eps"
    MODULE_IPMA = "module_ipma"
    MODULE_BCM = "module_bcm"
    AIRBAG_DEPLOYMENT = "airbag_deployment"
    UNKNOWN = "unknown"


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class Position(str, Enum):
    FRONT = "front"
    REAR = "rear"


class CalibrationSystem(str, Enum):
    FRONT_CAMERA = "Front Camera"
    FRONT_RADAR = "Front Radar"
    REAR_RADAR = "Rear Radar"
    BLIND_SPOT_MONITOR = "Blind Spot Monitor"
    SURROUND_VIEW = "Surround View Monitor"
    REAR_CAMERA = "Rear Camera"
    FRONT_PARKING_SENSORS = "Front Parking Sensors"
    REAR_PARKING_SENSORS = "Rear Parking Sensors"
    STEERING_ANGLE_SENSOR = "Steering Angle Sensor"
    HEADLAMP_AIM = "Headlamp Aim"
    LANEWATCH = "LaneWatch Camera"
    DISTRONIC = "DISTRONIC Radar"
    EYESIGHT = "EyeSight Cameras"
    ADAPTIVE_HEADLAMPS = "Adaptive Headlamps"
    RIDE_HEIGHT = "Ride Height Sensor"


class CalibrationType(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"
    STATIC_AND_DYNAMIC = "static_and_dynamic"
    SELF_LEARNING = "self_learning"
    PROGRAMMING_ONLY = "programming_only"


class TypeSource(str, Enum):
    OEM_OVERRIDE = "oem_override"
    DEFAULT = "default"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ReconciliationStatus(str, Enum):
    OK = "OK"
    DISCREPANCY = "DISCREPANCY"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    ERROR = "ERROR"


# ─── Repair Operations ───

class Component(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: RepairCategory
    matched_text: Optional[str] = None
    description: str = ""


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    side: Optional[Side] = None
    position: Optional[Position] = None


class RepairOperation(BaseModel):
    """One classified estimate line."""
    model_config = ConfigDict(frozen=True)

    line_number: int
    raw_text: str
    operation: OperationType
    component: Component
    location: Location = Field(default_factory=Location)
    part_number: Optional[str] = None
    estimate_index: int = 0

    @property
    def dedup_key(self) -> tuple:
        return (
            self.component.category,
            self.operation,
            self.location.side,
            self.location.position,
        )

    @property
    def label(self) -> str:
        return f"Line {self.line_number}: {self.component.description}"


class ParsedEstimate(BaseModel):
    operations: list[RepairOperation] = Field(default_factory=list)
    total_lines: int = 0
    ignored_lines: int = 0
    duplicates_removed: int = 0


class EstimateVehicleInfo(BaseModel):
    """Vehicle details found inside the estimate text itself."""
    vin: Optional[str] = None
    year: Optional[int] = None
    make: Optional[str] = None


class RepairSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_operations: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_operation: dict[str, int] = Field(default_factory=dict)
    locations: dict[str, int] = Field(default_factory=dict)


# ─── Trigger Rules ───

class CalibrationTrigger(BaseModel):
    """Declarative rule: repair on a category may require a calibration."""
    model_config = ConfigDict(frozen=True)

    repair_category: RepairCategory
    system: CalibrationSystem
    required_equipment: list[str] = Field(default_factory=list)
    operation_types: list[OperationType]
    confidence: Confidence = Confidence.MEDIUM
    reason: str
    condition: Optional[str] = None

    @property
    def direct(self) -> bool:
        """Direct sensor work: no equipment evidence needed."""
        return not self.required_equipment


# ─── Vehicle & Equipment ───

class VinDecode(BaseModel):
    model_config = ConfigDict(frozen=True)

    vin: str
    brand: Optional[str] = None
    year: Optional[int] = None
    wmi: str
    vds: str
    vis: str
    checksum_valid: Optional[bool] = None  # None when the VIN is not North American


class VehicleIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    vin: Optional[str] = None
    brand: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    vin_decode: Optional[VinDecode] = None


class EquipmentSources(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_vin: bool = False
    has_secondary_report: bool = False
    has_estimate_notes: bool = False
    has_brand_year_data: bool = False


class EquipmentProfile(BaseModel):
    """Confidence-tiered evidence of the ADAS hardware on a vehicle."""
    model_config = ConfigDict(frozen=True)

    confirmed: list[str] = Field(default_factory=list)
    likely: list[str] = Field(default_factory=list)
    possible: list[str] = Field(default_factory=list)
    sources: EquipmentSources = Field(default_factory=EquipmentSources)

    def all_tags(self) -> list[str]:
        return [*self.confirmed, *self.likely, *self.possible]


class BrandYearExpectation(BaseModel):
    model_config = ConfigDict(frozen=True)

    brand: str
    year: int
    standard: list[str] = Field(default_factory=list)
    likely: list[str] = Field(default_factory=list)
    optional: list[str] = Field(default_factory=list)
    unavailable: list[str] = Field(default_factory=list)


class SystemCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_system: Optional[bool] = False
    confidence: Optional[Confidence] = None
    source: Optional[str] = None  # confirmed, likely, possible, repair_line


# ─── Calibration Candidates ───

class CalibrationCandidate(BaseModel):
    """A calibration the repair lines say is needed."""
    model_config = ConfigDict(frozen=True)

    system: CalibrationSystem
    calibration_type: CalibrationType
    type_source: TypeSource = TypeSource.DEFAULT
    triggered_by: RepairOperation
    confidence: Confidence
    reason: str
    condition: Optional[str] = None
    vehicle_has_system: Optional[bool] = None
    equipment_confidence: Optional[Confidence] = None
    equipment_source: Optional[str] = None

    @computed_field
    @property
    def needs_verification(self) -> bool:
        return self.vehicle_has_system is None or self.condition is not None


class UntriggeredSystem(BaseModel):
    """A system the vehicle carries that no repair line touched."""
    model_config = ConfigDict(frozen=True)

    system: CalibrationSystem
    vehicle_has_system: Optional[bool] = None
    equipment_confidence: Optional[Confidence] = None
    equipment_source: Optional[str] = None


# ─── Reconciliation ───

class SecondaryCalibration(BaseModel):
    """One item from the independent calibration report."""
    model_config = ConfigDict(frozen=True)

    raw_text: str
    name: str
    systems: list[CalibrationSystem] = Field(default_factory=list)
    calibration_type: Optional[CalibrationType] = None

    @property
    def normalized_system(self) -> Optional[CalibrationSystem]:
        return self.systems[0] if self.systems else None


class Matched(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["matched"] = "matched"
    system: CalibrationSystem
    calibration_type: CalibrationType
    triggered_by: RepairOperation
    secondary_text: str


class ScrubOnly(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["scrub_only"] = "scrub_only"
    system: CalibrationSystem
    calibration_type: CalibrationType
    triggered_by: RepairOperation
    reason: str
    confidence: Confidence


class SecondaryOnly(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["secondary_only"] = "secondary_only"
    raw_text: str
    normalized_system: Optional[CalibrationSystem] = None
    calibration_type: Optional[CalibrationType] = None
    billable: bool = True


class TypeConflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["type_conflict"] = "type_conflict"
    system: CalibrationSystem
    scrub_type: CalibrationType
    secondary_type: CalibrationType
    triggered_by: RepairOperation
    secondary_text: str


ReconciliationEntry = Annotated[
    Union[Matched, ScrubOnly, SecondaryOnly, TypeConflict],
    Field(discriminator="kind"),
]


class ReconciliationCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_scrub: int = 0
    total_secondary: int = 0
    matched: int = 0
    scrub_only: int = 0
    secondary_only: int = 0
    type_conflicts: int = 0
    discrepancies: int = 0


class ReconciliationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ReconciliationStatus = ReconciliationStatus.OK
    matched: list[Matched] = Field(default_factory=list)
    scrub_only: list[ScrubOnly] = Field(default_factory=list)
    secondary_only: list[SecondaryOnly] = Field(default_factory=list)
    type_conflicts: list[TypeConflict] = Field(default_factory=list)
    counts: ReconciliationCounts = Field(default_factory=ReconciliationCounts)
    notes: list[str] = Field(default_factory=list)

    def entries(self) -> list[ReconciliationEntry]:
        return [*self.matched, *self.type_conflicts, *self.scrub_only, *self.secondary_only]


class FinalCalibration(BaseModel):
    """A billable calibration line."""
    model_config = ConfigDict(frozen=True)

    name: str
    system: Optional[CalibrationSystem] = None
    calibration_type: Optional[CalibrationType] = None
    source: Literal["matched", "type_conflict", "secondary_only"]
    triggered_by: str
    confidence: Confidence
    note: Optional[str] = None


class VerificationItem(BaseModel):
    """Something a person should confirm before billing."""
    model_config = ConfigDict(frozen=True)

    name: str
    system: Optional[CalibrationSystem] = None
    source: Literal["scrub_only", "possible_equipment", "condition", "withheld_secondary"]
    reason: str


# ─── OEM Reference ───

class OEMSystemReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    system_type: str
    system_code: Optional[str] = None
    static_calibration: bool = False
    dynamic_calibration: bool = False
    triggers: list[str] = Field(default_factory=list)
    target_specs: Optional[str] = None
    tools: list[str] = Field(default_factory=list)
    alignment_requirements: Optional[str] = None
    quirks: Optional[str] = None
    dtc_blockers: Optional[str] = None


class OEMBrandReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    brand: str
    systems: list[OEMSystemReference] = Field(default_factory=list)


# ─── Scrub Request / Result ───

class ScrubRequest(BaseModel):
    """Inputs for one scrub. Only estimate_text is required."""
    estimate_text: str = ""
    vin: Optional[str] = None
    brand: Optional[str] = None
    year: Optional[int] = None
    secondary_report_text: Optional[str] = None
    vehicle_description: Optional[str] = None
    job_id: Optional[str] = None


class ScrubSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    repair_operations_found: int = 0
    calibrations_triggered: int = 0
    calibrations_verified: int = 0
    calibrations_needing_verification: int = 0
    reconciliation_status: ReconciliationStatus = ReconciliationStatus.OK
    needs_attention: bool = False


class ScrubResult(BaseModel):
    """Full determination for one estimate."""
    model_config = ConfigDict(frozen=True)

    scrub_version: str
    scrub_timestamp: datetime = Field(default_factory=_utcnow)
    processing_time_ms: float = 0.0

    vehicle: VehicleIdentity = Field(default_factory=VehicleIdentity)
    equipment: EquipmentProfile = Field(default_factory=EquipmentProfile)
    brand_year: Optional[BrandYearExpectation] = None
    repair_operations: list[RepairOperation] = Field(default_factory=list)
    repair_summary: RepairSummary = Field(default_factory=RepairSummary)
    triggered_calibrations: list[CalibrationCandidate] = Field(default_factory=list)
    calibrations_not_triggered: list[UntriggeredSystem] = Field(default_factory=list)
    reconciliation: ReconciliationReport = Field(default_factory=ReconciliationReport)
    calibrations_required: list[FinalCalibration] = Field(default_factory=list)
    calibrations_needing_verification: list[VerificationItem] = Field(default_factory=list)
    oem_reference: Optional[OEMBrandReference] = None
    summary: ScrubSummary = Field(default_factory=ScrubSummary)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
