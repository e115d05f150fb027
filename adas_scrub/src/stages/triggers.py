"""
Calibration Trigger Resolver - repair operations to candidate calibrations.

A rule fires when the operation type is one the rule lists and either the
rule needs no equipment (work on the sensor itself) or one of its required
equipment tags is equivalent to a tag in the vehicle's evidence. Each
system is emitted at most once per estimate; the first firing wins, though a
later firing on the sensor itself still confirms the vehicle carries it.
"""

from typing import Optional

from loguru import logger

from adas_scrub.src.models import (
    CalibrationCandidate,
    CalibrationSystem,
    CalibrationTrigger,
    Confidence,
    EquipmentProfile,
    RepairCategory,
    RepairOperation,
    SystemCheck,
)
from adas_scrub.src.stages.calibration_types import CalibrationTypeResolver
from adas_scrub.src.stages.equipment import EquipmentProfiler

REPAIR_LINE_SOURCE = "repair_line"


class TriggerResolver:
    """Evaluates the declarative trigger table against repair operations."""

    def __init__(
        self,
        tables,
        type_resolver: CalibrationTypeResolver | None = None,
        profiler: EquipmentProfiler | None = None,
    ):
        self.tables = tables
        self.aliases = tables.alias_index
        self.type_resolver = type_resolver or CalibrationTypeResolver(tables)
        self.profiler = profiler or EquipmentProfiler(tables)

    def triggers_for(self, category: RepairCategory) -> list[CalibrationTrigger]:
        return self.tables.triggers_for(category)

    def repairs_that_trigger(self, system: CalibrationSystem) -> list[RepairCategory]:
        """Categories whose repair can require this calibration."""
        return [
            category
            for category, rules in self.tables.triggers.items()
            if any(rule.system == system for rule in rules)
        ]

    def is_calibration_relevant(self, operation: RepairOperation) -> bool:
        """True when some trigger rule for the category lists this operation type."""
        return any(
            operation.operation in rule.operation_types
            for rule in self.triggers_for(operation.component.category)
        )

    def fires(self, rule: CalibrationTrigger, operation: RepairOperation, evidence_tags: list[str]) -> bool:
        if operation.operation not in rule.operation_types:
            return False
        if rule.direct:
            return True
        return self.aliases.any_equivalent(rule.required_equipment, evidence_tags)

    def resolve(
        self,
        operations: list[RepairOperation],
        evidence_tags: Optional[list[str]] = None,
        brand: Optional[str] = None,
        profile: Optional[EquipmentProfile] = None,
    ) -> list[CalibrationCandidate]:
        if evidence_tags is None:
            evidence_tags = profile.all_tags() if profile else []

        candidates: list[CalibrationCandidate] = []
        emitted: dict[CalibrationSystem, int] = {}

        for operation in operations:
            for rule in self.triggers_for(operation.component.category):
                if not self.fires(rule, operation, evidence_tags):
                    continue
                if rule.system in emitted:
                    self._confirm_direct(candidates, emitted[rule.system], rule)
                    continue

                cal_type, type_source = self.type_resolver.resolve(brand, rule.system)
                check = self._check(rule, profile)
                candidates.append(CalibrationCandidate(
                    system=rule.system,
                    calibration_type=cal_type,
                    type_source=type_source,
                    triggered_by=operation,
                    confidence=rule.confidence,
                    reason=rule.reason,
                    condition=rule.condition,
                    vehicle_has_system=check.has_system,
                    equipment_confidence=check.confidence,
                    equipment_source=check.source,
                ))
                emitted[rule.system] = len(candidates) - 1
                logger.debug(f"{operation.label} triggers {rule.system.value} ({rule.confidence.value})")

        logger.info(f"Triggered {len(candidates)} calibrations from {len(operations)} repair operations")
        return candidates

    @staticmethod
    def _confirm_direct(candidates: list[CalibrationCandidate], index: int, rule: CalibrationTrigger):
        """A later direct firing proves the equipment; the first explanation stays."""
        candidate = candidates[index]
        if not rule.direct or candidate.vehicle_has_system is True:
            return
        candidates[index] = candidate.model_copy(update={
            "vehicle_has_system": True,
            "equipment_confidence": Confidence.HIGH,
            "equipment_source": REPAIR_LINE_SOURCE,
        })
        logger.debug(f"{rule.system.value} confirmed by direct sensor work")

    def _check(self, rule: CalibrationTrigger, profile: Optional[EquipmentProfile]) -> SystemCheck:
        if rule.direct:
            # Work on the sensor itself shows the vehicle has it
            return SystemCheck(has_system=True, confidence=Confidence.HIGH, source=REPAIR_LINE_SOURCE)
        if profile is None:
            return SystemCheck(has_system=None)
        check = self.profiler.check_system(profile, rule.system)
        if check.has_system is False:
            # The evidence gate passed on a tag not linked to this system
            return SystemCheck(has_system=None, confidence=Confidence.LOW, source="trigger_evidence")
        return check

    @staticmethod
    def explain(candidate: CalibrationCandidate) -> str:
        text = (
            f"{candidate.triggered_by.label} -> {candidate.system.value} "
            f"({candidate.confidence.value}): {candidate.reason}"
        )
        if candidate.condition:
            text += f" [verify: {candidate.condition}]"
        return text
