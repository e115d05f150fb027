"""Scrub pipeline stages."""

def __getattr__(name):
    """Lazy imports so a single stage can be used without loading the rest."""
    if name == "AliasIndex":
        from .aliases import AliasIndex
        return AliasIndex
    if name == "EstimateParser":
        from .estimate_parser import EstimateParser
        return EstimateParser
    if name == "TriggerResolver":
        from .triggers import TriggerResolver
        return TriggerResolver
    if name == "VinDecoder":
        from .vin import VinDecoder
        return VinDecoder
    if name == "EquipmentProfiler":
        from .equipment import EquipmentProfiler
        return EquipmentProfiler
    if name == "CalibrationTypeResolver":
        from .calibration_types import CalibrationTypeResolver
        return CalibrationTypeResolver
    if name == "Reconciler":
        from .reconciler import Reconciler
        return Reconciler
    if name == "CsvOEMReferenceProvider":
        from .oem_reference import CsvOEMReferenceProvider
        return CsvOEMReferenceProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "AliasIndex",
    "EstimateParser",
    "TriggerResolver",
    "VinDecoder",
    "EquipmentProfiler",
    "CalibrationTypeResolver",
    "Reconciler",
    "CsvOEMReferenceProvider",
]
