"""OEM calibration procedure notes, attached to results for the technician."""

from typing import Optional, Protocol

from loguru import logger

from adas_scrub.src.models import OEMBrandReference, OEMSystemReference

_EMPTY = {"", "none", "n/a", "na"}


def _text(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip().lower() in _EMPTY:
        return None
    return value.strip()


def _split(value: Optional[str]) -> list[str]:
    if not _text(value):
        return []
    return [part.strip() for part in value.split(";") if part.strip()]


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "yes", "1", "y")


class OEMReferenceProvider(Protocol):
    def brand_reference(self, brand: Optional[str]) -> Optional[OEMBrandReference]:
        ...


class CsvOEMReferenceProvider:
    """Serves OEM procedure rows from oem_calibration_dataset.csv."""

    def __init__(self, tables):
        self.tables = tables
        self._by_brand: dict[str, list[OEMSystemReference]] = {}
        for row in tables.oem_rows:
            brand = tables.normalize_brand(row.get("brand"))
            if not brand or not row.get("system_type"):
                continue
            self._by_brand.setdefault(brand, []).append(OEMSystemReference(
                system_type=row["system_type"],
                system_code=_text(row.get("system_code")),
                static_calibration=_flag(row.get("static_calibration")),
                dynamic_calibration=_flag(row.get("dynamic_calibration")),
                triggers=_split(row.get("calibration_triggers")),
                target_specs=_text(row.get("target_specs")),
                tools=_split(row.get("required_tools")),
                alignment_requirements=_text(row.get("alignment_requirements")),
                quirks=_text(row.get("special_quirks")),
                dtc_blockers=_text(row.get("dtc_blockers")),
            ))

    def brands(self) -> list[str]:
        return sorted(self._by_brand)

    def brand_reference(self, brand: Optional[str]) -> Optional[OEMBrandReference]:
        normalized = self.tables.normalize_brand(brand)
        if not normalized or normalized not in self._by_brand:
            return None
        systems = self._by_brand[normalized]
        logger.debug(f"OEM reference for {normalized}: {len(systems)} systems")
        return OEMBrandReference(brand=normalized, systems=systems)
