"""
Reference Tables - static lookup data the scrub engine reads.

Loaded from data/reference:
- calibration_triggers.yaml  repair category -> calibration rules
- equipment_tags.yaml        equipment tag equivalence sets
- calibration_aliases.yaml   canonical systems, their aliases and equipment keys
- calibration_types.csv      (brand, system) -> calibration method
- adas_feature_years.csv     brand -> feature introduction years
- vin_wmi.csv                VIN world manufacturer identifier -> brand
- brand_aliases.csv          free-text brand spellings -> canonical brand
- oem_calibration_dataset.csv  per-brand OEM procedure notes

Tables are read once per process and never mutated afterwards.
Pass a different directory to ReferenceTables to swap in another dataset.
"""

import csv
import re
from functools import cached_property, lru_cache
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from pydantic import ValidationError

from adas_scrub.config.settings import REFERENCE_DIR
from adas_scrub.src.models import CalibrationSystem, CalibrationTrigger, CalibrationType, RepairCategory

DEFAULT_BRAND_KEY = "default"


class ReferenceDataError(Exception):
    """Reference tables are missing or inconsistent."""


class ReferenceTables:
    """
    Read-only lookup tables for one dataset directory.
    """

    def __init__(self, ref_dir: Path | str | None = None):
        self.ref_dir = Path(ref_dir) if ref_dir else REFERENCE_DIR
        self.triggers: dict[RepairCategory, list[CalibrationTrigger]] = {}
        self.equipment_sets: dict[str, list[str]] = {}
        self.system_aliases: dict[CalibrationSystem, list[str]] = {}
        self.system_equipment: dict[CalibrationSystem, list[str]] = {}
        self.calibration_types: dict[tuple[str, CalibrationSystem], CalibrationType] = {}
        self.feature_years: dict[str, dict[str, int]] = {}
        self.wmi_brands: dict[str, str] = {}
        self.brand_aliases: dict[str, str] = {}
        self.oem_rows: list[dict] = []
        self._load_reference_data()

    @classmethod
    def from_directory(cls, ref_dir: Path | str) -> "ReferenceTables":
        return cls(ref_dir)

    def _load_reference_data(self):
        """Load all reference data from YAML and CSV files."""
        if not self.ref_dir.is_dir():
            raise ReferenceDataError(f"Reference directory not found: {self.ref_dir}")

        self._load_equipment_sets()
        self._load_system_aliases()
        self._load_triggers()
        self._load_brand_aliases()
        self._load_calibration_types()
        self._load_feature_years()
        self._load_wmi()
        self._load_oem_dataset()

        rule_count = sum(len(rules) for rules in self.triggers.values())
        logger.info(
            f"Loaded reference data from {self.ref_dir}: {rule_count} trigger rules, "
            f"{len(self.wmi_brands)} WMI codes, {len(self.feature_years)} brand feature tables"
        )

    # ─── loaders ───

    def _read_yaml(self, name: str) -> dict:
        path = self.ref_dir / name
        if not path.exists():
            raise ReferenceDataError(f"Missing reference file: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ReferenceDataError(f"{name} must contain a mapping")
        return data

    def _read_csv(self, name: str, required: bool = True) -> list[dict]:
        path = self.ref_dir / name
        if not path.exists():
            if required:
                raise ReferenceDataError(f"Missing reference file: {path}")
            return []
        with open(path, newline="", encoding="utf-8") as f:
            return [
                {k.strip(): (v or "").strip() for k, v in row.items() if k}
                for row in csv.DictReader(f)
            ]

    def _system(self, value: str, source: str) -> CalibrationSystem:
        try:
            return CalibrationSystem(value)
        except ValueError:
            raise ReferenceDataError(f"{source}: unknown calibration system {value!r}") from None

    def _load_equipment_sets(self):
        for key, tags in self._read_yaml("equipment_tags.yaml").items():
            self.equipment_sets[str(key)] = [str(t) for t in (tags or [])]

    def _load_system_aliases(self):
        for name, entry in self._read_yaml("calibration_aliases.yaml").items():
            system = self._system(name, "calibration_aliases.yaml")
            entry = entry or {}
            equipment = [str(k) for k in entry.get("equipment") or []]
            for key in equipment:
                if key not in self.equipment_sets:
                    raise ReferenceDataError(
                        f"calibration_aliases.yaml: {name} references unknown equipment set {key!r}"
                    )
            self.system_equipment[system] = equipment
            self.system_aliases[system] = [str(a) for a in entry.get("aliases") or []]

    def _load_triggers(self):
        for category, rules in self._read_yaml("calibration_triggers.yaml").items():
            for rule in rules or []:
                try:
                    trigger = CalibrationTrigger(repair_category=category, **rule)
                except (ValidationError, TypeError) as e:
                    raise ReferenceDataError(f"calibration_triggers.yaml: bad rule under {category}: {e}") from e
                if trigger.system not in self.system_aliases:
                    raise ReferenceDataError(
                        f"calibration_triggers.yaml: {trigger.system.value} has no alias entry"
                    )
                self.triggers.setdefault(trigger.repair_category, []).append(trigger)

    def _load_brand_aliases(self):
        for row in self._read_csv("brand_aliases.csv"):
            self.brand_aliases[row["alias"].lower()] = row["brand"]

    def _load_calibration_types(self):
        for row in self._read_csv("calibration_types.csv"):
            system = self._system(row["system"], "calibration_types.csv")
            try:
                cal_type = CalibrationType(row["calibration_type"])
            except ValueError:
                raise ReferenceDataError(
                    f"calibration_types.csv: unknown calibration type {row['calibration_type']!r}"
                ) from None
            self.calibration_types[(row["brand"], system)] = cal_type

    def _load_feature_years(self):
        for row in self._read_csv("adas_feature_years.csv"):
            self.feature_years.setdefault(row["brand"], {})[row["feature"]] = int(row["intro_year"])
        if DEFAULT_BRAND_KEY not in self.feature_years:
            raise ReferenceDataError("adas_feature_years.csv: missing 'default' brand rows")

    def _load_wmi(self):
        for row in self._read_csv("vin_wmi.csv"):
            self.wmi_brands[row["wmi"].upper()] = row["brand"]

    def _load_oem_dataset(self):
        self.oem_rows = self._read_csv("oem_calibration_dataset.csv", required=False)

    # ─── lookups ───

    @cached_property
    def alias_index(self):
        from adas_scrub.src.stages.aliases import AliasIndex
        return AliasIndex(self.equipment_sets, self.system_aliases, self.system_equipment)

    def normalize_brand(self, name: Optional[str]) -> Optional[str]:
        """Canonical brand name; unknown brands are capitalized as given."""
        if not name or not str(name).strip():
            return None
        lower = " ".join(str(name).lower().split())
        if lower in self.brand_aliases:
            return self.brand_aliases[lower]
        return lower[0].upper() + lower[1:]

    def brand_names(self) -> list[str]:
        return sorted(set(self.brand_aliases.values()))

    def find_brand(self, text: Optional[str], min_alias_length: int = 2) -> Optional[str]:
        """First brand named in free text, longest spelling preferred."""
        if not text:
            return None
        lower = text.lower()
        best: Optional[tuple[int, int, str]] = None  # (position, -length, brand)
        for alias, brand in self.brand_aliases.items():
            if len(alias) < min_alias_length:
                continue
            m = re.search(rf"(?<![a-z0-9]){re.escape(alias)}(?![a-z0-9])", lower)
            if m:
                key = (m.start(), -len(alias), brand)
                if best is None or key < best:
                    best = key
        return best[2] if best else None

    def triggers_for(self, category: RepairCategory) -> list[CalibrationTrigger]:
        return self.triggers.get(category, [])


@lru_cache(maxsize=1)
def get_reference_tables() -> ReferenceTables:
    """Process-wide tables from the configured reference directory."""
    return ReferenceTables()
