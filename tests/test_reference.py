"""
Reference table loading, validation and brand lookups.
"""

import shutil

import pytest

from adas_scrub.config.settings import REFERENCE_DIR
from adas_scrub.src.models import CalibrationSystem, RepairCategory
from adas_scrub.src.reference import ReferenceDataError, ReferenceTables
from adas_scrub.src.stages.oem_reference import CsvOEMReferenceProvider


@pytest.fixture
def reference_copy(tmp_path):
    target = tmp_path / "reference"
    shutil.copytree(REFERENCE_DIR, target)
    return target


class TestLoading:

    def test_packaged_tables(self, tables):
        assert tables.triggers_for(RepairCategory.WINDSHIELD)
        assert tables.triggers_for(RepairCategory.HOOD) == []
        assert set(tables.system_aliases) == set(CalibrationSystem)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ReferenceDataError, match="not found"):
            ReferenceTables(tmp_path / "nope")

    def test_missing_file(self, reference_copy):
        (reference_copy / "vin_wmi.csv").unlink()
        with pytest.raises(ReferenceDataError, match="vin_wmi.csv"):
            ReferenceTables.from_directory(reference_copy)

    def test_unknown_trigger_system(self, reference_copy):
        path = reference_copy / "calibration_triggers.yaml"
        path.write_text(path.read_text() + "\nhood:\n  - system: Night Vision\n    operation_types: [replace]\n")
        with pytest.raises(ReferenceDataError, match="bad rule under hood"):
            ReferenceTables(reference_copy)

    def test_unknown_equipment_set(self, reference_copy):
        path = reference_copy / "calibration_aliases.yaml"
        text = path.read_text().replace("equipment: [", "equipment: [no_such_set, ", 1)
        path.write_text(text)
        with pytest.raises(ReferenceDataError, match="no_such_set"):
            ReferenceTables(reference_copy)

    def test_oem_dataset_is_optional(self, reference_copy):
        (reference_copy / "oem_calibration_dataset.csv").unlink()
        tables = ReferenceTables(reference_copy)
        assert tables.oem_rows == []
        assert CsvOEMReferenceProvider(tables).brand_reference("Toyota") is None


class TestBrands:

    @pytest.mark.parametrize("raw,expected", [
        ("honda", "Honda"),
        ("  CHEVY ", "Chevrolet"),
        ("zenvo", "Zenvo"),
        ("", None),
        (None, None),
    ])
    def test_normalize_brand(self, tables, raw, expected):
        assert tables.normalize_brand(raw) == expected

    def test_find_brand_earliest_mention(self, tables):
        assert tables.find_brand("2019 Toyota Camry, replaced Honda part") == "Toyota"
        assert tables.find_brand("no vehicle named here") is None


class TestOEMReference:

    def test_brand_reference(self, tables):
        provider = CsvOEMReferenceProvider(tables)
        ref = provider.brand_reference("toyota")
        assert ref.brand == "Toyota"
        camera = next(s for s in ref.systems if s.system_code == "FCAM")
        assert camera.static_calibration is True
        assert camera.dynamic_calibration is False
        assert "Windshield replacement" in camera.triggers
        assert "Techstream" in camera.tools

    def test_unknown_brand(self, tables):
        provider = CsvOEMReferenceProvider(tables)
        assert provider.brand_reference("Unknown Motors") is None
        assert provider.brand_reference(None) is None
        assert "Toyota" in provider.brands()


def test_stage_package_exports():
    from adas_scrub.src import stages
    from adas_scrub.src.stages.reconciler import Reconciler

    assert stages.Reconciler is Reconciler
    with pytest.raises(AttributeError):
        stages.NoSuchStage
