"""Tests for the equipment tag and calibration name equivalence index."""

import pytest

from adas_scrub.src.models import CalibrationSystem
from adas_scrub.src.stages.aliases import name_tokens, normalize_name, normalize_tag


def test_normalize_tag():
    assert normalize_tag("Front_Camera") == normalize_tag("front-camera") == normalize_tag("front camera")


@pytest.mark.parametrize("raw,expected", [
    ("Front Camera Calibration (Static)", "front camera"),
    ("Steering Angle Sensor Reset", "steering angle sensor"),
    ("Surround View Cameras - Dynamic", "surround view camera"),
])
def test_normalize_name_drops_procedure_words(raw, expected):
    assert normalize_name(raw) == expected


def test_name_tokens_singularizes():
    assert name_tokens("Parking Sensors") == ("parking", "sensor")


class TestTagEquivalence:

    def test_same_set(self, alias_index):
        assert alias_index.tags_equivalent("acc_radar", "front_radar")
        assert alias_index.tags_equivalent("360_camera", "surround_view")

    def test_generic_tag_sits_in_both_parking_sets(self, alias_index):
        assert alias_index.tags_equivalent("parking_sensors", "front_parking_sensors")
        assert alias_index.tags_equivalent("parking_sensors", "rear_parking_sensors")
        assert not alias_index.tags_equivalent("front_parking_sensors", "rear_parking_sensors")

    def test_unrelated_tags(self, alias_index):
        assert not alias_index.tags_equivalent("front_camera", "rear_camera")

    def test_any_equivalent(self, alias_index):
        assert alias_index.any_equivalent(["acc_radar", "mwr"], ["lanewatch", "Front Radar"])
        assert not alias_index.any_equivalent(["rear_radar"], ["front_radar"])

    def test_tag_indicates_system(self, alias_index):
        assert alias_index.tag_indicates_system("eyesight", CalibrationSystem.FRONT_CAMERA)
        assert alias_index.tag_indicates_system("eyesight", CalibrationSystem.EYESIGHT)
        assert not alias_index.tag_indicates_system("front_camera", CalibrationSystem.EYESIGHT)


class TestNameResolution:

    @pytest.mark.parametrize("name,system", [
        ("Front Camera Calibration (Static)", CalibrationSystem.FRONT_CAMERA),
        ("Forward Facing Camera", CalibrationSystem.FRONT_CAMERA),
        ("ACC Radar Calibration", CalibrationSystem.FRONT_RADAR),
        ("Millimeter Wave Radar", CalibrationSystem.FRONT_RADAR),
        ("BSM", CalibrationSystem.BLIND_SPOT_MONITOR),
        ("Surround View Monitor – Dynamic", CalibrationSystem.SURROUND_VIEW),
        ("Steering Angle Sensor Reset", CalibrationSystem.STEERING_ANGLE_SENSOR),
        ("Backup Camera", CalibrationSystem.REAR_CAMERA),
    ])
    def test_exact_alias(self, alias_index, name, system):
        assert alias_index.resolve_system(name) == system

    def test_longest_contained_alias(self, alias_index):
        assert alias_index.resolve_systems("Lane Departure Warning Camera Aim") == [CalibrationSystem.FRONT_CAMERA]

    def test_generic_alias_resolves_to_every_system(self, alias_index):
        systems = alias_index.resolve_systems("Parking Sensors Calibration")
        assert set(systems) == {CalibrationSystem.FRONT_PARKING_SENSORS, CalibrationSystem.REAR_PARKING_SENSORS}

    def test_unknown_name(self, alias_index):
        assert alias_index.resolve_systems("Tire pressure monitor") == []
        assert alias_index.resolve_system("Calibration") is None

    def test_names_match(self, alias_index):
        assert alias_index.names_match("front camera", CalibrationSystem.FRONT_CAMERA)
        assert not alias_index.names_match("front camera", CalibrationSystem.FRONT_RADAR)
