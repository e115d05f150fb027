"""
Unit tests for Reconciler - triggered calibrations vs. the secondary report.
"""

import pytest

from adas_scrub.config.settings import EngineSettings
from adas_scrub.src.models import (
    CalibrationSystem,
    CalibrationType,
    Confidence,
    ReconciliationStatus,
    TypeSource,
)
from adas_scrub.src.stages.reconciler import Reconciler, detect_calibration_type, determine_status

from conftest import make_candidate


@pytest.fixture
def reconciler(tables):
    return Reconciler(tables)


class TestParseSecondary:

    def test_splits_and_strips_bullets(self, reconciler):
        text = "Calibrations:\n- Front Camera Calibration (Static)\n• Blind Spot Monitor; 1) Rear Camera, ,"
        items = reconciler.parse_secondary(text)
        assert [i.raw_text for i in items] == [
            "Front Camera Calibration (Static)",
            "Blind Spot Monitor",
            "Rear Camera",
        ]
        assert items[0].systems == [CalibrationSystem.FRONT_CAMERA]
        assert items[0].calibration_type == CalibrationType.STATIC
        assert items[1].calibration_type is None

    def test_unresolved_item_is_kept(self, reconciler):
        items = reconciler.parse_secondary("Night Vision Camera")
        assert len(items) == 1
        assert items[0].normalized_system is None

    @pytest.mark.parametrize("bad", [None, "", "  \n ; ,"])
    def test_empty(self, reconciler, bad):
        assert reconciler.parse_secondary(bad) == []


@pytest.mark.parametrize("text,expected", [
    ("Front Camera - Static", CalibrationType.STATIC),
    ("Surround View Monitor – Dynamic", CalibrationType.DYNAMIC),
    ("EyeSight Static and Dynamic", CalibrationType.STATIC_AND_DYNAMIC),
    ("Radar self-learning", CalibrationType.SELF_LEARNING),
    ("Blind Spot Monitor", None),
])
def test_detect_calibration_type(text, expected):
    assert detect_calibration_type(text) == expected


def test_determine_status_precedence():
    assert determine_status([], []) == ReconciliationStatus.OK
    assert determine_status([], ["conflict"]) == ReconciliationStatus.NEEDS_REVIEW
    assert determine_status(["phantom"], ["conflict"]) == ReconciliationStatus.DISCREPANCY


class TestReconcile:

    def test_matched(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.FRONT_CAMERA)]
        items = reconciler.parse_secondary("Front Camera Calibration (Static)")
        report = reconciler.reconcile(scrub_set, items)
        assert [m.system for m in report.matched] == [CalibrationSystem.FRONT_CAMERA]
        assert report.status == ReconciliationStatus.OK
        assert report.counts.discrepancies == 0

    def test_scrub_only_is_phantom(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.FRONT_RADAR)]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Front Parking Sensors"))
        assert [s.system for s in report.scrub_only] == [CalibrationSystem.FRONT_RADAR]
        assert len(report.secondary_only) == 1
        assert report.status == ReconciliationStatus.DISCREPANCY

    def test_type_conflict(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.FRONT_CAMERA, CalibrationType.STATIC)]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Front Camera - Dynamic"))
        assert report.matched == []
        assert report.type_conflicts[0].secondary_type == CalibrationType.DYNAMIC
        assert report.secondary_only == []
        assert report.status == ReconciliationStatus.NEEDS_REVIEW

    def test_prefers_item_with_agreeing_type(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.FRONT_CAMERA, CalibrationType.STATIC)]
        items = reconciler.parse_secondary("Front Camera Dynamic; Front Camera Static")
        report = reconciler.reconcile(scrub_set, items)
        assert report.matched[0].secondary_text == "Front Camera Static"
        assert report.type_conflicts == []
        assert [s.raw_text for s in report.secondary_only] == ["Front Camera Dynamic"]

    def test_default_method_takes_report_type(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.SURROUND_VIEW, type_source=TypeSource.DEFAULT)]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Surround View Monitor – Dynamic"))
        assert report.type_conflicts == []
        assert report.matched[0].calibration_type == CalibrationType.DYNAMIC
        assert report.status == ReconciliationStatus.OK
        final = reconciler.final_calibration_list(report)
        assert [(f.system, f.calibration_type) for f in final] == [
            (CalibrationSystem.SURROUND_VIEW, CalibrationType.DYNAMIC)
        ]

    def test_default_method_kept_when_report_silent(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.REAR_CAMERA, type_source=TypeSource.DEFAULT)]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Rear Camera"))
        assert report.matched[0].calibration_type == CalibrationType.STATIC

    def test_secondary_item_consumed_once(self, reconciler):
        scrub_set = [
            make_candidate(CalibrationSystem.FRONT_PARKING_SENSORS),
            make_candidate(CalibrationSystem.REAR_PARKING_SENSORS),
        ]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Parking Sensors"))
        assert [m.system for m in report.matched] == [CalibrationSystem.FRONT_PARKING_SENSORS]
        assert [s.system for s in report.scrub_only] == [CalibrationSystem.REAR_PARKING_SENSORS]

    def test_completeness(self, reconciler):
        scrub_set = [
            make_candidate(CalibrationSystem.FRONT_CAMERA),
            make_candidate(CalibrationSystem.FRONT_RADAR),
            make_candidate(CalibrationSystem.BLIND_SPOT_MONITOR, CalibrationType.STATIC),
        ]
        items = reconciler.parse_secondary("Front Camera; Blind Spot Monitor Dynamic; Rear Camera; Headlamp Aim")
        report = reconciler.reconcile(scrub_set, items)
        c = report.counts
        assert c.matched + c.scrub_only + c.type_conflicts == len(scrub_set)
        assert c.matched + c.secondary_only + c.type_conflicts == len(items)
        assert c.discrepancies == c.scrub_only + c.secondary_only + c.type_conflicts
        assert len(report.entries()) == c.matched + c.type_conflicts + c.scrub_only + c.secondary_only


class TestBillingPolicy:

    def test_scrub_only_never_billed(self, reconciler):
        scrub_set = [make_candidate(CalibrationSystem.FRONT_CAMERA), make_candidate(CalibrationSystem.FRONT_RADAR)]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Front Camera"))
        final = reconciler.final_calibration_list(report)
        assert [f.system for f in final] == [CalibrationSystem.FRONT_CAMERA]
        assert final[0].confidence == Confidence.HIGH
        assert final[0].triggered_by == "Line 1: R&R windshield"

    def test_secondary_only_billed_within_repair_scope(self, reconciler):
        report = reconciler.reconcile([], reconciler.parse_secondary("Rear Camera"), repair_scope=True)
        final = reconciler.final_calibration_list(report)
        assert [f.name for f in final] == ["Rear Camera"]
        assert final[0].source == "secondary_only"

    def test_secondary_only_withheld_without_repair_scope(self, reconciler):
        report = reconciler.reconcile([], reconciler.parse_secondary("Rear Camera"), repair_scope=False)
        assert report.secondary_only[0].billable is False
        assert reconciler.final_calibration_list(report) == []
        items = Reconciler.verification_items(report, [])
        assert [(i.name, i.source) for i in items] == [("Rear Camera", "withheld_secondary")]

    def test_repair_scope_gate_can_be_disabled(self, tables):
        reconciler = Reconciler(tables, EngineSettings(secondary_requires_repair_scope=False))
        report = reconciler.reconcile([], reconciler.parse_secondary("Rear Camera"), repair_scope=False)
        assert len(reconciler.final_calibration_list(report)) == 1

    def test_unresolved_secondary_item_billed_by_raw_text(self, reconciler):
        report = reconciler.reconcile([], reconciler.parse_secondary("Night Vision Camera"))
        assert reconciler.final_calibration_list(report)[0].name == "Night Vision Camera"

    @pytest.mark.parametrize("prefer_scrub,expected", [
        (True, CalibrationType.STATIC),
        (False, CalibrationType.DYNAMIC),
    ])
    def test_type_conflict_billing(self, tables, prefer_scrub, expected):
        reconciler = Reconciler(tables, EngineSettings(prefer_scrub_type=prefer_scrub))
        scrub_set = [make_candidate(CalibrationSystem.FRONT_CAMERA, CalibrationType.STATIC)]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Front Camera - Dynamic"))
        final = reconciler.final_calibration_list(report)
        assert final[0].calibration_type == expected
        assert final[0].confidence == Confidence.MEDIUM
        assert final[0].note == "Type conflict: scrub=Static, secondary=Dynamic"


class TestVerificationItems:

    def test_sources(self, reconciler):
        phantom = make_candidate(CalibrationSystem.FRONT_RADAR)
        possible = make_candidate(CalibrationSystem.BLIND_SPOT_MONITOR, vehicle_has_system=None)
        conditioned = make_candidate(CalibrationSystem.REAR_RADAR, condition="radar_behind_grille")
        report = reconciler.reconcile([phantom, conditioned], reconciler.parse_secondary(""))
        items = Reconciler.verification_items(report, [phantom, possible, conditioned])
        sources = {(i.system, i.source) for i in items}
        assert (CalibrationSystem.FRONT_RADAR, "scrub_only") in sources
        assert (CalibrationSystem.BLIND_SPOT_MONITOR, "possible_equipment") in sources
        assert (CalibrationSystem.REAR_RADAR, "condition") in sources

    def test_confirmed_condition_not_repeated(self, reconciler):
        conditioned = make_candidate(CalibrationSystem.FRONT_RADAR, condition="radar_behind_grille")
        report = reconciler.reconcile([conditioned], reconciler.parse_secondary("Front Radar"))
        assert Reconciler.verification_items(report, [conditioned]) == []


class TestNotes:

    def test_sections(self, reconciler):
        scrub_set = [
            make_candidate(CalibrationSystem.FRONT_CAMERA),
            make_candidate(CalibrationSystem.FRONT_RADAR),
        ]
        report = reconciler.reconcile(scrub_set, reconciler.parse_secondary("Front Camera; Rear Camera"))
        notes = report.notes
        assert notes[0] == "Reconciliation Status: DISCREPANCY"
        assert notes[1] == "Matched: 1 | Discrepancies: 2"
        assert "CONFIRMED CALIBRATIONS:" in notes
        assert any(line.startswith("POTENTIAL PHANTOM DETECTIONS") and "EXCLUDED" in line for line in notes)
        assert any("Rear Camera" in line and "INCLUDE" in line for line in notes)
