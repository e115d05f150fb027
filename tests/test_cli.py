import json

import pandas as pd
import pytest
from loguru import logger

from adas_scrub.run_scrub import main

from conftest import BUMPER_ESTIMATE, WINDSHIELD_ESTIMATE


@pytest.fixture(autouse=True)
def drop_cli_log_sink():
    """main() binds a loguru sink to the captured stderr, which closes after each test."""
    yield
    logger.remove()


def test_decode_vin(capsys):
    assert main(["decode-vin", "JHMCV1F31PA000000"]) == 0
    out = capsys.readouterr().out
    assert "Brand:    Honda" in out
    assert "Year:     2023" in out


def test_decode_vin_invalid(capsys):
    assert main(["decode-vin", "1HGCV1F35LA000000"]) == 1
    assert "Invalid VIN" in capsys.readouterr().out


def test_decode_vin_lenient(capsys):
    assert main(["decode-vin", "1HGCV1F35LA000000", "--lenient"]) == 0
    assert "Checksum: INVALID" in capsys.readouterr().out


def test_scrub_compact(tmp_path, capsys):
    estimate = tmp_path / "estimate.txt"
    estimate.write_text(WINDSHIELD_ESTIMATE, encoding="utf-8")
    secondary = tmp_path / "secondary.txt"
    secondary.write_text("Front Camera Calibration (Static)", encoding="utf-8")

    code = main(["scrub", str(estimate), "--secondary", str(secondary), "--brand", "Honda",
                 "--year", "2023", "--format", "compact"])
    assert code == 0
    assert capsys.readouterr().out.strip() == (
        "Repairs: 1 | Calibrations: 1 | Status: OK | Required: Front Camera"
    )


def test_scrub_json(tmp_path, capsys):
    estimate = tmp_path / "estimate.txt"
    estimate.write_text(BUMPER_ESTIMATE, encoding="utf-8")
    main(["scrub", str(estimate), "--brand", "Toyota", "--year", "2021", "--format", "json"])
    data = json.loads(capsys.readouterr().out)
    assert data["vehicle"]["brand"] == "Toyota"


def test_parse(tmp_path, capsys):
    estimate = tmp_path / "estimate.txt"
    estimate.write_text(WINDSHIELD_ESTIMATE, encoding="utf-8")
    assert main(["parse", str(estimate)]) == 0
    out = capsys.readouterr().out
    assert "1 repair operations" in out
    assert "windshield" in out


def test_batch(tmp_path, capsys):
    jobs = tmp_path / "jobs.json"
    jobs.write_text(json.dumps([
        {"job_id": "J1", "estimate_text": BUMPER_ESTIMATE, "brand": "Toyota", "year": 2021},
        {"job_id": "J2", "estimate_text": WINDSHIELD_ESTIMATE},
    ]))
    out_dir = tmp_path / "out"
    assert main(["batch", str(jobs), "--output-dir", str(out_dir)]) == 0
    assert "Scrubbed 2 estimates" in capsys.readouterr().out
    df = pd.read_csv(out_dir / "scrub_summary.csv")
    assert list(df["job_id"]) == ["J1", "J2"]
