"""Engine configuration and settings."""

import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
REFERENCE_DIR = Path(os.getenv("ADAS_REFERENCE_DIR", DATA_DIR / "reference"))
OUTPUT_DIR = Path(os.getenv("ADAS_OUTPUT_DIR", DATA_DIR / "output"))
LOG_DIR = PROJECT_ROOT / "logs"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SCRUB_VERSION = "2.0.0"


class EngineSettings(BaseModel):
    """Policy knobs for a scrub run."""
    prefer_scrub_type: bool = True
    secondary_requires_repair_scope: bool = True
    likely_after_years: int = 3
    rear_camera_mandate_year: int = 2019
    vin_checksum_strict: bool = True


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_engine_config(config_path: Path | None = None) -> dict:
    """Load engine policy from YAML."""
    config_path = config_path or Path(__file__).parent / "engine.yaml"
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def load_engine_settings(config_path: Path | None = None) -> EngineSettings:
    """Build EngineSettings from engine.yaml with environment overrides."""
    config = load_engine_config(config_path)
    reconciliation = config.get("reconciliation") or {}
    equipment = config.get("equipment") or {}
    vin = config.get("vin") or {}

    values = {
        "prefer_scrub_type": reconciliation.get("prefer_scrub_type", True),
        "secondary_requires_repair_scope": reconciliation.get("secondary_requires_repair_scope", True),
        "likely_after_years": equipment.get("likely_after_years", 3),
        "rear_camera_mandate_year": equipment.get("rear_camera_mandate_year", 2019),
        "vin_checksum_strict": vin.get("checksum_strict", True),
    }

    overrides = {
        "prefer_scrub_type": _env_bool("ADAS_PREFER_SCRUB_TYPE"),
        "secondary_requires_repair_scope": _env_bool("ADAS_SECONDARY_REQUIRES_REPAIR_SCOPE"),
        "vin_checksum_strict": _env_bool("ADAS_VIN_CHECKSUM_STRICT"),
    }
    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    return EngineSettings(**values)


@lru_cache(maxsize=1)
def get_engine_settings() -> EngineSettings:
    """Process-wide settings from the packaged engine.yaml, read once."""
    return load_engine_settings()


def ensure_output_dirs():
    """Create output and log dirs. Only batch runs write files."""
    for d in [OUTPUT_DIR, LOG_DIR]:
        d.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None):
    """Route loguru to stderr at LOG_LEVEL."""
    logger.remove()
    logger.add(sys.stderr, level=(level or LOG_LEVEL).upper())
