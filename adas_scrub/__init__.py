"""ADAS estimate scrub: calibration requirements from collision repair estimates."""

__version__ = "2.0.0"
