"""VIN decoding: manufacturer and model year only."""

import re
from typing import Optional

from loguru import logger

from adas_scrub.src.models import VinDecode

VIN_LENGTH = 17
_VIN_SHAPE = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
_SEPARATORS = re.compile(r"[\s\-]+")

# Position 10 model year. Letters cover 2010-2030, digits 2001-2009.
VIN_YEAR_CODES = {
    "A": 2010, "B": 2011, "C": 2012, "D": 2013, "E": 2014,
    "F": 2015, "G": 2016, "H": 2017, "J": 2018, "K": 2019,
    "L": 2020, "M": 2021, "N": 2022, "P": 2023, "R": 2024,
    "S": 2025, "T": 2026, "V": 2027, "W": 2028, "X": 2029,
    "Y": 2030,
    "1": 2001, "2": 2002, "3": 2003, "4": 2004, "5": 2005,
    "6": 2006, "7": 2007, "8": 2008, "9": 2009,
}

_TRANSLITERATION = {
    **{str(d): d for d in range(10)},
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
}
_WEIGHTS = [8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2]


def clean_vin(vin: Optional[str]) -> str:
    if not vin:
        return ""
    return _SEPARATORS.sub("", str(vin)).upper()


def check_digit(vin: str) -> str:
    """Expected position-9 check digit ('0'-'9' or 'X')."""
    total = sum(_TRANSLITERATION[c] * w for c, w in zip(vin, _WEIGHTS))
    remainder = total % 11
    return "X" if remainder == 10 else str(remainder)


def is_north_american(vin: str) -> bool:
    return vin[:1] in "12345"


class VinDecoder:
    """Table-driven VIN lookup against the WMI reference table."""

    def __init__(self, tables, checksum_strict: bool = True):
        self.tables = tables
        self.checksum_strict = checksum_strict

    def decode(self, vin: Optional[str]) -> Optional[VinDecode]:
        """Brand and model year from a VIN, or None when the VIN is implausible."""
        cleaned = clean_vin(vin)
        if not cleaned:
            return None
        if not _VIN_SHAPE.match(cleaned):
            logger.warning(f"Ignoring malformed VIN {cleaned[:8]}... (length {len(cleaned)})")
            return None

        checksum_valid = None
        if is_north_american(cleaned):
            checksum_valid = cleaned[8] == check_digit(cleaned)
            if not checksum_valid and self.checksum_strict:
                logger.warning(f"Ignoring VIN {cleaned[:8]}...: check digit does not verify")
                return None

        wmi = cleaned[:3]
        brand = self.tables.wmi_brands.get(wmi) or self.tables.wmi_brands.get(cleaned[:2])
        year = VIN_YEAR_CODES.get(cleaned[9])
        if brand is None:
            logger.debug(f"Unknown WMI {wmi}")

        return VinDecode(
            vin=cleaned,
            brand=brand,
            year=year,
            wmi=wmi,
            vds=cleaned[3:9],
            vis=cleaned[9:],
            checksum_valid=checksum_valid,
        )
