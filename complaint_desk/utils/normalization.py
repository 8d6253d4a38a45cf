"""Data normalization utilities for consistent data quality."""

import re
from typing import Any, Optional


LOCAL_NUMBER_LENGTH = 10
COUNTRY_PREFIX = "91"

_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


def normalize_local_number(raw: Optional[str]) -> str:
    """
    Normalize a contact number to its canonical 10-digit local form.

    Accepts:
    - 10 digits: 9545445133 -> 9545445133
    - Country-prefixed: +91 95454 45133 / 919545445133 -> 9545445133
    - Anything longer keeps its last 10 digits

    Returns "" for empty input or input with no digits. Shorter inputs are returned
    as their bare digits so callers can reject them.
    """
    if not raw:
        return ""

    digits = re.sub(r"\D", "", str(raw))
    if len(digits) == LOCAL_NUMBER_LENGTH + len(COUNTRY_PREFIX) and digits.startswith(COUNTRY_PREFIX):
        digits = digits[len(COUNTRY_PREFIX):]
    if len(digits) > LOCAL_NUMBER_LENGTH:
        digits = digits[-LOCAL_NUMBER_LENGTH:]
    return digits


def to_international_number(raw: Optional[str]) -> str:
    """Return the number as ``91XXXXXXXXXX`` (no plus sign), or "" if unusable."""
    local = normalize_local_number(raw)
    if len(local) != LOCAL_NUMBER_LENGTH:
        return ""
    return f"{COUNTRY_PREFIX}{local}"


def parse_bool(value: Any, default: bool = False) -> bool:
    """Parse form-style booleans (true/false/1/0/yes/no); fall back to ``default``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return default


def normalize_text(value: Optional[str]) -> str:
    """Trim and collapse internal whitespace."""
    if not value:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()
