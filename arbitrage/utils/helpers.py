"""
Helper utilities
"""
import math
import re
from datetime import datetime
from typing import Any, Optional


_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_LEADING_NUMBER_RE = re.compile(r"^\$?\s*([+-]?(\d+(\.\d*)?|\.\d+))")


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        return numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default


def round_money(amount: float) -> float:
    """Round to cents"""
    return round(float(amount), 2)


def parse_number(value: Any) -> Optional[float]:
    """
    Parse user or scraped input into a finite float.

    Accepts ints/floats and strings such as "12", "12.5", " $1,299.00 ".
    Returns None for anything that does not resolve to a finite number:
    "1.2.3", "abc", "", "-" and NaN/inf all come back as None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", "").lstrip("$").strip()
    if not _NUMBER_RE.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def parse_leading_number(value: Any) -> Optional[float]:
    """
    Read the number a scraped string starts with.

    Scraped dimensions often carry a unit suffix: "12.5 in" -> 12.5,
    "3.2 lb" -> 3.2. Anything parse_number() accepts is returned unchanged.
    Use parse_number() for user input, where trailing garbage is an error.
    """
    number = parse_number(value)
    if number is not None or not isinstance(value, str):
        return number

    match = _LEADING_NUMBER_RE.match(value.strip())
    if not match:
        return None
    number = float(match.group(1))
    return number if math.isfinite(number) else None


def parse_flag(value: Any, default: bool = False) -> bool:
    """Interpret a stored or scraped boolean; "false" is False, unknown text is default"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no"):
            return False
    return default


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date string (with or without trailing Z)"""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
