"""
Month keys ("YYYY-MM") used throughout the ledger.

Keys are stored as plain zero-padded strings so that lexicographic order
equals calendar order. Parsing is strict at the edges (API, edit layer);
the calculation engine only uses the non-raising helpers.
"""
import re
from typing import List, Tuple

MONTH_KEY_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
# Extended ISO calendar date only; basic ("20250314") and week forms are rejected
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class MonthKeyError(ValueError):
    """Malformed month key"""
    pass


def is_month_key(value: str) -> bool:
    return isinstance(value, str) and MONTH_KEY_RE.match(value) is not None


def parse_month(value: str) -> Tuple[int, int]:
    """
    Parse "YYYY-MM" into (year, month).

    Raises:
        MonthKeyError: if the key is not a zero-padded year-month
    """
    if not isinstance(value, str):
        raise MonthKeyError(f"Month key must be a string, got {type(value).__name__}")
    match = MONTH_KEY_RE.match(value)
    if match is None:
        raise MonthKeyError(f"Invalid month key: {value!r}. Expected YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def previous_month(value: str) -> str:
    """
    Month key preceding `value`.

    A malformed key is returned unchanged, so a caller walking backwards
    stops as soon as the previous key equals the current one.
    """
    if not is_month_key(value):
        return value
    y, m = parse_month(value)
    if m == 1:
        return format_month(y - 1, 12)
    return format_month(y, m - 1)


def next_month(value: str) -> str:
    if not is_month_key(value):
        return value
    y, m = parse_month(value)
    if m == 12:
        return format_month(y + 1, 1)
    return format_month(y, m + 1)


def month_of(date_value: str) -> str:
    """Month key of an ISO date string ("2025-03-14" -> "2025-03")."""
    return (date_value or "")[:7]


def in_month(date_value: str, month: str) -> bool:
    return month_of(date_value) == month


def month_range(start: str, end: str) -> List[str]:
    """Return month keys from start to end inclusive."""
    y, m = parse_month(start)
    y_to, m_to = parse_month(end)
    result = []
    while (y, m) <= (y_to, m_to):
        result.append(format_month(y, m))
        m += 1
        if m > 12:
            m = 1
            y += 1
    return result


def year_months(year: int) -> List[str]:
    return [format_month(year, m) for m in range(1, 13)]
