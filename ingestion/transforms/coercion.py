"""
Lenient value coercion for upstream market-data records.
Pure functions - never raise, no IO.
"""

import math
from typing import Any, Iterable, Mapping, Optional


# Placeholder strings some providers emit instead of leaving a field empty
ABSENT_SENTINELS = ('', 'None')


def is_absent(value: Any) -> bool:
    """True for None, empty string and the literal "None" sentinel."""
    if value is None:
        return True
    return isinstance(value, str) and value in ABSENT_SENTINELS


def to_number(value: Any) -> Optional[float]:
    """
    Convert any value to a finite float, or None.

    Args:
        value: Raw field value (number, numeric string, None, ...)

    Returns:
        Finite float, or None when absent or not numeric
    """
    if is_absent(value):
        return None

    if isinstance(value, bool):
        return float(value)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            # Whitespace-only strings count as zero, like a numeric cast would
            return 0.0
        if '_' in value:
            # float() accepts digit separators ("1_000"); numeric fields do not
            return None

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None

    if not math.isfinite(number):
        return None

    return number


def get_first_present(record: Any, keys: Iterable[str]) -> Any:
    """
    Return the first present value across candidate keys.

    Used to reconcile provider field names that changed across API
    versions (e.g. 'price' vs 'currentPrice').

    Args:
        record: Mapping to search
        keys: Candidate keys in priority order

    Returns:
        First value that is not None / "" / "None", or None
    """
    if not isinstance(record, Mapping):
        return None

    for key in keys:
        value = record.get(key)
        if not is_absent(value):
            return value

    return None


def number_or_default(value: Any, default: float = 0.0) -> float:
    """Coerce with to_number, substituting default when absent."""
    number = to_number(value)
    return default if number is None else number
