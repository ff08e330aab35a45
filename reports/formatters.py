"""
Display formatters for portfolio metrics.
Deterministic string formatting for currency, percentages and quantities.
Total functions: invalid input renders a default, never raises.
"""

import math
import numpy as np
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Any

from ingestion.transforms.coercion import number_or_default

NOT_AVAILABLE = 'N/A'

# Enough digits to quantize any finite float to 4 decimals
_WIDE_CONTEXT = Context(prec=400)


def format_currency(value: Any) -> str:
    """
    Format as US dollars with thousands separators and 2 decimals.

    Args:
        value: Dollar amount; None / non-finite / non-numeric render as 0

    Returns:
        Formatted currency string (e.g., "$1,234.56", "$-100.00")
    """
    amount = number_or_default(value)
    return f"${amount:,.2f}"


def format_percent(value: Any) -> str:
    """
    Format a percentage value with 2 decimals.

    Args:
        value: Percent value (5.23 = 5.23%); invalid input renders as 0

    Returns:
        Formatted percentage string (e.g., "5.23%")
    """
    pct = number_or_default(value)
    return f"{pct:.2f}%"


def format_quantity(value: Any) -> str:
    """
    Format a share quantity with 2 to 4 decimals.

    Rounds half-up at the 4th decimal, then trims trailing zeros but never
    below 2 decimals.

    Returns:
        Formatted quantity (e.g., "10.00", "0.1235", "1,000.50")
    """
    amount = number_or_default(value)

    # repr() gives the shortest round-tripping decimal, so 1.00005 rounds up
    rounded = Decimal(repr(amount)).quantize(
        Decimal('0.0001'), rounding=ROUND_HALF_UP, context=_WIDE_CONTEXT
    )
    text = f"{rounded:,f}"

    whole, _, fraction = text.partition('.')
    fraction = fraction.rstrip('0').ljust(2, '0')

    return f"{whole}.{fraction}"


def format_number(value: Any) -> str:
    """
    Format a ratio such as beta or Sharpe with 2 decimals.

    Returns:
        Formatted number, or "N/A" for strings, None and non-finite values
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        return NOT_AVAILABLE

    try:
        number = float(value)
    except OverflowError:
        return NOT_AVAILABLE

    if not math.isfinite(number):
        return NOT_AVAILABLE

    return f"{number:.2f}"


def format_compact_currency(value: Any) -> str:
    """
    Format currency with compact notation for projections.

    Args:
        value: Dollar amount

    Returns:
        Compact string (e.g., "$950", "$12.3k", "$1.50M", "$2.5e15")
    """
    if value is None or isinstance(value, bool):
        return "$0"

    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return "$0"

    if math.isnan(amount) or amount == 0:
        return "$0"

    sign = "-" if amount < 0 else ""

    if math.isinf(amount):
        return f"{sign}$∞"

    abs_value = abs(amount)

    if abs_value >= 1e15:
        exponent = math.floor(math.log10(abs_value))
        mantissa = abs_value / 10 ** exponent
        return f"{sign}${mantissa:.1f}e{exponent}"
    elif abs_value >= 1e12:
        return f"{sign}${abs_value/1e12:.2f}T"
    elif abs_value >= 1e9:
        return f"{sign}${abs_value/1e9:.2f}B"
    elif abs_value >= 1e6:
        return f"{sign}${abs_value/1e6:.2f}M"
    elif abs_value >= 1e3:
        return f"{sign}${abs_value/1e3:.1f}k"
    else:
        return f"{sign}${abs_value:,.0f}"
