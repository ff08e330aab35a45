"""
Guardrails for portfolio analysis - data gap detection.
Flags upstream gaps that silently degrade a metric instead of failing it.
"""

import math
import numbers
import logging
from typing import Any, List, Mapping

from ingestion.transforms.coercion import to_number, number_or_default

logger = logging.getLogger(__name__)


def _has_finite(datum: Mapping[str, Any], field: str) -> bool:
    value = datum.get(field)
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def find_data_gaps(holdings: Any, market_data: Any) -> List[str]:
    """
    List holdings whose market data is missing or partial.

    Args:
        holdings: List of {symbol, quantity, total_cost}
        market_data: Symbol -> MarketDatum

    Returns:
        List of human-readable warnings, one per gap, in holdings order
    """
    warnings = []

    if not isinstance(holdings, (list, tuple)):
        return warnings

    if not isinstance(market_data, Mapping):
        market_data = {}

    for holding in holdings:
        if not isinstance(holding, Mapping):
            warnings.append(f"Malformed holding ignored: {holding!r}")
            continue

        symbol = holding.get('symbol')
        datum = market_data.get(symbol) if isinstance(symbol, str) else None

        if not isinstance(datum, Mapping):
            warnings.append(f"{symbol}: no market data, position valued at $0")
            continue

        price = to_number(datum.get('current_price'))
        if price is None or price == 0:
            warnings.append(f"{symbol}: missing or zero current price, position valued at $0")
        elif not math.isfinite(price * number_or_default(holding.get('quantity'))):
            warnings.append(f"{symbol}: position value overflows, excluded from totals")

        if to_number(datum.get('day_change')) == -100:
            warnings.append(f"{symbol}: day change of -100% excluded from daily P/L")

        if not _has_finite(datum, 'beta'):
            warnings.append(f"{symbol}: no beta, weighted beta understates this position")

        if not _has_finite(datum, 'sharpe_ratio'):
            warnings.append(f"{symbol}: no Sharpe ratio, weighted Sharpe understates this position")

    for warning in warnings:
        logger.warning(warning)

    return warnings
