"""
Metrics aggregator - composes holdings and live quotes into a portfolio snapshot.
Pure function: same holdings and market data always give the same snapshot.
"""

import math
import numbers
import logging
from typing import Dict, Any, List, Mapping, Optional, Union

from ingestion.transforms.coercion import number_or_default

logger = logging.getLogger(__name__)

NOT_AVAILABLE = 'N/A'


def empty_performer() -> Dict[str, Any]:
    """Placeholder performer for a portfolio with no positions."""
    return {'symbol': NOT_AVAILABLE, 'pl': 0.0, 'pl_percent': 0.0}


def empty_snapshot() -> Dict[str, Any]:
    """All-zero snapshot returned for empty or malformed holdings."""
    return {
        'total_invested': 0.0,
        'current_value': 0.0,
        'total_pl': 0.0,
        'total_pl_percent': 0.0,
        'daily_pl': 0.0,
        'daily_pl_percent': 0.0,
        'best_performer': empty_performer(),
        'worst_performer': empty_performer(),
        'best_performer_usd': empty_performer(),
        'worst_performer_usd': empty_performer(),
        'positions_count': 0,
        'portfolio_beta': NOT_AVAILABLE,
        'sharpe_ratio': NOT_AVAILABLE,
    }


def _risk_metric(datum: Mapping[str, Any], field: str) -> Optional[float]:
    """Finite numeric risk metric from a quote, or None."""
    value = datum.get(field)
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _percent(part: float, whole: float) -> float:
    """part / whole × 100, or 0 when whole is not positive or the ratio is not finite."""
    if not whole > 0:
        return 0.0
    result = (part / whole) * 100
    return result if math.isfinite(result) else 0.0


def previous_close(current_price: float, day_change: float) -> float:
    """
    Reconstruct yesterday's price from today's price and percent change.

    Formula: P_prev = P / (1 + change / 100)

    A -100% change would divide by zero; the current price is returned so
    the position contributes nothing to daily P/L.
    """
    divisor = 1 + day_change / 100
    if divisor == 0:
        return current_price

    prev = current_price / divisor
    return prev if math.isfinite(prev) else current_price


def daily_pl_percent(current_value: float, daily_pl: float) -> float:
    """Daily P/L as percent of the portfolio value before today's move."""
    return _percent(daily_pl, current_value - daily_pl)


def compute_metrics(
    holdings: Any,
    market_data: Any
) -> Dict[str, Any]:
    """
    Aggregate holdings and market data into a PortfolioSnapshot.

    Args:
        holdings: List of {symbol, quantity, total_cost}
        market_data: Symbol -> {current_price, day_change, beta?, sharpe_ratio?};
            read only, never mutated

    Returns:
        Snapshot dictionary with valuation, P/L, daily P/L, weighted
        beta / Sharpe and best/worst performers. Never raises; empty or
        malformed holdings give the all-zero snapshot.
    """
    if not isinstance(holdings, (list, tuple)) or not holdings:
        return empty_snapshot()

    if not isinstance(market_data, Mapping):
        market_data = {}

    total_invested = 0.0
    current_value = 0.0
    daily_pl = 0.0
    weighted_beta_sum = 0.0
    weighted_sharpe_sum = 0.0
    performers: List[Dict[str, Any]] = []

    for holding in holdings:
        if not isinstance(holding, Mapping):
            logger.debug(f"Skipping malformed holding: {holding!r}")
            continue

        symbol = holding.get('symbol')
        quantity = number_or_default(holding.get('quantity'))
        total_cost = number_or_default(holding.get('total_cost'))

        datum = market_data.get(symbol) if isinstance(symbol, str) else None
        if not isinstance(datum, Mapping):
            logger.debug(f"No market data for {symbol}, valuing at 0")
            datum = {}

        current_price = number_or_default(datum.get('current_price'))
        day_change = number_or_default(datum.get('day_change'))

        holding_value = quantity * current_price
        holding_pl = holding_value - total_cost
        holding_pl_percent = _percent(holding_pl, total_cost)

        next_invested = total_invested + total_cost
        next_value = current_value + holding_value
        if not all(math.isfinite(v) for v in (holding_value, holding_pl, next_value - next_invested)):
            logger.debug(f"Skipping {symbol}: valuation overflows a float")
            continue

        total_invested = next_invested
        current_value = next_value

        day_move = quantity * (current_price - previous_close(current_price, day_change))
        if math.isfinite(daily_pl + day_move):
            daily_pl += day_move

        # A position without beta/Sharpe adds 0 to the numerator but its value
        # still counts in current_value, so it pulls the average toward 0
        # rather than being excluded from the weighting.
        beta = _risk_metric(datum, 'beta')
        if beta is not None:
            weighted_beta_sum += beta * holding_value

        sharpe = _risk_metric(datum, 'sharpe_ratio')
        if sharpe is not None:
            weighted_sharpe_sum += sharpe * holding_value

        performers.append({
            'symbol': symbol,
            'pl': holding_pl,
            'pl_percent': holding_pl_percent,
        })

    if not performers:
        return empty_snapshot()

    total_pl = current_value - total_invested

    # sorted() is stable: ties keep input order
    by_percent = sorted(performers, key=lambda p: p['pl_percent'], reverse=True)
    by_value = sorted(performers, key=lambda p: p['pl'], reverse=True)

    return {
        'total_invested': total_invested,
        'current_value': current_value,
        'total_pl': total_pl,
        'total_pl_percent': _percent(total_pl, total_invested),
        'daily_pl': daily_pl,
        'daily_pl_percent': daily_pl_percent(current_value, daily_pl),
        'best_performer': dict(by_percent[0]),
        'worst_performer': dict(by_percent[-1]),
        'best_performer_usd': dict(by_value[0]),
        'worst_performer_usd': dict(by_value[-1]),
        'positions_count': len(performers),
        'portfolio_beta': _weighted_average(weighted_beta_sum, current_value),
        'sharpe_ratio': _weighted_average(weighted_sharpe_sum, current_value),
    }


def _weighted_average(weighted_sum: float, total_weight: float) -> Union[float, str]:
    """Value-weighted average, or 'N/A' when there is no value to weight by or it is not finite."""
    if not (total_weight > 0 and math.isfinite(total_weight)):
        return NOT_AVAILABLE
    average = weighted_sum / total_weight
    return average if math.isfinite(average) else NOT_AVAILABLE
