"""
Allocation and per-position performance series for portfolio charts.
Derived independently of the metrics aggregator from the same holdings.
"""

import math
import logging
import pandas as pd
from typing import Dict, Any, List, Mapping, Optional

from ingestion.transforms.coercion import number_or_default

logger = logging.getLogger(__name__)

DEFAULT_GROUP = 'Other'


def _resolve_price(holding: Mapping[str, Any], market_data: Optional[Mapping[str, Any]]) -> float:
    """Current price from market data, else from the holding itself, else 0."""
    symbol = holding.get('symbol')
    if isinstance(market_data, Mapping) and isinstance(symbol, str):
        datum = market_data.get(symbol)
        if isinstance(datum, Mapping):
            return number_or_default(datum.get('current_price'))
        return 0.0
    return number_or_default(holding.get('current_price'))


def _pl_percent(profit_loss: float, total_cost: float) -> float:
    if total_cost <= 0:
        return 0.0
    percent = (profit_loss / total_cost) * 100
    return percent if math.isfinite(percent) else 0.0


def compute_allocation(
    holdings: Any,
    market_data: Optional[Mapping[str, Any]] = None
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Build allocation (pie) and P/L-percent (bar) series.

    Args:
        holdings: List of {symbol, quantity, total_cost}; may carry its own
            current_price when market_data is not given
        market_data: Optional symbol -> {current_price, ...}

    Returns:
        {'allocation': [{symbol, market_value, share_percent}],
         'performance': [{symbol, profit_loss, profit_loss_percent}]}
        in holdings order. share_percent is an exact fraction in [0, 1];
        both lists are empty for no holdings.
    """
    empty = {'allocation': [], 'performance': []}

    if not isinstance(holdings, (list, tuple)) or not holdings:
        return empty

    rows = []
    for holding in holdings:
        if not isinstance(holding, Mapping):
            continue
        market_value = number_or_default(holding.get('quantity')) * _resolve_price(holding, market_data)
        total_cost = number_or_default(holding.get('total_cost'))
        if not math.isfinite(market_value - total_cost):
            logger.debug(f"Skipping {holding.get('symbol')}: market value overflows a float")
            continue
        rows.append((holding.get('symbol'), market_value, total_cost))

    if not rows:
        return empty

    total_market_value = sum(value for _, value, _ in rows)
    if not math.isfinite(total_market_value):
        total_market_value = 0.0

    allocation = []
    performance = []
    for symbol, market_value, total_cost in rows:
        profit_loss = market_value - total_cost
        allocation.append({
            'symbol': symbol,
            'market_value': market_value,
            'share_percent': market_value / total_market_value if total_market_value > 0 else 0.0,
        })
        performance.append({
            'symbol': symbol,
            'profit_loss': profit_loss,
            'profit_loss_percent': _pl_percent(profit_loss, total_cost),
        })

    return {'allocation': allocation, 'performance': performance}


def allocation_by_group(
    holdings: Any,
    market_data: Any,
    group_field: str = 'sector',
    default_group: str = DEFAULT_GROUP
) -> List[Dict[str, Any]]:
    """
    Aggregate market value by a per-symbol attribute (sector, country).

    Args:
        holdings: List of {symbol, quantity, ...}
        market_data: Symbol -> datum carrying current_price and group_field
        group_field: Datum attribute to group on
        default_group: Label for symbols without that attribute

    Returns:
        List of {name, value, share_percent} sorted by value descending.
        Symbols missing from market_data are not counted.
    """
    if not isinstance(holdings, (list, tuple)) or not isinstance(market_data, Mapping):
        return []

    rows = []
    for holding in holdings:
        if not isinstance(holding, Mapping):
            continue
        symbol = holding.get('symbol')
        datum = market_data.get(symbol) if isinstance(symbol, str) else None
        if not isinstance(datum, Mapping):
            logger.debug(f"No market data for {symbol}, excluded from {group_field} allocation")
            continue

        value = number_or_default(holding.get('quantity')) * number_or_default(datum.get('current_price'))
        if not math.isfinite(value):
            logger.debug(f"Skipping {symbol}: market value overflows a float")
            continue

        rows.append({'name': datum.get(group_field) or default_group, 'value': value})

    if not rows:
        return []

    grouped = (
        pd.DataFrame(rows)
        .groupby('name', sort=False, as_index=False)['value']
        .sum()
        .sort_values('value', ascending=False, kind='mergesort')
    )
    # Groups whose summed value overflows are dropped
    grouped = grouped[grouped['value'].map(math.isfinite)].copy()
    if grouped.empty:
        return []

    total_value = grouped['value'].sum()
    grouped['share_percent'] = grouped['value'] / total_value if total_value > 0 else 0.0

    return [
        {'name': row['name'], 'value': float(row['value']), 'share_percent': float(row['share_percent'])}
        for row in grouped.to_dict('records')
    ]
