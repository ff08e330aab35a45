"""
Drawdown and calendar-year performance utilities.
Pure functions over a daily close history.
"""

import numpy as np
import pandas as pd
from typing import List, Dict, Any, Optional

from ingestion.transforms.coercion import to_number


def empty_performance_metrics() -> Dict[str, Any]:
    """Metrics for a history too short to analyze."""
    return {'best_year': None, 'worst_year': None, 'max_drawdown': 0.0}


def max_drawdown(closes: List[float]) -> float:
    """
    Largest peak-to-trough decline.

    Formula: min over t of (P_t / max(P_0..P_t)) - 1

    Args:
        closes: Positive closes in chronological order

    Returns:
        Drawdown as negative decimal (-0.25 = -25%), 0 if never below a peak
    """
    prices = np.asarray(closes, dtype=float)
    if len(prices) < 2:
        return 0.0

    # Track running maximum (peak)
    running_max = np.maximum.accumulate(prices)
    drawdowns = (prices / running_max) - 1

    return float(min(0.0, drawdowns.min()))


def annual_returns(history: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Calendar-year returns from a date/close frame.

    Each year's base is the previous year's last close; the first year
    uses its own first close.
    """
    by_year = history.groupby(history['date'].dt.year)['close'].agg(['first', 'last'])

    results = []
    previous_close: Optional[float] = None
    for year, row in by_year.iterrows():
        base = row['first'] if previous_close is None else previous_close
        if base > 0:
            results.append({'year': int(year), 'return': float(row['last'] / base - 1)})
        previous_close = row['last']

    return results


def performance_metrics(history: Any) -> Dict[str, Any]:
    """
    Best year, worst year and maximum drawdown of a price history.

    Args:
        history: List of {date, close} in any order

    Returns:
        Dictionary with best_year / worst_year ({year, return} or None) and
        max_drawdown (0 or negative decimal)
    """
    if not isinstance(history, (list, tuple)) or len(history) < 2:
        return empty_performance_metrics()

    rows = []
    for point in history:
        if not isinstance(point, dict):
            continue
        close = to_number(point.get('close'))
        if close is None or close <= 0:
            continue
        rows.append({'date': point.get('date'), 'close': close})

    if len(rows) < 2:
        return empty_performance_metrics()

    df = pd.DataFrame(rows)
    df['date'] = pd.to_datetime(df['date'], errors='coerce')
    df = df.dropna(subset=['date']).sort_values('date', kind='mergesort').reset_index(drop=True)

    if len(df) < 2:
        return empty_performance_metrics()

    yearly = annual_returns(df)

    best_year = None
    worst_year = None
    if yearly:
        ranked = sorted(yearly, key=lambda r: r['return'], reverse=True)
        best_year = ranked[0]
        worst_year = ranked[-1]

    return {
        'best_year': best_year,
        'worst_year': worst_year,
        'max_drawdown': max_drawdown(df['close'].tolist()),
    }
