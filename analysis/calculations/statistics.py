"""
Statistics primitives for risk metrics.
Pure functions over numeric sequences; sample (n-1) estimators throughout.

Invalid input never raises: non-sequences, too-short series and
non-finite results all collapse to 0 (or None for the derived ratios).
"""

import math
import logging
import numpy as np
import pandas as pd
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = 0.02


class StatisticsError(Exception):
    """Raised when a series cannot be converted to floats."""
    pass


def _as_array(xs: Any) -> np.ndarray:
    """
    Convert a sequence to a float array.

    Raises:
        StatisticsError: If xs is not a list/tuple/array/Series of numbers
    """
    if isinstance(xs, pd.Series):
        xs = xs.to_numpy()

    if not isinstance(xs, (list, tuple, np.ndarray)):
        raise StatisticsError(f"Expected a numeric sequence, got {type(xs).__name__}")

    try:
        arr = np.asarray(xs, dtype=float)
    except (TypeError, ValueError) as e:
        raise StatisticsError(f"Non-numeric values in series: {e}")

    if arr.ndim != 1:
        raise StatisticsError(f"Expected a 1-D series, got {arr.ndim} dimensions")

    return arr


def _finite_or_zero(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _trailing_pair(a: Any, b: Any) -> Optional[tuple]:
    """Align two series on their trailing min(len) elements; None if invalid."""
    try:
        arr_a = _as_array(a)
        arr_b = _as_array(b)
    except StatisticsError as e:
        logger.debug(f"Pairwise statistic on invalid input: {e}")
        return None

    n = min(len(arr_a), len(arr_b))
    if n < 2:
        return None

    return arr_a[-n:], arr_b[-n:]


def mean(xs: Any) -> float:
    """
    Arithmetic mean.

    Returns:
        Mean of xs, or 0 for an empty or non-sequence input
    """
    try:
        arr = _as_array(xs)
    except StatisticsError:
        return 0.0

    if len(arr) == 0:
        return 0.0

    return _finite_or_zero(np.mean(arr))


def std(xs: Any) -> float:
    """
    Sample standard deviation (divides by n-1).

    Returns:
        Standard deviation, or 0 when fewer than 2 values
    """
    try:
        arr = _as_array(xs)
    except StatisticsError:
        return 0.0

    if len(arr) < 2:
        return 0.0

    return _finite_or_zero(np.std(arr, ddof=1))


def covariance(a: Any, b: Any) -> float:
    """
    Sample covariance over the trailing shared window.

    The longer series loses its earlier, unmatched prefix so that an asset
    with a shorter history is compared over the most recent common window.

    Returns:
        Covariance, or 0 when the aligned length is < 2
    """
    pair = _trailing_pair(a, b)
    if pair is None:
        return 0.0

    arr_a, arr_b = pair
    deviations = (arr_a - np.mean(arr_a)) * (arr_b - np.mean(arr_b))

    return _finite_or_zero(np.sum(deviations) / (len(arr_a) - 1))


def correlation(a: Any, b: Any) -> float:
    """
    Pearson correlation over the trailing shared window.

    Returns:
        Correlation in [-1, 1]; 0 if either aligned series is constant
    """
    pair = _trailing_pair(a, b)
    if pair is None:
        return 0.0

    arr_a, arr_b = pair
    std_a = std(arr_a)
    std_b = std(arr_b)

    if std_a == 0 or std_b == 0:
        return 0.0

    corr = covariance(arr_a, arr_b) / (std_a * std_b)

    # Rounding can push a perfect fit a hair past 1
    return _finite_or_zero(np.clip(corr, -1.0, 1.0))


def daily_returns(closes: Any) -> np.ndarray:
    """
    Simple period returns from a close series.

    Formula: r_t = P_t / P_{t-1} - 1

    Pairs whose base price is non-positive or either price is non-finite
    are dropped.
    """
    try:
        arr = _as_array(closes)
    except StatisticsError:
        return np.array([])

    if len(arr) < 2:
        return np.array([])

    base = arr[:-1]
    current = arr[1:]
    valid = np.isfinite(base) & np.isfinite(current) & (base > 0)

    return current[valid] / base[valid] - 1


def std_dev_pct(returns: Any) -> Optional[float]:
    """Sample standard deviation of returns, in percent; None if < 2 returns."""
    try:
        arr = _as_array(returns)
    except StatisticsError:
        return None

    if len(arr) < 2:
        return None

    return std(arr) * 100


def sharpe_ratio(
    returns: Any,
    risk_free_annual: float = RISK_FREE_RATE,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> Optional[float]:
    """
    Annualized Sharpe ratio from periodic returns.

    Formula: (mean × N - rf) / (std × √N)

    Args:
        returns: Periodic (usually daily) simple returns
        risk_free_annual: Annual risk-free rate as decimal
        periods_per_year: Annualization factor

    Returns:
        Sharpe ratio, or None for < 2 returns or zero dispersion
    """
    try:
        arr = _as_array(returns)
    except StatisticsError:
        return None

    if len(arr) < 2:
        return None

    sd = std(arr)
    if sd == 0:
        return None

    annual_return = mean(arr) * periods_per_year
    annual_sd = sd * math.sqrt(periods_per_year)

    ratio = (annual_return - risk_free_annual) / annual_sd
    return ratio if math.isfinite(ratio) else None


def correlation_matrix(series_by_symbol: Dict[str, Any]) -> pd.DataFrame:
    """
    Pairwise correlation matrix with trailing alignment per pair.

    Args:
        series_by_symbol: Symbol -> return (or price) series

    Returns:
        Square DataFrame indexed and columned by symbol in input order
    """
    symbols: List[str] = list(series_by_symbol or {})
    matrix = pd.DataFrame(0.0, index=symbols, columns=symbols)

    for i, left in enumerate(symbols):
        for right in symbols[i:]:
            value = correlation(series_by_symbol[left], series_by_symbol[right])
            matrix.loc[left, right] = value
            matrix.loc[right, left] = value

    return matrix
