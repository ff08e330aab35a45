"""
Compound growth projection utilities.
Year-by-year comparison of plain saving against compounded investing.
"""

import sys
import math
import pandas as pd
from typing import Any, Dict, List, Mapping

from ingestion.transforms.coercion import number_or_default

# Balances that would overflow a float are reported as the largest finite one
MAX_BALANCE = sys.float_info.max


def _bounded(value: float) -> float:
    """Replace an overflowed (infinite) balance with MAX_BALANCE."""
    return value if math.isfinite(value) else MAX_BALANCE


def _growth_factor(rate: float, periods: float) -> float:
    """(1 + rate) ** periods, or inf when the power overflows."""
    try:
        return (1 + rate) ** periods
    except OverflowError:
        return math.inf


def normalize_params(params: Any) -> Dict[str, Any]:
    """
    Coerce a projection parameter mapping into its valid domain.

    Missing or non-numeric values become 0, negatives are clamped to 0,
    years is truncated to an int. There is no upper bound on any field.

    Args:
        params: Mapping with initial_investment, monthly_contribution,
            years, annual_return_percent

    Returns:
        Dictionary with the same four keys, all non-negative
    """
    if not isinstance(params, Mapping):
        params = {}

    return {
        'initial_investment': max(0.0, number_or_default(params.get('initial_investment'))),
        'monthly_contribution': max(0.0, number_or_default(params.get('monthly_contribution'))),
        'years': int(max(0.0, number_or_default(params.get('years')))),
        'annual_return_percent': max(0.0, number_or_default(params.get('annual_return_percent'))),
    }


def savings_only(initial_investment: float, monthly_contribution: float, years: int) -> float:
    """Total saved with no growth: initial + monthly × 12 × years."""
    return _bounded(initial_investment + monthly_contribution * 12 * years)


def future_value_initial(initial_investment: float, annual_return_percent: float, years: int) -> float:
    """
    Future value of a lump sum compounded annually.

    Formula: FV = P × (1 + r)^n

    A result beyond float range is reported as MAX_BALANCE.
    """
    if initial_investment == 0:
        return 0.0

    growth = _growth_factor(annual_return_percent / 100, years)
    return _bounded(initial_investment * growth)


def future_value_contributions(
    monthly_contribution: float,
    annual_return_percent: float,
    years: int
) -> float:
    """
    Future value of monthly contributions compounded monthly.

    Formula: FV = C × ((1 + i)^(12n) - 1) / i, with i = r / 12

    A zero rate degenerates to the plain sum C × 12 × n. A result beyond
    float range is reported as MAX_BALANCE.
    """
    if monthly_contribution == 0:
        return 0.0

    monthly_rate = annual_return_percent / 100 / 12

    if monthly_rate > 0:
        growth = _growth_factor(monthly_rate, years * 12)
        return _bounded(monthly_contribution * (growth - 1) / monthly_rate)

    return _bounded(monthly_contribution * 12 * years)


def project(params: Any) -> List[Dict[str, Any]]:
    """
    Project savings-only and compounded balances for each year.

    Args:
        params: Mapping with initial_investment, monthly_contribution,
            years, annual_return_percent

    Returns:
        List of {period, savings_only, compounded} ordered by period
        (empty when years < 1)

    Example:
        initial 1000, no contributions, 1 year at 10%:
        - savings_only: 1000
        - compounded: 1000 × 1.10 = 1100
    """
    p = normalize_params(params)

    points = []
    for period in range(1, p['years'] + 1):
        saved = savings_only(p['initial_investment'], p['monthly_contribution'], period)
        compounded = _bounded(
            future_value_initial(p['initial_investment'], p['annual_return_percent'], period)
            + future_value_contributions(p['monthly_contribution'], p['annual_return_percent'], period)
        )
        points.append({
            'period': period,
            'savings_only': saved,
            'compounded': compounded,
        })

    return points


def summarize(points: List[Dict[str, Any]]) -> Dict[str, float]:
    """
    Summarize a projection from its last point.

    Returns:
        Dictionary with final_savings_only, final_compounded, absolute_gain,
        relative_gain_percent (all 0 for an empty projection)
    """
    if not points:
        return {
            'final_savings_only': 0.0,
            'final_compounded': 0.0,
            'absolute_gain': 0.0,
            'relative_gain_percent': 0.0,
        }

    last = points[-1]
    final_saved = last['savings_only']
    final_compounded = last['compounded']
    absolute_gain = final_compounded - final_saved

    return {
        'final_savings_only': final_saved,
        'final_compounded': final_compounded,
        'absolute_gain': absolute_gain,
        'relative_gain_percent': _bounded((absolute_gain / final_saved) * 100) if final_saved > 0 else 0.0,
    }


def total_contributed(initial_investment: float, monthly_contribution: float, years: int) -> float:
    """Capital put in over the horizon (initial + all contributions)."""
    return savings_only(initial_investment, monthly_contribution, years)


def compound_gains(final_compounded: float, contributed: float) -> float:
    """Growth earned on top of contributed capital."""
    return final_compounded - contributed


def cagr(initial_value: float, final_value: float, years: float) -> float:
    """
    Compound annual growth rate, in percent.

    Formula: CAGR = ((final / initial)^(1/years) - 1) × 100

    Returns 0 when initial value is 0 or years is not positive. A negative
    final/initial ratio has no real root and an overflowing power has no
    finite rate; both also return 0.
    """
    if initial_value == 0 or years <= 0:
        return 0.0

    ratio = final_value / initial_value
    if ratio < 0:
        return 0.0

    try:
        result = (ratio ** (1 / years) - 1) * 100
    except OverflowError:
        return 0.0
    return result if math.isfinite(result) else 0.0


def projection_frame(points: List[Dict[str, Any]]) -> pd.DataFrame:
    """Projection points as a DataFrame indexed by period, with a gain column."""
    if not points:
        return pd.DataFrame(columns=['savings_only', 'compounded', 'gain'])

    df = pd.DataFrame(points).set_index('period')
    df['gain'] = df['compounded'] - df['savings_only']
    return df
