"""
Analysis Engine Module

Calculates portfolio metrics from normalized holdings and market data:
- Snapshot metrics (P/L, daily P/L, best/worst performers, weighted beta and Sharpe)
- Allocation and per-position performance series
- Holdings replay from buy/sell transactions
- Compound growth projections and historical drawdown
"""

__version__ = "0.1.0"
