"""
Holdings reconstruction from transaction history.
Replays buys and sells chronologically with proportional cost reduction.
"""

import logging
import pandas as pd
from typing import Dict, Any, List, Mapping

from ingestion.transforms.coercion import number_or_default
from ingestion.transforms.normalizers import normalize_symbol

logger = logging.getLogger(__name__)

# Quantities at or below this are float residue from a full sell
MIN_OPEN_QUANTITY = 1e-9


def _transactions_frame(transactions: Any) -> pd.DataFrame:
    """Coerce raw transaction records into a chronologically sorted frame."""
    columns = ['symbol', 'transaction_type', 'quantity', 'price', 'date']

    if not isinstance(transactions, (list, tuple)):
        return pd.DataFrame(columns=columns)

    rows = []
    for tx in transactions:
        if not isinstance(tx, Mapping):
            continue
        symbol = normalize_symbol(tx.get('symbol'))
        if symbol is None:
            logger.debug("Skipping transaction without symbol")
            continue
        rows.append({
            'symbol': symbol,
            'transaction_type': str(tx.get('transaction_type', 'buy')).lower(),
            'quantity': number_or_default(tx.get('quantity')),
            'price': number_or_default(tx.get('purchase_price', tx.get('price'))),
            'date': tx.get('purchase_date', tx.get('date')),
        })

    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(rows, columns=columns)
    df['date'] = pd.to_datetime(df['date'], errors='coerce')

    # Stable sort keeps same-day transactions in entry order
    return df.sort_values('date', kind='mergesort', na_position='first').reset_index(drop=True)


def calculate_holdings(transactions: Any) -> List[Dict[str, Any]]:
    """
    Consolidate a transaction history into current holdings.

    A sell reduces cost basis by the fraction of quantity sold, so the
    average purchase price of the remainder is unchanged.

    Args:
        transactions: List of {symbol, transaction_type ('buy'|'sell'),
            quantity, purchase_price, purchase_date}

    Returns:
        List of {symbol, quantity, total_cost, avg_purchase_price} for open
        positions, in first-seen order
    """
    df = _transactions_frame(transactions)
    positions: Dict[str, Dict[str, float]] = {}

    for tx in df.itertuples(index=False):
        position = positions.setdefault(tx.symbol, {'quantity': 0.0, 'total_cost': 0.0})

        if tx.transaction_type == 'sell':
            fraction_sold = tx.quantity / position['quantity'] if position['quantity'] > 0 else 0.0
            position['total_cost'] -= position['total_cost'] * fraction_sold
            position['quantity'] -= tx.quantity
        else:
            position['quantity'] += tx.quantity
            position['total_cost'] += tx.quantity * tx.price

    holdings = []
    for symbol, position in positions.items():
        if position['quantity'] <= MIN_OPEN_QUANTITY:
            continue
        holdings.append({
            'symbol': symbol,
            'quantity': position['quantity'],
            'total_cost': position['total_cost'],
            'avg_purchase_price': position['total_cost'] / position['quantity'],
        })

    return holdings


def calculate_total_performance(
    transactions: Any,
    holdings: Any,
    market_data: Any
) -> Dict[str, float]:
    """
    Lifetime P/L including realized proceeds from closed positions.

    Formula: pl = (current value + total sold) - total bought

    Returns:
        {'pl': ..., 'percent': ...}; percent is 0 when nothing was bought
    """
    df = _transactions_frame(transactions)
    notional = df['quantity'] * df['price']
    is_sell = df['transaction_type'] == 'sell'

    total_bought = float(notional[~is_sell].sum())
    total_sold = float(notional[is_sell].sum())

    current_value = 0.0
    if isinstance(holdings, (list, tuple)) and isinstance(market_data, Mapping):
        for holding in holdings:
            if not isinstance(holding, Mapping):
                continue
            symbol = holding.get('symbol')
            datum = market_data.get(symbol) if isinstance(symbol, str) else None
            if not isinstance(datum, Mapping):
                continue
            current_value += (
                number_or_default(holding.get('quantity'))
                * number_or_default(datum.get('current_price'))
            )

    pl = (current_value + total_sold) - total_bought

    return {
        'pl': pl,
        'percent': (pl / total_bought) * 100 if total_bought > 0 else 0.0,
    }
