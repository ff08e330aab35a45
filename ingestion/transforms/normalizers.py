"""
Normalizers for transforming provider market data and holdings to canonical shape.
Pure functions - no IO, network, or side effects.
Minimal normalization - only when necessary.
"""

import logging
from typing import Dict, Any, List, Mapping, Optional

from ingestion.field_aliases import DEFAULT_FIELD_ALIASES
from ingestion.transforms.coercion import get_first_present, to_number, number_or_default

logger = logging.getLogger(__name__)


def normalize_symbol(value: Any) -> Optional[str]:
    """Upper-case and strip a ticker symbol; None if empty."""
    if value is None:
        return None
    symbol = str(value).strip().upper()
    return symbol or None


def normalize_market_datum(
    raw: Mapping[str, Any],
    aliases: Optional[Dict[str, List[str]]] = None
) -> Dict[str, Any]:
    """
    Transform one provider-native quote record to a canonical MarketDatum.

    Each logical field is resolved over its ordered alias list.

    Args:
        raw: Provider quote record
        aliases: Logical field -> ordered alias list (default: built-ins)

    Returns:
        Dictionary with symbol, current_price, day_change, beta,
        sharpe_ratio, sector, country
    """
    if aliases is None:
        aliases = DEFAULT_FIELD_ALIASES

    def resolve(field: str) -> Any:
        return get_first_present(raw, aliases.get(field, [field]))

    # Absent price/change -> 0, absent beta/Sharpe stays None
    datum = {
        'symbol': normalize_symbol(resolve('symbol')),
        'current_price': number_or_default(resolve('current_price')),
        'day_change': number_or_default(resolve('day_change')),
        'beta': to_number(resolve('beta')),
        'sharpe_ratio': to_number(resolve('sharpe_ratio')),
    }

    for field in ('sector', 'country'):
        value = resolve(field)
        datum[field] = str(value) if value is not None else None

    return datum


def normalize_market_data(
    raw_records: Any,
    aliases: Optional[Dict[str, List[str]]] = None
) -> Dict[str, Dict[str, Any]]:
    """
    Build the symbol -> MarketDatum lookup used by the aggregator.

    Args:
        raw_records: Either a mapping keyed by symbol or a list of records
            that carry their own symbol field
        aliases: Logical field -> ordered alias list (default: built-ins)

    Returns:
        Dictionary mapping symbol to canonical MarketDatum
    """
    if not raw_records:
        return {}

    if isinstance(raw_records, Mapping):
        items = []
        for key, record in raw_records.items():
            if not isinstance(record, Mapping):
                continue
            datum = normalize_market_datum(record, aliases)
            # The mapping key is authoritative when the record omits its symbol
            datum['symbol'] = datum['symbol'] or normalize_symbol(key)
            items.append(datum)
    elif isinstance(raw_records, (list, tuple)):
        items = [
            normalize_market_datum(record, aliases)
            for record in raw_records
            if isinstance(record, Mapping)
        ]
    else:
        logger.debug(f"Unsupported market data container: {type(raw_records).__name__}")
        return {}

    market_data = {}
    for datum in items:
        if datum['symbol'] is None:
            logger.debug("Skipping market data record without symbol")
            continue
        # Later duplicates win (latest quote)
        market_data[datum['symbol']] = datum

    return market_data


def normalize_holdings(raw_rows: Any) -> List[Dict[str, Any]]:
    """
    Transform stored holding rows to canonical Holding dicts.

    Args:
        raw_rows: List of holding records (symbol, quantity, total_cost or
            totalCost)

    Returns:
        List of holdings in input order; rows without symbol are dropped
    """
    if not isinstance(raw_rows, (list, tuple)):
        return []

    holdings = []
    for raw in raw_rows:
        if not isinstance(raw, Mapping):
            continue

        symbol = normalize_symbol(get_first_present(raw, ['symbol', 'ticker']))
        if symbol is None:
            logger.debug("Skipping holding row without symbol")
            continue

        holdings.append({
            'symbol': symbol,
            'quantity': number_or_default(raw.get('quantity')),
            'total_cost': number_or_default(get_first_present(raw, ['total_cost', 'totalCost'])),
        })

    return holdings
