"""
Field alias configuration for upstream market-data records.
Maps each logical quantity to the provider field names it may arrive under.
"""

import os
import logging
import yaml
from pathlib import Path
from typing import Dict, List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class FieldAliasError(Exception):
    """Raised when the alias config file is malformed."""
    pass


DEFAULT_FIELD_ALIASES: Dict[str, List[str]] = {
    'symbol': ['symbol', 'ticker'],
    'current_price': ['current_price', 'currentPrice', 'price', 'regularMarketPrice', 'close'],
    'day_change': ['day_change', 'dayChange', 'changePercentage', 'changesPercentage',
                   'regularMarketChangePercent'],
    'beta': ['beta', 'betaTTM'],
    'sharpe_ratio': ['sharpe_ratio', 'sharpeRatio', 'sharpe'],
    'sector': ['sector'],
    'country': ['country'],
}


def load_field_aliases(config_path: Optional[str] = None) -> Dict[str, List[str]]:
    """
    Load field aliases from YAML, layered over the built-in defaults.

    Args:
        config_path: Path to alias file (default: $MARKET_FIELDS_CONFIG or
            ./config/market_fields.yml)

    Returns:
        Dictionary mapping logical field name to ordered alias list

    Raises:
        FieldAliasError: If the file exists but is not a mapping of lists
    """
    if config_path is None:
        config_path = os.getenv('MARKET_FIELDS_CONFIG', './config/market_fields.yml')

    aliases = {field: list(keys) for field, keys in DEFAULT_FIELD_ALIASES.items()}

    config_file = Path(config_path)
    if not config_file.exists():
        logger.debug(f"Alias config not found at {config_path}, using defaults")
        return aliases

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FieldAliasError(f"Failed to parse alias config {config_path}: {e}")

    if config is None:
        return aliases

    if not isinstance(config, dict):
        raise FieldAliasError(f"Alias config must be a mapping, got {type(config).__name__}")

    for field, keys in config.items():
        if isinstance(keys, str):
            keys = [keys]
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise FieldAliasError(f"Aliases for '{field}' must be a list of strings")
        aliases[str(field)] = keys

    return aliases
