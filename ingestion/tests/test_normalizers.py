"""
Tests for normalizers - provider quotes and holding rows to canonical shape.
Uses the sample fixtures; asserts alias resolution and defaults.
"""

import json
import pytest
from pathlib import Path

from ingestion.transforms.normalizers import (
    normalize_symbol,
    normalize_market_datum,
    normalize_market_data,
    normalize_holdings
)


def load_fixture(filename):
    """Load fixture from tests/fixtures directory."""
    fixture_path = Path(__file__).parent.parent.parent / 'tests/fixtures' / filename
    with open(fixture_path, 'r') as f:
        return json.load(f)


class TestNormalizeMarketDatum:
    """Tests for normalize_market_datum."""

    def test_aliases_resolved(self):
        """Test provider-specific field names map to canonical fields."""
        raw = {
            'symbol': 'aapl',
            'currentPrice': '200.5',
            'changesPercentage': 1.25,
            'betaTTM': 1.1,
            'sharpeRatio': '0.8',
            'sector': 'Technology',
        }

        datum = normalize_market_datum(raw)

        assert datum['symbol'] == 'AAPL'
        assert datum['current_price'] == 200.5
        assert datum['day_change'] == 1.25
        assert datum['beta'] == 1.1
        assert datum['sharpe_ratio'] == 0.8
        assert datum['sector'] == 'Technology'
        assert datum['country'] is None

    def test_canonical_name_preferred(self):
        """Test the canonical field wins over an alias."""
        datum = normalize_market_datum({'current_price': 10, 'price': 99})
        assert datum['current_price'] == 10

    def test_absent_defaults(self):
        """Test absent price/change become 0 and risk metrics stay None."""
        datum = normalize_market_datum({'symbol': 'X', 'beta': 'None', 'sharpe_ratio': ''})

        assert datum['current_price'] == 0.0
        assert datum['day_change'] == 0.0
        assert datum['beta'] is None
        assert datum['sharpe_ratio'] is None

    def test_custom_aliases(self):
        """Test caller-supplied alias lists."""
        aliases = {'symbol': ['code'], 'current_price': ['last']}
        datum = normalize_market_datum({'code': 'sap', 'last': 120}, aliases)

        assert datum['symbol'] == 'SAP'
        assert datum['current_price'] == 120.0


class TestNormalizeMarketData:
    """Tests for normalize_market_data."""

    def test_list_of_records(self):
        """Test the sample quote list."""
        market_data = normalize_market_data(load_fixture('market_data_sample.json'))

        assert set(market_data) == {'AAPL', 'MSFT', 'NESN'}
        assert market_data['MSFT']['current_price'] == 180.0
        assert market_data['MSFT']['day_change'] == -1.0
        assert market_data['MSFT']['beta'] == 0.9
        assert market_data['MSFT']['sharpe_ratio'] is None
        assert market_data['NESN']['current_price'] == 95.0
        assert market_data['NESN']['beta'] is None

    def test_mapping_keyed_by_symbol(self):
        """Test a mapping fills in symbols missing from records."""
        market_data = normalize_market_data({'spy': {'price': 500}})

        assert market_data['SPY']['symbol'] == 'SPY'
        assert market_data['SPY']['current_price'] == 500.0

    def test_records_without_symbol_skipped(self):
        market_data = normalize_market_data([{'price': 1}, {'symbol': 'A', 'price': 2}])
        assert list(market_data) == ['A']

    def test_later_duplicate_wins(self):
        """Test the latest quote for a symbol is kept."""
        market_data = normalize_market_data([
            {'symbol': 'A', 'price': 1},
            {'symbol': 'a', 'price': 2},
        ])
        assert market_data['A']['current_price'] == 2.0

    def test_invalid_containers(self):
        """Test empty and unsupported inputs give an empty lookup."""
        assert normalize_market_data(None) == {}
        assert normalize_market_data([]) == {}
        assert normalize_market_data("AAPL") == {}
        assert normalize_market_data([None, 5]) == {}


class TestNormalizeHoldings:
    """Tests for normalize_holdings."""

    def test_sample_rows(self):
        """Test symbol, ticker, quantity and cost aliases."""
        holdings = normalize_holdings(load_fixture('holdings_sample.json'))

        assert [h['symbol'] for h in holdings] == ['AAPL', 'MSFT', 'NESN', 'TSLA']
        assert holdings[1]['total_cost'] == 1000.0
        assert holdings[2]['quantity'] == 3.0
        assert holdings[2]['total_cost'] == 300.0

    def test_rows_without_symbol_dropped(self):
        holdings = normalize_holdings([{'quantity': 1}, {'symbol': '  '}, 'junk', {'symbol': 'A'}])

        assert len(holdings) == 1
        assert holdings[0] == {'symbol': 'A', 'quantity': 0.0, 'total_cost': 0.0}

    def test_non_list_input(self):
        assert normalize_holdings(None) == []
        assert normalize_holdings({'symbol': 'A'}) == []


class TestNormalizeSymbol:
    """Tests for normalize_symbol."""

    @pytest.mark.parametrize("raw,expected", [
        ('aapl', 'AAPL'),
        (' brk.b ', 'BRK.B'),
        ('', None),
        (None, None),
    ])
    def test_normalize_symbol(self, raw, expected):
        assert normalize_symbol(raw) == expected
