"""
Tests for CLI entry points - subprocess calls in temp workspace.
Tests actual command execution against the sample fixtures.
"""

import json
import shutil
import subprocess
import sys
import pytest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent
CLI_SCRIPT = PROJECT_ROOT / 'cli.py'
FIXTURES_DIR = PROJECT_ROOT / 'tests/fixtures'


@pytest.fixture
def temp_workspace(tmp_path):
    """Create temporary workspace with input files."""
    for name in ['holdings_sample.json', 'market_data_sample.json', 'price_history_sample.json',
                 'transactions_sample.json']:
        shutil.copy(FIXTURES_DIR / name, tmp_path / name)
    return tmp_path


def run_cli(*args, cwd=None, env=None):
    return subprocess.run(
        [sys.executable, str(CLI_SCRIPT), *args],
        capture_output=True, text=True, cwd=str(cwd or PROJECT_ROOT), env=env
    )


class TestMetricsCLI:
    """Tests for the metrics command."""

    def test_metrics_json(self, temp_workspace):
        result = run_cli(
            'metrics',
            str(temp_workspace / 'holdings_sample.json'),
            str(temp_workspace / 'market_data_sample.json')
        )

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        snapshot = json.loads(result.stdout)
        assert snapshot['current_value'] == 3185
        assert snapshot['positions_count'] == 4
        assert snapshot['best_performer']['symbol'] == 'AAPL'

    def test_metrics_pretty(self, temp_workspace):
        result = run_cli(
            'metrics',
            str(temp_workspace / 'holdings_sample.json'),
            str(temp_workspace / 'market_data_sample.json'),
            '--pretty'
        )

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        snapshot = json.loads(result.stdout)
        assert snapshot['current_value'] == '$3,185.00'
        assert snapshot['total_pl'] == '$-115.00'
        assert snapshot['worst_performer']['pl_percent'] == '-100.00%'

    def test_missing_input_file(self, temp_workspace):
        result = run_cli('metrics', str(temp_workspace / 'nope.json'), str(temp_workspace / 'nope2.json'))

        assert result.returncode == 1
        assert 'Input file not found' in result.stderr


class TestAllocationCLI:
    """Tests for the allocation command."""

    def test_allocation_pretty(self, temp_workspace):
        result = run_cli(
            'allocation',
            str(temp_workspace / 'holdings_sample.json'),
            str(temp_workspace / 'market_data_sample.json'),
            '--pretty'
        )

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        charts = json.loads(result.stdout)
        assert charts['allocation'][0]['symbol'] == 'AAPL'
        assert charts['allocation'][0]['market_value'] == '$2,000.00'
        assert charts['allocation'][2]['quantity'] == '3.00'
        assert charts['performance'][3]['profit_loss_percent'] == '-100.00%'


class TestHoldingsCLI:
    """Tests for the holdings command."""

    def test_holdings_from_transactions(self, temp_workspace):
        """Test open positions are rebuilt and closed ones dropped."""
        result = run_cli('holdings', str(temp_workspace / 'transactions_sample.json'))

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        output = json.loads(result.stdout)
        assert [h['symbol'] for h in output['holdings']] == ['AAPL', 'MSFT']
        assert output['holdings'][0]['quantity'] == 15
        assert output['holdings'][0]['total_cost'] == 1875
        assert 'performance' not in output

    def test_holdings_with_market_data_pretty(self, temp_workspace):
        """Test lifetime P/L counts realized proceeds of the closed position."""
        result = run_cli(
            'holdings',
            str(temp_workspace / 'transactions_sample.json'),
            '--market-data', str(temp_workspace / 'market_data_sample.json'),
            '--pretty'
        )

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        output = json.loads(result.stdout)
        assert output['holdings'][0] == {
            'symbol': 'AAPL',
            'quantity': '15.00',
            'total_cost': '$1,875.00',
            'avg_purchase_price': '$125.00',
        }
        assert output['performance'] == {'pl': '$1,420.00', 'percent': '33.02%'}

    def test_holdings_not_a_list(self, temp_workspace):
        path = temp_workspace / 'bad.json'
        path.write_text('{"symbol": "AAPL"}')

        result = run_cli('holdings', str(path))

        assert result.returncode == 1
        assert 'Expected a list of transactions' in result.stderr


class TestProjectCLI:
    """Tests for the project command."""

    def test_project_summary(self):
        result = run_cli('project', '--initial', '1000', '--years', '1', '--rate', '10')

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        output = json.loads(result.stdout)
        assert len(output['points']) == 1
        assert abs(output['summary']['final_compounded'] - 1100) < 1e-9
        assert abs(output['summary']['absolute_gain'] - 100) < 1e-9
        assert output['summary']['total_contributed'] == 1000
        assert abs(output['summary']['cagr_percent'] - 10) < 1e-9
        assert abs(output['points'][0]['gain'] - 100) < 1e-9

    def test_project_pretty(self):
        result = run_cli('project', '--initial', '10000', '--monthly', '500', '--years', '30',
                         '--rate', '7', '--pretty')

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        output = json.loads(result.stdout)
        assert output['points'][0]['savings_only'] == '$16.0k'
        assert output['summary']['final_savings_only'] == '$190,000.00'
        assert output['summary']['cagr_percent'].endswith('%')


class TestAnalyzeCLI:
    """Tests for the analyze command."""

    def test_analyze_writes_output(self, temp_workspace):
        output_path = temp_workspace / 'out' / 'analysis.json'

        result = run_cli(
            'analyze',
            str(temp_workspace / 'holdings_sample.json'),
            str(temp_workspace / 'market_data_sample.json'),
            '--output', str(output_path)
        )

        assert result.returncode == 0, f"CLI failed: {result.stderr}"
        assert output_path.exists()

        status = json.loads(result.stdout)
        assert status['status'] == 'completed'
        assert status['positions_count'] == 4

    def test_analyze_missing_input(self, temp_workspace):
        output_path = temp_workspace / 'analysis.json'

        result = run_cli(
            'analyze',
            str(temp_workspace / 'missing.json'),
            str(temp_workspace / 'market_data_sample.json'),
            '--output', str(output_path)
        )

        assert result.returncode == 1
        assert not output_path.exists()


class TestRiskCLI:
    """Tests for the risk command."""

    def test_risk_metrics(self, temp_workspace):
        result = run_cli('risk', str(temp_workspace / 'price_history_sample.json'))

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        output = json.loads(result.stdout)
        assert output['returns_count'] == 5
        assert output['best_year']['year'] == 2024
        assert abs(output['max_drawdown'] - (88 / 120 - 1)) < 1e-12
        assert 'correlation' not in output

    def test_risk_correlation_with_compare(self, temp_workspace):
        """Test a scaled copy of the history correlates perfectly."""
        history = json.loads((temp_workspace / 'price_history_sample.json').read_text())
        benchmark = temp_workspace / 'benchmark.json'
        benchmark.write_text(json.dumps([{'date': r['date'], 'close': r['close'] * 2} for r in history]))

        result = run_cli(
            'risk', str(temp_workspace / 'price_history_sample.json'),
            '--compare', str(benchmark)
        )

        assert result.returncode == 0, f"CLI failed: {result.stderr}"

        correlation = json.loads(result.stdout)['correlation']
        assert set(correlation) == {'price_history_sample', 'benchmark'}
        assert abs(correlation['benchmark']['price_history_sample'] - 1.0) < 1e-9
        assert abs(correlation['benchmark']['benchmark'] - 1.0) < 1e-9

    def test_risk_not_a_list(self, temp_workspace):
        path = temp_workspace / 'bad.json'
        path.write_text('{"close": 1}')

        result = run_cli('risk', str(path))

        assert result.returncode == 1
        assert 'Expected a list' in result.stderr
