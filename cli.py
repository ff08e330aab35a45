#!/usr/bin/env python3
"""
Main CLI for the portfolio analytics engine.
Usage: python cli.py {metrics,allocation,holdings,project,analyze,risk} [options]
"""

import os
import sys
import json
import logging
import argparse
from pathlib import Path
from typing import Dict, Any

from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from analysis.metrics_aggregator import compute_metrics
from analysis.allocation import compute_allocation
from analysis.holdings import calculate_holdings, calculate_total_performance
from analysis.analysis_job import AnalysisJobError, load_json, run_portfolio_analysis
from analysis.calculations.projection import (
    normalize_params, project, summarize, total_contributed, compound_gains, cagr, projection_frame
)
from analysis.calculations.statistics import (
    RISK_FREE_RATE, daily_returns, std_dev_pct, sharpe_ratio, correlation_matrix
)
from analysis.calculations.drawdown import performance_metrics
from ingestion.field_aliases import FieldAliasError, load_field_aliases
from ingestion.transforms.coercion import to_number
from ingestion.transforms.normalizers import normalize_holdings, normalize_market_data
from reports.formatters import (
    format_currency, format_percent, format_quantity, format_number, format_compact_currency
)

load_dotenv()

logger = logging.getLogger(__name__)


def _configure_logging():
    level_name = os.getenv('LOG_LEVEL', 'WARNING').upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )


def _risk_free_rate() -> float:
    """Annual risk-free rate from RISK_FREE_RATE, default 0.02."""
    raw = os.getenv('RISK_FREE_RATE')
    if raw is None or raw.strip() == '':
        return RISK_FREE_RATE
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid RISK_FREE_RATE '{raw}', using {RISK_FREE_RATE}")
        return RISK_FREE_RATE


def _load_inputs(args) -> tuple:
    aliases = load_field_aliases()
    holdings = normalize_holdings(load_json(Path(args.holdings)))
    market_data = normalize_market_data(load_json(Path(args.market_data)), aliases)
    return holdings, market_data


def _pretty_snapshot(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Render a metrics snapshot as display strings."""
    def performer(entry):
        return {
            'symbol': entry['symbol'],
            'pl': format_currency(entry['pl']),
            'pl_percent': format_percent(entry['pl_percent']),
        }

    return {
        'total_invested': format_currency(snapshot['total_invested']),
        'current_value': format_currency(snapshot['current_value']),
        'total_pl': format_currency(snapshot['total_pl']),
        'total_pl_percent': format_percent(snapshot['total_pl_percent']),
        'daily_pl': format_currency(snapshot['daily_pl']),
        'daily_pl_percent': format_percent(snapshot['daily_pl_percent']),
        'best_performer': performer(snapshot['best_performer']),
        'worst_performer': performer(snapshot['worst_performer']),
        'best_performer_usd': performer(snapshot['best_performer_usd']),
        'worst_performer_usd': performer(snapshot['worst_performer_usd']),
        'positions_count': snapshot['positions_count'],
        'portfolio_beta': format_number(snapshot['portfolio_beta']),
        'sharpe_ratio': format_number(snapshot['sharpe_ratio']),
    }


def _pretty_allocation(charts: Dict[str, Any], holdings) -> Dict[str, Any]:
    quantities = {h['symbol']: h['quantity'] for h in holdings}
    return {
        'allocation': [
            {
                'symbol': entry['symbol'],
                'quantity': format_quantity(quantities.get(entry['symbol'])),
                'market_value': format_currency(entry['market_value']),
                'share_percent': format_percent(entry['share_percent'] * 100),
            }
            for entry in charts['allocation']
        ],
        'performance': [
            {
                'symbol': entry['symbol'],
                'profit_loss': format_currency(entry['profit_loss']),
                'profit_loss_percent': format_percent(entry['profit_loss_percent']),
            }
            for entry in charts['performance']
        ],
    }


def cmd_metrics(args) -> Dict[str, Any]:
    holdings, market_data = _load_inputs(args)
    snapshot = compute_metrics(holdings, market_data)
    return _pretty_snapshot(snapshot) if args.pretty else snapshot


def cmd_allocation(args) -> Dict[str, Any]:
    holdings, market_data = _load_inputs(args)
    charts = compute_allocation(holdings, market_data)
    return _pretty_allocation(charts, holdings) if args.pretty else charts


def cmd_holdings(args) -> Dict[str, Any]:
    transactions = load_json(Path(args.transactions))
    if not isinstance(transactions, list):
        raise AnalysisJobError(f"Expected a list of transactions in {args.transactions}")

    holdings = calculate_holdings(transactions)
    result: Dict[str, Any] = {'holdings': holdings}

    if args.market_data:
        market_data = normalize_market_data(load_json(Path(args.market_data)), load_field_aliases())
        result['performance'] = calculate_total_performance(transactions, holdings, market_data)

    if args.pretty:
        result['holdings'] = [
            {
                'symbol': h['symbol'],
                'quantity': format_quantity(h['quantity']),
                'total_cost': format_currency(h['total_cost']),
                'avg_purchase_price': format_currency(h['avg_purchase_price']),
            }
            for h in holdings
        ]
        if 'performance' in result:
            result['performance'] = {
                'pl': format_currency(result['performance']['pl']),
                'percent': format_percent(result['performance']['percent']),
            }

    return result


def cmd_project(args) -> Dict[str, Any]:
    params = normalize_params({
        'initial_investment': args.initial,
        'monthly_contribution': args.monthly,
        'years': args.years,
        'annual_return_percent': args.rate,
    })
    points = project(params)
    summary = summarize(points)
    contributed = total_contributed(
        params['initial_investment'], params['monthly_contribution'], params['years']
    )
    summary['total_contributed'] = contributed
    summary['compound_gains'] = compound_gains(summary['final_compounded'], contributed)
    # Annualized growth of all contributed capital into the final balance
    summary['cagr_percent'] = cagr(contributed, summary['final_compounded'], params['years'])

    points = projection_frame(points).reset_index().to_dict('records')

    if args.pretty:
        points = [
            {
                'period': p['period'],
                'savings_only': format_compact_currency(p['savings_only']),
                'compounded': format_compact_currency(p['compounded']),
                'gain': format_compact_currency(p['gain']),
            }
            for p in points
        ]
        summary = {
            key: format_percent(value) if key.endswith('_percent') else format_currency(value)
            for key, value in summary.items()
        }

    return {'params': params, 'points': points, 'summary': summary}


def cmd_analyze(args) -> Dict[str, Any]:
    result = run_portfolio_analysis(
        holdings_path=Path(args.holdings),
        market_data_path=Path(args.market_data),
        output_path=Path(args.output),
        aliases=load_field_aliases()
    )
    if result['status'] != 'completed':
        raise AnalysisJobError(result['error_message'])
    return result


def _load_history(path: str) -> list:
    history = load_json(Path(path))
    if not isinstance(history, list):
        raise AnalysisJobError(f"Expected a list of {{date, close}} rows in {path}")
    return history


def _history_returns(history: list):
    closes = [to_number(row.get('close')) for row in history if isinstance(row, dict)]
    return daily_returns([c for c in closes if c is not None])


def cmd_risk(args) -> Dict[str, Any]:
    history = _load_history(args.history)
    returns = _history_returns(history)

    result = {
        'returns_count': int(len(returns)),
        'std_dev_pct': std_dev_pct(returns),
        'sharpe_ratio': sharpe_ratio(returns, risk_free_annual=_risk_free_rate()),
        **performance_metrics(history),
    }

    if args.compare:
        # Series are keyed by file stem
        series = {Path(args.history).stem: returns}
        for path in args.compare:
            series[Path(path).stem] = _history_returns(_load_history(path))
        result['correlation'] = correlation_matrix(series).to_dict()

    if args.pretty:
        def year(entry):
            if entry is None:
                return None
            return {'year': entry['year'], 'return': format_percent(entry['return'] * 100)}

        pretty = {
            'returns_count': result['returns_count'],
            'std_dev_pct': format_percent(result['std_dev_pct']) if result['std_dev_pct'] is not None else 'N/A',
            'sharpe_ratio': format_number(result['sharpe_ratio']),
            'best_year': year(result['best_year']),
            'worst_year': year(result['worst_year']),
            'max_drawdown': format_percent(result['max_drawdown'] * 100),
        }
        if 'correlation' in result:
            pretty['correlation'] = {
                column: {row: format_number(value) for row, value in values.items()}
                for column, values in result['correlation'].items()
            }
        result = pretty

    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Portfolio analytics: metrics, allocation, projections',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py metrics holdings.json quotes.json --pretty
  python cli.py allocation holdings.json quotes.json
  python cli.py holdings transactions.json --market-data quotes.json
  python cli.py project --initial 10000 --monthly 500 --years 30 --rate 7
  python cli.py analyze holdings.json quotes.json --output out/analysis.json
  python cli.py risk history.json --compare benchmark.json
        """
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    for name, handler, help_text in (
        ('metrics', cmd_metrics, 'Portfolio snapshot metrics'),
        ('allocation', cmd_allocation, 'Allocation and P/L chart series'),
        ('analyze', cmd_analyze, 'Full analysis written atomically to JSON'),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('holdings', help='Holdings JSON file')
        sub.add_argument('market_data', help='Market data JSON file')
        sub.set_defaults(handler=handler)
        if name == 'analyze':
            sub.add_argument('--output', required=True, help='Output JSON file path')
        else:
            sub.add_argument('--pretty', action='store_true', help='Render formatted strings')

    hold = subparsers.add_parser('holdings', help='Holdings rebuilt from a transaction history')
    hold.add_argument('transactions', help='Transactions JSON file')
    hold.add_argument('--market-data', help='Market data JSON file for lifetime P/L')
    hold.add_argument('--pretty', action='store_true', help='Render formatted strings')
    hold.set_defaults(handler=cmd_holdings)

    proj = subparsers.add_parser('project', help='Compound growth projection')
    proj.add_argument('--initial', type=float, default=0.0, help='Initial investment')
    proj.add_argument('--monthly', type=float, default=0.0, help='Monthly contribution')
    proj.add_argument('--years', type=float, default=0, help='Horizon in years')
    proj.add_argument('--rate', type=float, default=0.0, help='Annual return percent')
    proj.add_argument('--pretty', action='store_true', help='Render formatted strings')
    proj.set_defaults(handler=cmd_project)

    risk = subparsers.add_parser('risk', help='Risk metrics of a close-price history')
    risk.add_argument('history', help='JSON list of {date, close}')
    risk.add_argument('--compare', action='append', default=[], metavar='HISTORY',
                      help='Another history to correlate daily returns with (repeatable)')
    risk.add_argument('--pretty', action='store_true', help='Render formatted strings')
    risk.set_defaults(handler=cmd_risk)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    _configure_logging()
    args = build_parser().parse_args(argv)

    try:
        result = args.handler(args)
    except (AnalysisJobError, FieldAliasError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=2, default=str))
    sys.exit(0)


if __name__ == '__main__':
    main()
