"""
Orchestrated analysis job - JSON inputs to portfolio analysis JSON.
Loads holdings and quotes, calls pure functions, persists the result.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

from analysis.metrics_aggregator import compute_metrics
from analysis.allocation import compute_allocation, allocation_by_group
from analysis.guardrails import find_data_gaps
from ingestion.transforms.normalizers import normalize_holdings, normalize_market_data
from reports.atomic_writer import write_json_atomic

logger = logging.getLogger(__name__)


class AnalysisJobError(Exception):
    """Raised when analysis inputs cannot be loaded."""
    pass


def load_json(path: Path) -> Any:
    """
    Read a JSON input file.

    Raises:
        AnalysisJobError: If the file is missing or not valid JSON
    """
    path = Path(path)
    if not path.exists():
        raise AnalysisJobError(f"Input file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise AnalysisJobError(f"Invalid JSON in {path}: {e}")


def build_analysis(
    raw_holdings: Any,
    raw_market_data: Any,
    aliases: Optional[Dict[str, List[str]]] = None
) -> Dict[str, Any]:
    """
    Normalize raw inputs and compose the full analysis document.

    Args:
        raw_holdings: Stored holding rows
        raw_market_data: Provider quotes (mapping by symbol or list)
        aliases: Field alias configuration for the quotes

    Returns:
        Dictionary with snapshot, allocation, performance, sector and
        country allocation, data_gaps, metadata
    """
    holdings = normalize_holdings(raw_holdings)
    market_data = normalize_market_data(raw_market_data, aliases)

    snapshot = compute_metrics(holdings, market_data)
    charts = compute_allocation(holdings, market_data)
    data_gaps = find_data_gaps(holdings, market_data)

    return {
        'snapshot': snapshot,
        'allocation': charts['allocation'],
        'performance': charts['performance'],
        'sector_allocation': allocation_by_group(holdings, market_data, 'sector'),
        'country_allocation': allocation_by_group(holdings, market_data, 'country'),
        'data_gaps': data_gaps,
        'metadata': {
            'calculated_at': datetime.now().isoformat(),
            'holdings_count': len(holdings),
            'quotes_count': len(market_data),
        }
    }


def run_portfolio_analysis(
    holdings_path: Path,
    market_data_path: Path,
    output_path: Path,
    aliases: Optional[Dict[str, List[str]]] = None
) -> Dict[str, Any]:
    """
    Run complete portfolio analysis and save results to JSON.

    Args:
        holdings_path: JSON file with a list of holdings
        market_data_path: JSON file with quotes keyed by symbol or as a list
        output_path: Path to save the analysis document
        aliases: Field alias configuration for the quotes

    Returns:
        Dictionary with job results and summary; failures are reported
        with status 'failed' rather than raised
    """
    start_time = datetime.now()

    try:
        raw_holdings = load_json(holdings_path)
        raw_market_data = load_json(market_data_path)
    except AnalysisJobError as e:
        logger.error(str(e))
        return {
            'status': 'failed',
            'error_message': str(e),
            'output_path': None,
            'positions_count': 0,
            'warnings': [],
            'duration_seconds': (datetime.now() - start_time).total_seconds()
        }

    analysis = build_analysis(raw_holdings, raw_market_data, aliases)

    write_result = write_json_atomic(analysis, Path(output_path))
    if write_result['status'] != 'completed':
        return {
            'status': 'failed',
            'error_message': f"Write failed: {write_result.get('error', 'Unknown')}",
            'output_path': None,
            'positions_count': analysis['snapshot']['positions_count'],
            'warnings': analysis['data_gaps'],
            'duration_seconds': (datetime.now() - start_time).total_seconds()
        }

    logger.info(f"Portfolio analysis written to {write_result['output_path']}")

    return {
        'status': 'completed',
        'error_message': None,
        'output_path': write_result['output_path'],
        'positions_count': analysis['snapshot']['positions_count'],
        'warnings': analysis['data_gaps'],
        'duration_seconds': (datetime.now() - start_time).total_seconds()
    }
