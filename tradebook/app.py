"""
Application entry point.

This module defines a simple command-line interface for turning a
brokerage order log into a performance report.  It leverages the
modules under `tradebook/` to load configuration, replay the fills and
write the report artefacts.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional
import yaml

from .config.schema import load_config
from .data.csv_orders import OrderLogError
from .pipeline import ReportEngine
from .reporting.metrics import Metrics
from .reporting.report import format_ratio


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def _print_summary(metrics: Metrics) -> None:
    print("\n" + "=" * 60, file=sys.stderr)
    print("TRADING PERFORMANCE SUMMARY", file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    print(f"Total Trades:   {metrics.total_trades}", file=sys.stderr)
    print(f"Win Rate:       {metrics.win_rate:.1f}%", file=sys.stderr)
    print(f"Total P/L:      ${metrics.total_pnl:.2f}", file=sys.stderr)
    print(f"Long P/L:       ${metrics.long_pnl:.2f}", file=sys.stderr)
    print(f"Short P/L:      ${metrics.short_pnl:.2f}", file=sys.stderr)
    print(f"Profit Factor:  {format_ratio(metrics.profit_factor)}", file=sys.stderr)
    print("=" * 60, file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Parse command-line arguments and build the report."""
    parser = argparse.ArgumentParser(description="Futures order log performance report")
    sub = parser.add_subparsers(dest='command', required=True)
    report = sub.add_parser('report', help="Build a report from an order log CSV")
    report.add_argument('csv', help="Path to the order log CSV file")
    report.add_argument('--config', default=None, help="Path to configuration YAML file")
    report.add_argument('--out', default=None, help="Output directory (overrides report.out_dir)")
    report.add_argument('--no-chart', action='store_true', help="Skip the P/L chart")
    report.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError, ValueError, TypeError) as exc:
        logging.error("Error loading configuration %s: %s", args.config, exc)
        return 1
    if args.no_chart:
        config.report.chart = False

    engine = ReportEngine(config)
    try:
        result = engine.run(args.csv)
    except (OrderLogError, FileNotFoundError) as exc:
        logging.error("Error processing CSV file: %s", exc)
        return 1

    out_dir = engine.write(result, args.out)
    print(result.text)
    _print_summary(result.metrics)
    logging.info("Report complete. Results saved to the '%s' directory.", out_dir)
    return 0


if __name__ == '__main__':
    sys.exit(main())
