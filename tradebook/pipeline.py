"""
Report pipeline.

This module contains the `ReportEngine` class which orchestrates
loading an order log, replaying the fills through a FIFO position
ledger, computing performance metrics and rendering the text report.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence
import logging

from .config.schema import Config
from .data.csv_orders import NoValidOrdersError, OrderCSVLoader
from .ledger.fifo import build_trades
from .ledger.models import OpenPosition, Order, Trade
from .reporting.metrics import Metrics, compute_metrics
from .reporting.report import generate_report, render_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportResult:
    """Everything produced for one order log."""
    source: str
    orders: List[Order]
    trades: List[Trade]
    open_positions: List[OpenPosition]
    metrics: Metrics
    text: str


class ReportEngine:
    """Produce a performance report from an order log."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self.loader = OrderCSVLoader(self.config)

    def process_orders(
        self,
        orders: Sequence[Order],
        source: str,
        generated_on: Optional[datetime] = None,
    ) -> ReportResult:
        """Run the ledger, metrics and renderer over normalised orders.

        Raises
        ------
        NoValidOrdersError
            If `orders` is empty.
        """
        if not orders:
            raise NoValidOrdersError("No valid orders found in the CSV file.")
        logger.info("Processing %d orders...", len(orders))

        trades, open_positions = build_trades(orders, self.config.capital_base)
        metrics = compute_metrics(trades)
        text = render_report(
            trades,
            open_positions,
            metrics,
            source,
            capital_base=self.config.capital_base,
            generated_on=generated_on,
            title=self.config.report.title,
        )
        return ReportResult(
            source=source,
            orders=list(orders),
            trades=trades,
            open_positions=open_positions,
            metrics=metrics,
            text=text,
        )

    def run(self, path: str, generated_on: Optional[datetime] = None) -> ReportResult:
        """Load the order log at `path` and build its report."""
        logger.info("Processing trading CSV file: %s", path)
        orders = self.loader.load(path)
        return self.process_orders(orders, Path(path).name, generated_on=generated_on)

    def write(self, result: ReportResult, out_dir: Optional[str] = None) -> str:
        """Write the report artefacts for `result` and return the directory."""
        out_dir = out_dir or self.config.report.out_dir
        generate_report(
            result.trades,
            result.open_positions,
            result.metrics,
            result.source,
            out_dir=out_dir,
            capital_base=self.config.capital_base,
            title=self.config.report.title,
            chart=self.config.report.chart,
            text=result.text,
        )
        return out_dir
