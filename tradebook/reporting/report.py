"""
Report generation utilities.

This module turns the reconstructed trades into human-readable
artefacts: the fixed-width text report, CSV files of realized trades
and open positions, a JSON summary of the performance metrics and a
PNG chart of cumulative P/L.

The text layout is read back by `tradebook.reporting.parser`, so
section headers, column widths and row order must stay in step with
`parse_report()`.
"""

from __future__ import annotations

import os
import json
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional
import pandas as pd
import matplotlib

# Use non-interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..config.schema import CAPITAL_BASE
from ..ledger.models import FUTURE, LONG, SHORT, OpenPosition, Trade
from ..utils.timeutils import format_generated_on, format_timestamp
from .metrics import Metrics, group_stats

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "FUTURES TRADING PERFORMANCE REPORT"

TRADES_HEADER = (
    "ID   Symbol       Type     Pos    Entry Time          Exit Time           "
    "Qty    Entry      Exit       Profit       Gain %     Size %"
)
OPEN_HEADER = "Symbol       Type     Pos    Qty    Price      Cost Basis     Size %"
PRODUCT_HEADER = "Symbol       Type     Trades   Win %    Total P/L       Avg %"
SIDE_HEADER = "Position   Trades   Win %    Total P/L       Avg %"


def _money(value: float) -> str:
    return f"${value:.2f}"


def format_ratio(value: float) -> str:
    """Format a ratio with two decimals, spelling out infinities."""
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return f"{value:.2f}"


def _row(*cells: str) -> str:
    return " ".join(cells)


def _trade_row(trade: Trade) -> str:
    return _row(
        str(trade.trade_id).ljust(4),
        trade.symbol.ljust(12),
        trade.instrument.ljust(8),
        trade.side.ljust(6),
        format_timestamp(trade.entry_time).ljust(19),
        format_timestamp(trade.exit_time).ljust(19),
        str(trade.quantity).ljust(6),
        _money(trade.entry_price).ljust(10),
        _money(trade.exit_price).ljust(10),
        _money(trade.pnl).ljust(12),
        f"{trade.pct_gain:.1f}%".ljust(10),
        f"{trade.size_pct:.1f}%",
    )


def _open_row(pos: OpenPosition) -> str:
    return _row(
        pos.symbol.ljust(12),
        pos.instrument.ljust(8),
        pos.side.ljust(6),
        str(pos.quantity).ljust(6),
        _money(pos.avg_price).ljust(10),
        _money(pos.cost_basis).ljust(14),
        f"{pos.size_pct:.1f}%",
    )


def render_report(
    trades: List[Trade],
    open_positions: List[OpenPosition],
    metrics: Metrics,
    source: str,
    capital_base: float = CAPITAL_BASE,
    generated_on: Optional[datetime] = None,
    title: str = DEFAULT_TITLE,
) -> str:
    """Serialise trades, open positions and metrics as the text report.

    The output only depends on the arguments; pass `generated_on` to pin
    the header timestamp.
    """
    lines: List[str] = [
        "=" * 80,
        title,
        f"Generated on: {format_generated_on(generated_on)}",
        "=" * 80,
        "",
    ]

    lines += [
        "OVERALL PERFORMANCE",
        "-" * 60,
        f"Total Trades:    {metrics.total_trades}",
        f"Winning Trades:  {metrics.winning_trades}",
        f"Losing Trades:   {metrics.losing_trades}",
        f"Win Rate:        {metrics.win_rate:.1f}%",
        f"Average Gain:    {metrics.avg_gain:.2f}%",
        f"Average Loss:    {metrics.avg_loss:.2f}%",
        f"Total P/L:       {_money(metrics.total_pnl)}",
        f"Profit Factor:   {format_ratio(metrics.profit_factor)}",
        f"Average Size:    {metrics.avg_size:.2f}% of capital",
        "",
    ]

    lines += [
        "POSITION BREAKDOWN",
        f"Long Trades:     {metrics.long_trades}",
        f"Short Trades:    {metrics.short_trades}",
        f"Long P/L:        {_money(metrics.long_pnl)}",
        f"Short P/L:       {_money(metrics.short_pnl)}",
        "-" * 60,
        "",
    ]

    lines += [f"REALIZED TRADES ({len(trades)})", "-" * 130, TRADES_HEADER, "-" * 130]
    lines += [_trade_row(t) for t in trades]
    lines.append("")

    if open_positions:
        lines += [f"OPEN POSITIONS ({len(open_positions)})", "-" * 80, OPEN_HEADER, "-" * 80]
        lines += [_open_row(p) for p in sorted(open_positions, key=lambda p: p.symbol)]
        lines.append("")

    lines += ["PERFORMANCE BY PRODUCT", "-" * 70, PRODUCT_HEADER, "-" * 70]
    for product, stats in group_stats(trades, lambda t: t.base_symbol).items():
        lines.append(_row(
            product.ljust(12),
            FUTURE.ljust(8),
            str(stats.trades).ljust(8),
            f"{stats.win_rate:.1f}%".ljust(8),
            _money(stats.total_pnl).ljust(15),
            f"{stats.avg_pct:.2f}%",
        ))
    lines.append("")

    lines += ["PERFORMANCE BY POSITION TYPE", "-" * 70, SIDE_HEADER, "-" * 70]
    by_side = group_stats(trades, lambda t: t.side)
    for side, label in ((LONG, "Long"), (SHORT, "Short")):
        stats = by_side.get(side)
        if stats is None:
            continue
        lines.append(_row(
            label.ljust(10),
            str(stats.trades).ljust(8),
            f"{stats.win_rate:.1f}%".ljust(8),
            _money(stats.total_pnl).ljust(15),
            f"{stats.avg_pct:.2f}%",
        ))
    lines.append("")

    lines += [
        f"Source: {source}",
        f"Capital base: ${int(round(capital_base)):,}",
    ]
    return "\n".join(lines)


def trades_frame(trades: List[Trade]) -> pd.DataFrame:
    """Tabulate realized trades, one row per trade."""
    return pd.DataFrame(
        [
            {
                'trade_id': t.trade_id,
                'symbol': t.symbol,
                'base_symbol': t.base_symbol,
                'side': t.side,
                'quantity': t.quantity,
                'timestamp_entry': t.entry_time.isoformat(),
                'timestamp_exit': t.exit_time.isoformat(),
                'entry': t.entry_price,
                'exit': t.exit_price,
                'pnl': t.pnl,
                'pct_gain': t.pct_gain,
                'size_pct': t.size_pct,
                'duration_minutes': t.duration_minutes,
                'entry_tag': t.entry_tag,
                'exit_tag': t.exit_tag,
            }
            for t in trades
        ]
    )


def _summary(metrics: Metrics, open_positions: List[OpenPosition], source: str, capital_base: float) -> Dict:
    data = metrics.to_dict()
    if math.isinf(data['profit_factor']):
        # JSON has no infinity literal
        data['profit_factor'] = None
    data['open_positions'] = len(open_positions)
    data['source'] = source
    data['capital_base'] = capital_base
    return data


def generate_report(
    trades: List[Trade],
    open_positions: List[OpenPosition],
    metrics: Metrics,
    source: str,
    out_dir: str = "results",
    capital_base: float = CAPITAL_BASE,
    title: str = DEFAULT_TITLE,
    chart: bool = True,
    generated_on: Optional[datetime] = None,
    text: Optional[str] = None,
) -> str:
    """Generate report files for a processed order log.

    Creates the output directory if it does not exist and writes the
    following files:

    - `report.txt` – the text report
    - `trades.csv` – detailed list of realized trades
    - `open_positions.csv` – remaining inventory per symbol
    - `summary.json` – performance metrics
    - `pnl_curve.png` – cumulative realized P/L (when `chart` is set)

    Pass `text` to write an already rendered report instead of rendering
    a new one.  Returns the report text.
    """
    os.makedirs(out_dir, exist_ok=True)

    if text is None:
        text = render_report(
            trades, open_positions, metrics, source,
            capital_base=capital_base, generated_on=generated_on, title=title,
        )
    with open(os.path.join(out_dir, 'report.txt'), 'w', encoding='utf-8') as fh:
        fh.write(text)

    df_trades = trades_frame(trades)
    df_trades.to_csv(os.path.join(out_dir, 'trades.csv'), index=False)

    df_open = pd.DataFrame(
        [
            {
                'symbol': p.symbol,
                'side': p.side,
                'quantity': p.quantity,
                'avg_price': p.avg_price,
                'cost_basis': p.cost_basis,
                'size_pct': p.size_pct,
                'first_entry': p.first_entry.isoformat(),
            }
            for p in open_positions
        ]
    )
    df_open.to_csv(os.path.join(out_dir, 'open_positions.csv'), index=False)

    summary_path = os.path.join(out_dir, 'summary.json')
    with open(summary_path, 'w', encoding='utf-8') as fh:
        json.dump(_summary(metrics, open_positions, source, capital_base), fh, indent=2, ensure_ascii=False)

    if chart:
        fig, ax = plt.subplots(figsize=(10, 4))
        if not df_trades.empty:
            ax.plot(
                pd.to_datetime(df_trades['timestamp_exit']),
                df_trades['pnl'].cumsum(),
                linewidth=1.5,
            )
            ax.axhline(0.0, color='grey', linewidth=0.8)
            ax.set_title('Cumulative Realized P/L')
            ax.set_xlabel('Exit time')
            ax.set_ylabel('P/L ($)')
            fig.autofmt_xdate()
        fig.tight_layout()
        fig.savefig(os.path.join(out_dir, 'pnl_curve.png'))
        plt.close(fig)

    logger.info("Report written to %s", out_dir)
    return text
