"""
Performance metrics calculations.

This module provides helpers to compute summary statistics from a list
of realized trades.  The overall figures feed the report header; the
grouped figures feed the per-product and per-side tables.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Callable, Dict, List
import math

from ..ledger.models import LONG, SHORT, Trade


@dataclass(frozen=True)
class Metrics:
    """Aggregate statistics over a sequence of realized trades.

    Percent figures (`win_rate`, `avg_gain`, `avg_loss`, `avg_size`) are
    expressed in percent, not as fractions.  `avg_loss` is an absolute
    value.
    """
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    avg_gain: float = 0.0
    avg_loss: float = 0.0
    total_pnl: float = 0.0
    profit_factor: float = 0.0
    avg_size: float = 0.0
    long_trades: int = 0
    short_trades: int = 0
    long_pnl: float = 0.0
    short_pnl: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class GroupStats:
    """Per-group figures for the breakdown tables."""
    trades: int
    win_rate: float
    total_pnl: float
    avg_pct: float


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_metrics(trades: List[Trade]) -> Metrics:
    """Compute the summary statistics for a list of trades.

    Parameters
    ----------
    trades : list of Trade
        Realized trades, in any order.

    Returns
    -------
    Metrics
        All zero when `trades` is empty.  The profit factor is
        ``math.inf`` when there are winning trades and no losses.
    """
    if not trades:
        return Metrics()

    wins = [t for t in trades if t.pnl > 0]
    losses = [t for t in trades if t.pnl < 0]
    longs = [t for t in trades if t.side == LONG]
    shorts = [t for t in trades if t.side == SHORT]

    gross_profit = sum(t.pnl for t in wins)
    gross_loss = abs(sum(t.pnl for t in losses))
    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    elif gross_profit > 0:
        profit_factor = math.inf
    else:
        # Only break-even trades
        profit_factor = 0.0

    return Metrics(
        total_trades=len(trades),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=len(wins) / len(trades) * 100,
        avg_gain=_mean([t.pct_gain for t in wins]),
        avg_loss=abs(_mean([t.pct_gain for t in losses])),
        total_pnl=sum(t.pnl for t in trades),
        profit_factor=profit_factor,
        avg_size=_mean([t.size_pct for t in trades]),
        long_trades=len(longs),
        short_trades=len(shorts),
        long_pnl=sum(t.pnl for t in longs),
        short_pnl=sum(t.pnl for t in shorts),
    )


def group_stats(trades: List[Trade], key: Callable[[Trade], str]) -> Dict[str, GroupStats]:
    """Group `trades` by `key` and compute per-group figures.

    The returned dictionary is ordered by ascending key.
    """
    groups: Dict[str, List[Trade]] = {}
    for trade in trades:
        groups.setdefault(key(trade), []).append(trade)

    stats: Dict[str, GroupStats] = {}
    for name in sorted(groups):
        members = groups[name]
        wins = sum(1 for t in members if t.pnl > 0)
        stats[name] = GroupStats(
            trades=len(members),
            win_rate=wins / len(members) * 100,
            total_pnl=sum(t.pnl for t in members),
            avg_pct=_mean([t.pct_gain for t in members]),
        )
    return stats
