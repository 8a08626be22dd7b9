"""
Order, lot, trade and open position models.

These dataclasses represent the objects passed between the order
loader, the position ledger and the reporting layer.  Orders, trades
and open positions are frozen once built; only the ledger's internal
`Lot` records change while a position is being worked down.
"""

from __future__ import annotations

from dataclasses import dataclass
import pandas as pd


LONG = 'long'
SHORT = 'short'
FUTURE = 'future'


@dataclass(frozen=True)
class Order:
    """A single fill from the order log.

    `quantity` is signed: positive for buys, negative for sells.
    """
    timestamp: pd.Timestamp
    symbol: str
    base_symbol: str
    price: float
    quantity: int
    multiplier: float
    tag: str = ""
    order_type: str = ""
    status: str = ""
    value: float = 0.0


@dataclass
class Lot:
    """An unclosed slice of a position, matched FIFO."""
    quantity: int  # signed remaining quantity
    price: float
    timestamp: pd.Timestamp
    order: Order

    @property
    def side(self) -> str:
        return LONG if self.quantity > 0 else SHORT


@dataclass(frozen=True)
class Trade:
    """A realized close of (part of) a lot."""
    trade_id: int
    symbol: str
    base_symbol: str
    side: str  # side of the lot being closed: 'long' or 'short'
    quantity: int
    entry_time: pd.Timestamp
    exit_time: pd.Timestamp
    entry_price: float
    exit_price: float
    pnl: float
    pct_gain: float
    size_pct: float
    duration_minutes: float
    entry_tag: str = ""
    exit_tag: str = ""
    instrument: str = FUTURE


@dataclass(frozen=True)
class OpenPosition:
    """Inventory left for a symbol once every order has been applied."""
    symbol: str
    side: str
    quantity: int
    avg_price: float
    cost_basis: float
    size_pct: float
    first_entry: pd.Timestamp
    instrument: str = FUTURE
