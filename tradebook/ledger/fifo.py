"""
FIFO position ledger.

This module contains the `PositionLedger` class which replays fills in
chronological order and turns them into realized trades.  Each symbol
keeps a net signed position and a queue of open lots, oldest first.
An opposing fill closes lots from the front of the queue; whatever is
left of the fill after the position has been flattened opens a new lot
in the fill's own direction, so a single order can flip a position
from long to short or back.

A ledger instance covers exactly one report.  Build a new one for every
order log.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Tuple
import logging

from ..config.schema import CAPITAL_BASE
from ..utils.timeutils import minutes_between
from .models import LONG, SHORT, Lot, OpenPosition, Order, Trade

logger = logging.getLogger(__name__)


def percent_gain(entry_price: float, exit_price: float, side: str) -> float:
    """Return the gain in percent of entry price for a `side` position.

    A zero entry price yields 0.
    """
    if entry_price == 0:
        return 0.0
    move = exit_price - entry_price if side == LONG else entry_price - exit_price
    return (move / entry_price) * 100


@dataclass
class SymbolBook:
    """Net position and open lots for one symbol."""
    position: int = 0
    lots: Deque[Lot] = field(default_factory=deque)


class PositionLedger:
    """Match fills against open lots, first in first out.

    Parameters
    ----------
    capital_base : float
        Reference notional used for the `size_pct` of trades and open
        positions.
    """

    def __init__(self, capital_base: float = CAPITAL_BASE) -> None:
        if capital_base <= 0:
            raise ValueError(f"capital_base must be positive, got {capital_base}")
        self.capital_base = capital_base
        self._books: Dict[str, SymbolBook] = {}
        self._next_trade_id = 1

    def _book(self, symbol: str) -> SymbolBook:
        book = self._books.get(symbol)
        if book is None:
            book = self._books[symbol] = SymbolBook()
        return book

    def position(self, symbol: str) -> int:
        """Return the net signed position for `symbol` (0 if never seen)."""
        book = self._books.get(symbol)
        return book.position if book else 0

    def lots(self, symbol: str) -> List[Lot]:
        """Return a snapshot of the open lots for `symbol`, oldest first."""
        book = self._books.get(symbol)
        return [Lot(l.quantity, l.price, l.timestamp, l.order) for l in book.lots] if book else []

    def _close(self, lot: Lot, order: Order, quantity: int) -> Trade:
        """Build the trade closing `quantity` units of `lot` at the order's price."""
        entry, exit_ = lot.price, order.price
        side = lot.side
        move = exit_ - entry if side == LONG else entry - exit_
        trade = Trade(
            trade_id=self._next_trade_id,
            symbol=order.symbol,
            base_symbol=order.base_symbol,
            side=side,
            quantity=quantity,
            entry_time=lot.timestamp,
            exit_time=order.timestamp,
            entry_price=entry,
            exit_price=exit_,
            pnl=move * order.multiplier * quantity,
            pct_gain=percent_gain(entry, exit_, side),
            size_pct=(entry * order.multiplier / self.capital_base) * 100,
            duration_minutes=minutes_between(lot.timestamp, order.timestamp),
            entry_tag=lot.order.tag,
            exit_tag=order.tag,
        )
        self._next_trade_id += 1
        logger.debug(
            "Trade %d: %s %s x%d %.2f -> %.2f pnl=%.2f",
            trade.trade_id, trade.symbol, side, quantity, entry, exit_, trade.pnl,
        )
        return trade

    def apply(self, order: Order) -> List[Trade]:
        """Apply one fill and return the trades it realizes.

        Orders must be applied in timestamp order.  Trades closing
        several lots are returned oldest lot first.

        Raises
        ------
        ValueError
            If the order has a zero quantity or a non-positive price.
        """
        if order.quantity == 0:
            raise ValueError(f"Order for {order.symbol} at {order.timestamp} has zero quantity")
        if order.price <= 0:
            raise ValueError(f"Order for {order.symbol} at {order.timestamp} has non-positive price {order.price}")

        book = self._book(order.symbol)
        trades: List[Trade] = []
        size = abs(order.quantity)
        direction = 1 if order.quantity > 0 else -1

        if book.position * order.quantity < 0:
            to_close = min(size, abs(book.position))
            remaining = to_close
            while remaining > 0 and book.lots:
                lot = book.lots[0]
                close_qty = min(remaining, abs(lot.quantity))
                trades.append(self._close(lot, order, close_qty))
                if close_qty < abs(lot.quantity):
                    # Shrink toward zero, keeping the lot's sign
                    lot.quantity -= close_qty if lot.quantity > 0 else -close_qty
                else:
                    book.lots.popleft()
                remaining -= close_qty
            leftover = size - to_close
        else:
            leftover = size

        if leftover > 0:
            book.lots.append(Lot(direction * leftover, order.price, order.timestamp, order))

        book.position += order.quantity
        return trades

    def open_positions(self) -> List[OpenPosition]:
        """Summarise the remaining inventory per symbol, sorted by symbol."""
        positions: List[OpenPosition] = []
        for symbol in sorted(self._books):
            book = self._books[symbol]
            total_qty = sum(abs(lot.quantity) for lot in book.lots)
            if not book.lots or total_qty == 0:
                continue
            cost_basis = sum(abs(lot.quantity) * lot.price for lot in book.lots)
            positions.append(
                OpenPosition(
                    symbol=symbol,
                    side=LONG if book.position > 0 else SHORT,
                    quantity=abs(book.position),
                    avg_price=cost_basis / total_qty,
                    cost_basis=cost_basis,
                    size_pct=(cost_basis / self.capital_base) * 100,
                    first_entry=book.lots[0].timestamp,
                )
            )
        return positions


def build_trades(
    orders: Iterable[Order],
    capital_base: float = CAPITAL_BASE,
) -> Tuple[List[Trade], List[OpenPosition]]:
    """Replay `orders` through a fresh ledger.

    Returns
    -------
    trades : list of Trade
        Realized trades in generation order.
    open_positions : list of OpenPosition
        Remaining inventory, sorted by symbol.
    """
    ledger = PositionLedger(capital_base)
    trades: List[Trade] = []
    for order in orders:
        trades.extend(ledger.apply(order))
    open_positions = ledger.open_positions()
    logger.info("Built %d completed trades", len(trades))
    logger.info("Found %d open positions", len(open_positions))
    return trades, open_positions
