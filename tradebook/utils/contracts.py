"""
Futures contract helpers.

Full instrument symbols carry an expiry suffix (``ESZ4``, ``NQH25``):
a month code letter followed by a one or two digit year.  The root
symbol in front of it identifies the product and its contract
multiplier.
"""

from __future__ import annotations

import re
from typing import Mapping

from ..config.schema import CONTRACT_MULTIPLIERS, DEFAULT_MULTIPLIER

# Month codes F (Jan) through Z (Dec)
_EXPIRY_RE = re.compile(r"^([A-Z]+?)[FGHJKMNQUVXZ]\d{1,2}$")
_LEADING_RE = re.compile(r"^([A-Z]+)")


def base_symbol(symbol: str) -> str:
    """Return the root of `symbol` with its expiry code removed.

    ``ESZ4`` and ``ESH25`` both give ``ES``.  Symbols without a month
    code and year fall back to their leading capital letters, and
    symbols that do not start with a capital letter are returned as is.
    """
    if not symbol:
        return ""
    match = _EXPIRY_RE.match(symbol) or _LEADING_RE.match(symbol)
    return match.group(1) if match else symbol


def contract_multiplier(
    symbol: str,
    table: Mapping[str, float] = CONTRACT_MULTIPLIERS,
    default: float = DEFAULT_MULTIPLIER,
) -> float:
    """Look up the value per point for `symbol`'s root, or `default`."""
    return table.get(base_symbol(symbol), default)
