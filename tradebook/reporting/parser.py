"""
Report text parser.

Display front ends consume the text report rather than the in-memory
objects, so this module reads a rendered report back into structured
records.  It relies on the layout produced by `render_report()`: fixed
section headers, label prefixes in the summary blocks and a fixed
number of whitespace-separated tokens per table row.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import math


class ReportParseError(ValueError):
    """Raised when text does not look like a rendered report."""


@dataclass
class ParsedTrade:
    trade_id: int
    symbol: str
    instrument: str
    side: str
    entry_time: str
    exit_time: str
    quantity: int
    entry_price: float
    exit_price: float
    pnl: float
    pct_gain: float
    size_pct: float


@dataclass
class ParsedOpenPosition:
    symbol: str
    instrument: str
    side: str
    quantity: int
    avg_price: float
    cost_basis: float
    size_pct: float


@dataclass
class ParsedGroup:
    name: str
    trades: int
    win_rate: float
    total_pnl: float
    avg_pct: float
    instrument: Optional[str] = None


@dataclass
class ParsedReport:
    title: str = ""
    generated_on: str = ""
    overall: Dict[str, float] = field(default_factory=dict)
    breakdown: Dict[str, float] = field(default_factory=dict)
    trades: List[ParsedTrade] = field(default_factory=list)
    open_positions: List[ParsedOpenPosition] = field(default_factory=list)
    by_product: List[ParsedGroup] = field(default_factory=list)
    by_position: List[ParsedGroup] = field(default_factory=list)
    source: str = ""
    capital_base: float = 0.0


OVERALL_LABELS = {
    'Total Trades:': 'total_trades',
    'Winning Trades:': 'winning_trades',
    'Losing Trades:': 'losing_trades',
    'Win Rate:': 'win_rate',
    'Average Gain:': 'avg_gain',
    'Average Loss:': 'avg_loss',
    'Total P/L:': 'total_pnl',
    'Profit Factor:': 'profit_factor',
    'Average Size:': 'avg_size',
}

BREAKDOWN_LABELS = {
    'Long Trades:': 'long_trades',
    'Short Trades:': 'short_trades',
    'Long P/L:': 'long_pnl',
    'Short P/L:': 'short_pnl',
}


def parse_number(token: str) -> float:
    """Parse ``$1,234.50``, ``-3.2%``, ``$-12.00`` or ``Infinity``."""
    text = token.strip()
    if text.endswith("of capital"):
        text = text[: -len("of capital")].strip()
    text = text.replace("$", "").replace("%", "").replace(",", "")
    if text in ("Infinity", "inf"):
        return math.inf
    if text in ("-Infinity", "-inf"):
        return -math.inf
    try:
        return float(text)
    except ValueError as exc:
        raise ReportParseError(f"Not a number: {token!r}") from exc


def _find(lines: List[str], marker: str) -> int:
    for idx, line in enumerate(lines):
        if line.startswith(marker):
            return idx
    return -1


def _labelled(lines: List[str], start: int, labels: Dict[str, str]) -> Dict[str, float]:
    values: Dict[str, float] = {}
    for line in lines[start:start + len(labels) + 2]:
        for label, key in labels.items():
            if line.startswith(label):
                values[key] = parse_number(line[len(label):])
    missing = [key for key in labels.values() if key not in values]
    if missing:
        raise ReportParseError(f"Missing summary fields: {missing}")
    return values


def _table_rows(lines: List[str], header_idx: int, width: int) -> List[List[str]]:
    """Collect rows with `width` tokens following a table header.

    The header is followed by a rule, a column title line and another
    rule.  Rows end at the first blank or rule line.
    """
    rows: List[List[str]] = []
    for line in lines[header_idx + 4:]:
        if not line.strip() or line.startswith("---"):
            break
        parts = line.split()
        if len(parts) != width:
            raise ReportParseError(f"Expected {width} fields, got {len(parts)}: {line!r}")
        rows.append(parts)
    return rows


def _group(parts: List[str], with_type: bool) -> ParsedGroup:
    if with_type:
        name, instrument, rest = parts[0], parts[1], parts[2:]
    else:
        name, instrument, rest = parts[0], None, parts[1:]
    return ParsedGroup(
        name=name,
        instrument=instrument,
        trades=int(rest[0]),
        win_rate=parse_number(rest[1]),
        total_pnl=parse_number(rest[2]),
        avg_pct=parse_number(rest[3]),
    )


def parse_report(text: str) -> ParsedReport:
    """Parse a rendered report into a `ParsedReport`.

    Raises
    ------
    ReportParseError
        If a mandatory section is missing or a row is malformed.
    """
    lines = text.split("\n")
    report = ParsedReport()

    generated = _find(lines, "Generated on: ")
    if generated > 0:
        report.title = lines[generated - 1]
        report.generated_on = lines[generated][len("Generated on: "):]

    required = (
        "OVERALL PERFORMANCE",
        "POSITION BREAKDOWN",
        "REALIZED TRADES (",
        "PERFORMANCE BY PRODUCT",
        "PERFORMANCE BY POSITION TYPE",
    )
    index = {marker: _find(lines, marker) for marker in required}
    missing = [marker for marker, idx in index.items() if idx < 0]
    if missing:
        raise ReportParseError(f"Missing report sections: {missing}")

    report.overall = _labelled(lines, index["OVERALL PERFORMANCE"], OVERALL_LABELS)
    report.breakdown = _labelled(lines, index["POSITION BREAKDOWN"], BREAKDOWN_LABELS)

    for parts in _table_rows(lines, index["REALIZED TRADES ("], 14):
        report.trades.append(
            ParsedTrade(
                trade_id=int(parts[0]),
                symbol=parts[1],
                instrument=parts[2],
                side=parts[3],
                entry_time=f"{parts[4]} {parts[5]}",
                exit_time=f"{parts[6]} {parts[7]}",
                quantity=int(parts[8]),
                entry_price=parse_number(parts[9]),
                exit_price=parse_number(parts[10]),
                pnl=parse_number(parts[11]),
                pct_gain=parse_number(parts[12]),
                size_pct=parse_number(parts[13]),
            )
        )

    open_idx = _find(lines, "OPEN POSITIONS (")
    if open_idx >= 0:
        for parts in _table_rows(lines, open_idx, 7):
            report.open_positions.append(
                ParsedOpenPosition(
                    symbol=parts[0],
                    instrument=parts[1],
                    side=parts[2],
                    quantity=int(parts[3]),
                    avg_price=parse_number(parts[4]),
                    cost_basis=parse_number(parts[5]),
                    size_pct=parse_number(parts[6]),
                )
            )

    report.by_product = [
        _group(parts, with_type=True)
        for parts in _table_rows(lines, index["PERFORMANCE BY PRODUCT"], 6)
    ]
    report.by_position = [
        _group(parts, with_type=False)
        for parts in _table_rows(lines, index["PERFORMANCE BY POSITION TYPE"], 5)
    ]

    source = _find(lines, "Source: ")
    if source >= 0:
        report.source = lines[source][len("Source: "):]
    capital = _find(lines, "Capital base: ")
    if capital >= 0:
        report.capital_base = parse_number(lines[capital][len("Capital base: "):])

    return report
