import os
import sys
import json
import math
import tempfile
from datetime import datetime
import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tradebook.ledger.fifo import build_trades
from tradebook.ledger.models import Order
from tradebook.reporting.metrics import compute_metrics
from tradebook.reporting.parser import ReportParseError, parse_number, parse_report
from tradebook.reporting.report import format_ratio, generate_report, render_report
from tradebook.utils.contracts import base_symbol, contract_multiplier

import unittest

GENERATED_ON = datetime(2024, 1, 5, 15, 7, 9)


def make_order(ts: str, quantity: int, price: float, symbol: str) -> Order:
    return Order(
        timestamp=pd.Timestamp(ts),
        symbol=symbol,
        base_symbol=base_symbol(symbol),
        price=price,
        quantity=quantity,
        multiplier=contract_multiplier(symbol),
    )


def sample_orders():
    return [
        make_order("2024-01-02 09:30:00", 3, 100.0, "ESZ4"),
        make_order("2024-01-02 09:45:00", -2, 200.0, "NQZ4"),
        make_order("2024-01-02 10:30:00", -5, 110.0, "ESZ4"),
        make_order("2024-01-02 11:00:00", 1, 210.0, "NQZ4"),
        make_order("2024-01-02 11:15:00", 1, 2000.0, "GCG5"),
    ]


def sample_report():
    trades, open_positions = build_trades(sample_orders())
    metrics = compute_metrics(trades)
    text = render_report(trades, open_positions, metrics, "orders.csv", generated_on=GENERATED_ON)
    return trades, open_positions, metrics, text


class TestRenderReport(unittest.TestCase):
    def test_header_and_summary_lines(self) -> None:
        _, _, _, text = sample_report()
        lines = text.split("\n")
        self.assertEqual(lines[0], "=" * 80)
        self.assertEqual(lines[1], "FUTURES TRADING PERFORMANCE REPORT")
        self.assertEqual(lines[2], "Generated on: 1/5/2024, 3:07:09 PM")
        self.assertEqual(lines[3], "=" * 80)
        start = lines.index("OVERALL PERFORMANCE")
        self.assertEqual(lines[start + 1], "-" * 60)
        self.assertEqual(lines[start + 2:start + 11], [
            "Total Trades:    2",
            "Winning Trades:  1",
            "Losing Trades:   1",
            "Win Rate:        50.0%",
            "Average Gain:    10.00%",
            "Average Loss:    5.00%",
            "Total P/L:       $1300.00",
            "Profit Factor:   7.50",
            "Average Size:    4.50% of capital",
        ])
        start = lines.index("POSITION BREAKDOWN")
        self.assertEqual(lines[start + 1:start + 5], [
            "Long Trades:     1",
            "Short Trades:    1",
            "Long P/L:        $1500.00",
            "Short P/L:       $-200.00",
        ])
        self.assertEqual(lines[-2], "Source: orders.csv")
        self.assertEqual(lines[-1], "Capital base: $100,000")

    def test_section_order(self) -> None:
        _, _, _, text = sample_report()
        headers = [
            "OVERALL PERFORMANCE",
            "POSITION BREAKDOWN",
            "REALIZED TRADES (2)",
            "OPEN POSITIONS (3)",
            "PERFORMANCE BY PRODUCT",
            "PERFORMANCE BY POSITION TYPE",
            "Source: orders.csv",
        ]
        positions = [text.index(h) for h in headers]
        self.assertEqual(positions, sorted(positions))

    def test_trade_rows_have_fourteen_fields(self) -> None:
        _, _, _, text = sample_report()
        lines = text.split("\n")
        start = lines.index("REALIZED TRADES (2)")
        self.assertEqual(lines[start + 1], "-" * 130)
        self.assertEqual(lines[start + 3], "-" * 130)
        first = lines[start + 4]
        self.assertEqual(first.split(), [
            "1", "ESZ4", "future", "long", "2024-01-02", "09:30:00", "2024-01-02", "10:30:00",
            "3", "$100.00", "$110.00", "$1500.00", "10.0%", "5.0%",
        ])
        self.assertTrue(first.startswith("1    ESZ4         future   long   2024-01-02 09:30:00 "))
        second = lines[start + 5].split()
        self.assertEqual(len(second), 14)
        self.assertEqual(second[3], "short")
        self.assertEqual(second[11], "$-200.00")
        self.assertEqual(lines[start + 6], "")

    def test_open_positions_and_breakdowns(self) -> None:
        _, _, _, text = sample_report()
        lines = text.split("\n")
        start = lines.index("OPEN POSITIONS (3)")
        rows = [l.split() for l in lines[start + 4:start + 7]]
        self.assertEqual([r[0] for r in rows], ["ESZ4", "GCG5", "NQZ4"])
        self.assertEqual(rows[0], ["ESZ4", "future", "short", "2", "$110.00", "$220.00", "0.2%"])

        start = lines.index("PERFORMANCE BY PRODUCT")
        self.assertEqual(lines[start + 4].split(), ["ES", "future", "1", "100.0%", "$1500.00", "10.00%"])
        self.assertEqual(lines[start + 5].split(), ["NQ", "future", "1", "0.0%", "$-200.00", "-5.00%"])

        start = lines.index("PERFORMANCE BY POSITION TYPE")
        self.assertEqual(lines[start + 4].split(), ["Long", "1", "100.0%", "$1500.00", "10.00%"])
        self.assertEqual(lines[start + 5].split(), ["Short", "1", "0.0%", "$-200.00", "-5.00%"])

    def test_no_trades_omits_open_section_when_flat(self) -> None:
        text = render_report([], [], compute_metrics([]), "empty.csv", generated_on=GENERATED_ON)
        self.assertIn("REALIZED TRADES (0)", text)
        self.assertNotIn("OPEN POSITIONS", text)
        self.assertIn("Profit Factor:   0.00", text)

    def test_infinite_profit_factor(self) -> None:
        trades, open_positions = build_trades([
            make_order("2024-01-02 09:30:00", 1, 100.0, "ESZ4"),
            make_order("2024-01-02 09:40:00", -1, 101.0, "ESZ4"),
        ])
        text = render_report(trades, open_positions, compute_metrics(trades), "x.csv",
                             generated_on=GENERATED_ON)
        self.assertIn("Profit Factor:   Infinity", text)

    def test_format_ratio(self) -> None:
        self.assertEqual(format_ratio(math.inf), "Infinity")
        self.assertEqual(format_ratio(-math.inf), "-Infinity")
        self.assertEqual(format_ratio(1.5), "1.50")
        self.assertEqual(format_ratio(0), "0.00")


class TestReportRoundTrip(unittest.TestCase):
    def test_parse_reproduces_numbers(self) -> None:
        trades, open_positions, metrics, text = sample_report()
        parsed = parse_report(text)

        self.assertEqual(parsed.title, "FUTURES TRADING PERFORMANCE REPORT")
        self.assertEqual(parsed.generated_on, "1/5/2024, 3:07:09 PM")
        self.assertEqual(parsed.source, "orders.csv")
        self.assertEqual(parsed.capital_base, 100000.0)

        self.assertEqual(parsed.overall['total_trades'], metrics.total_trades)
        self.assertEqual(parsed.overall['winning_trades'], metrics.winning_trades)
        self.assertEqual(parsed.overall['losing_trades'], metrics.losing_trades)
        self.assertAlmostEqual(parsed.overall['win_rate'], metrics.win_rate, places=1)
        self.assertAlmostEqual(parsed.overall['avg_gain'], metrics.avg_gain, places=2)
        self.assertAlmostEqual(parsed.overall['avg_loss'], metrics.avg_loss, places=2)
        self.assertAlmostEqual(parsed.overall['total_pnl'], metrics.total_pnl, places=2)
        self.assertAlmostEqual(parsed.overall['profit_factor'], metrics.profit_factor, places=2)
        self.assertAlmostEqual(parsed.overall['avg_size'], metrics.avg_size, places=2)
        self.assertEqual(parsed.breakdown['long_trades'], metrics.long_trades)
        self.assertEqual(parsed.breakdown['short_trades'], metrics.short_trades)
        self.assertAlmostEqual(parsed.breakdown['long_pnl'], metrics.long_pnl, places=2)
        self.assertAlmostEqual(parsed.breakdown['short_pnl'], metrics.short_pnl, places=2)

        self.assertEqual(len(parsed.trades), len(trades))
        for row, trade in zip(parsed.trades, trades):
            self.assertEqual(row.trade_id, trade.trade_id)
            self.assertEqual(row.symbol, trade.symbol)
            self.assertEqual(row.side, trade.side)
            self.assertEqual(row.quantity, trade.quantity)
            self.assertEqual(pd.Timestamp(row.entry_time), trade.entry_time)
            self.assertEqual(pd.Timestamp(row.exit_time), trade.exit_time)
            self.assertAlmostEqual(row.entry_price, trade.entry_price, places=2)
            self.assertAlmostEqual(row.exit_price, trade.exit_price, places=2)
            self.assertAlmostEqual(row.pnl, trade.pnl, places=2)
            self.assertAlmostEqual(row.pct_gain, trade.pct_gain, places=1)
            self.assertAlmostEqual(row.size_pct, trade.size_pct, places=1)

        self.assertEqual(len(parsed.open_positions), len(open_positions))
        for row, pos in zip(parsed.open_positions, open_positions):
            self.assertEqual(row.symbol, pos.symbol)
            self.assertEqual(row.side, pos.side)
            self.assertEqual(row.quantity, pos.quantity)
            self.assertAlmostEqual(row.avg_price, pos.avg_price, places=2)
            self.assertAlmostEqual(row.cost_basis, pos.cost_basis, places=2)
            self.assertAlmostEqual(row.size_pct, pos.size_pct, places=1)

        self.assertEqual([g.name for g in parsed.by_product], ["ES", "NQ"])
        self.assertEqual([g.instrument for g in parsed.by_product], ["future", "future"])
        self.assertEqual([g.name for g in parsed.by_position], ["Long", "Short"])
        self.assertAlmostEqual(parsed.by_position[1].total_pnl, -200.0)

    def test_parse_infinite_profit_factor(self) -> None:
        self.assertTrue(math.isinf(parse_number("Infinity")))
        self.assertEqual(parse_number("$-1,234.50"), -1234.5)
        self.assertEqual(parse_number("4.50% of capital"), 4.5)

    def test_missing_section_raises(self) -> None:
        with self.assertRaises(ReportParseError):
            parse_report("not a report")


class TestGenerateReport(unittest.TestCase):
    def test_writes_artefacts(self) -> None:
        trades, open_positions = build_trades(sample_orders()[:3])
        metrics = compute_metrics(trades)
        with tempfile.TemporaryDirectory() as tmp:
            text = generate_report(
                trades, open_positions, metrics, "orders.csv",
                out_dir=tmp, generated_on=GENERATED_ON,
            )
            for name in ("report.txt", "trades.csv", "open_positions.csv", "summary.json", "pnl_curve.png"):
                self.assertTrue(os.path.exists(os.path.join(tmp, name)), name)
            with open(os.path.join(tmp, "report.txt"), encoding="utf-8") as fh:
                self.assertEqual(fh.read(), text)
            with open(os.path.join(tmp, "summary.json"), encoding="utf-8") as fh:
                summary = json.load(fh)
            # One winning trade and no losses
            self.assertIsNone(summary["profit_factor"])
            self.assertEqual(summary["total_trades"], 1)
            self.assertEqual(summary["open_positions"], 2)
            df = pd.read_csv(os.path.join(tmp, "trades.csv"))
            self.assertEqual(list(df["trade_id"]), [1])


if __name__ == '__main__':
    unittest.main()
