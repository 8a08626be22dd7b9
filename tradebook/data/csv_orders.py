"""
CSV order log loader.

This module provides a class to load brokerage fills from CSV exports.
Two layouts are recognised:

```
Deploy,Time,Symbol,Price,Quantity,Type,Status,Value,Tag
Time,Symbol,Price,Quantity,Type,Status,Value,Tag
```

Headers are matched case-insensitively; a column whose header is not
found by name is taken from its expected position.  `Time`, `Symbol`,
`Price`, `Quantity`, `Type` and `Status` are required.  Quantities are
signed: positive for buys, negative for sells.

Malformed rows are skipped with a warning.  Problems with the file as
a whole raise `OrderLogError` before any order is returned.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Union
import io
import logging
import pandas as pd

from ..config.schema import Config
from ..ledger.models import Order
from ..utils.contracts import base_symbol, contract_multiplier
from ..utils.timeutils import parse_timestamp

logger = logging.getLogger(__name__)

STANDARD_COLUMNS = ['Time', 'Symbol', 'Price', 'Quantity', 'Type', 'Status', 'Value', 'Tag']
DEPLOY_COLUMNS = ['Deploy'] + STANDARD_COLUMNS
REQUIRED_COLUMNS = ['Time', 'Symbol', 'Price', 'Quantity', 'Type', 'Status']


class OrderLogError(ValueError):
    """The order log cannot be used at all."""


class NoValidOrdersError(OrderLogError):
    """Every row of the order log was rejected."""


def detect_columns(headers: List[str]) -> Dict[str, int]:
    """Map expected column names to positions in `headers`.

    The layout with a ``Deploy`` column is chosen when any header
    mentions it.
    """
    normalised = [h.strip().strip('"').lower() for h in headers]
    has_deploy = any('deploy' in h for h in normalised)
    expected = DEPLOY_COLUMNS if has_deploy else STANDARD_COLUMNS

    mapping: Dict[str, int] = {}
    for position, name in enumerate(expected):
        if name.lower() in normalised:
            mapping[name] = normalised.index(name.lower())
        elif position < len(headers):
            mapping[name] = position
    logger.debug("Detected %s layout: %s", "deploy" if has_deploy else "standard", mapping)
    return mapping


def _int_quantity(text: str) -> int:
    # Accept "2", "-3" and "2.0" style integers
    value = float(text.replace(",", ""))
    if not value.is_integer():
        raise ValueError(f"fractional quantity {text!r}")
    return int(value)


class OrderCSVLoader:
    """Load and normalise fills from an order log.

    Parameters
    ----------
    config : Config, optional
        Supplies the contract multiplier table and the status filter.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()
        self.accepted_statuses = {s.strip().lower() for s in self.config.orders.accepted_statuses}

    @staticmethod
    def _bad_line(fields: List[str]) -> None:
        logger.warning("Skipping malformed line with %d fields: %s", len(fields), ",".join(fields))
        return None

    def _read(self, source: Union[str, Path, io.TextIOBase]) -> pd.DataFrame:
        try:
            df = pd.read_csv(
                source,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                skip_blank_lines=True,
                engine="python",
                on_bad_lines=self._bad_line,
            )
        except pd.errors.EmptyDataError as exc:
            raise OrderLogError("CSV file is empty") from exc
        except UnicodeDecodeError as exc:
            raise OrderLogError(f"CSV file is not valid UTF-8 text: {exc}") from exc
        except pd.errors.ParserError as exc:
            raise OrderLogError(f"Failed to parse CSV file: {exc}") from exc
        if df.empty:
            raise OrderLogError("CSV file must have at least a header row and one data row")
        return df

    def _order_from_row(self, row: pd.Series, mapping: Dict[str, int]) -> Optional[Order]:
        def cell(name: str) -> str:
            idx = mapping.get(name)
            if idx is None or idx >= len(row):
                return ""
            value = row.iloc[idx]
            return "" if pd.isna(value) else str(value).strip()

        time_value = cell('Time')
        symbol = cell('Symbol')
        price_value = cell('Price')
        quantity_value = cell('Quantity')
        if not (time_value and symbol and price_value and quantity_value):
            raise ValueError("missing critical data")

        status = cell('Status')
        if self.accepted_statuses and status.lower() not in self.accepted_statuses:
            return None

        value_text = cell('Value')
        order = Order(
            timestamp=parse_timestamp(time_value),
            symbol=symbol,
            base_symbol=base_symbol(symbol),
            price=float(price_value.replace(",", "")),
            quantity=_int_quantity(quantity_value),
            multiplier=contract_multiplier(
                symbol, self.config.contract_multipliers, self.config.default_multiplier,
            ),
            tag=cell('Tag'),
            order_type=cell('Type'),
            status=status,
            value=float(value_text.replace(",", "")) if value_text else 0.0,
        )
        if order.price <= 0 or order.quantity == 0:
            return None
        return order

    def load(self, source: Union[str, Path, io.TextIOBase]) -> List[Order]:
        """Read `source` and return its valid orders sorted by time.

        Orders sharing a timestamp keep their file order.

        Raises
        ------
        FileNotFoundError
            If `source` is a path that does not exist.
        OrderLogError
            If the file is empty, has no data rows or lacks a required
            column.
        """
        if isinstance(source, (str, Path)) and not Path(source).exists():
            raise FileNotFoundError(f"Order log not found: {source}")

        df = self._read(source)
        mapping = detect_columns(list(df.columns))
        missing = [c for c in REQUIRED_COLUMNS if c not in mapping]
        if missing:
            raise OrderLogError(f"Missing required columns: {', '.join(missing)}")

        orders: List[Order] = []
        skipped = 0
        for pos in range(len(df)):
            try:
                order = self._order_from_row(df.iloc[pos], mapping)
            except ValueError as exc:
                # Counted over parsed data rows; blank and malformed lines are not included
                logger.warning("Skipping data row %d: %s", pos + 1, exc)
                skipped += 1
                continue
            if order is not None:
                orders.append(order)

        # list.sort is stable, so equal timestamps keep file order
        orders.sort(key=lambda o: o.timestamp)
        logger.info("Loaded %d orders (%d rows skipped)", len(orders), skipped)
        return orders
