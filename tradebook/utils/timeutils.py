"""
Timestamp utilities.

This module centralises timestamp parsing and formatting.  Order logs
carry ISO-like timestamps, sometimes with a trailing ``Z``; all
timestamps inside the package are naive `pandas.Timestamp` values so
that they compare and subtract consistently.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
import pandas as pd


REPORT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(value: str) -> pd.Timestamp:
    """Parse a timestamp string from an order log.

    A trailing ``Z`` is dropped.  Timezone-aware values are converted to
    UTC and made naive.

    Raises
    ------
    ValueError
        If the string cannot be interpreted as a timestamp.
    """
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    ts = pd.Timestamp(text)
    if pd.isna(ts):
        raise ValueError(f"Empty timestamp: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def format_timestamp(ts: pd.Timestamp) -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS``."""
    return pd.Timestamp(ts).strftime(REPORT_TIME_FORMAT)


def minutes_between(start: pd.Timestamp, end: pd.Timestamp) -> float:
    """Return the signed number of minutes from `start` to `end`."""
    return (pd.Timestamp(end) - pd.Timestamp(start)).total_seconds() / 60.0


def format_generated_on(moment: Optional[datetime] = None) -> str:
    """Format the report generation time like ``1/5/2024, 3:07:09 PM``."""
    moment = moment or datetime.now()
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return (
        f"{moment.month}/{moment.day}/{moment.year}, "
        f"{hour}:{moment.minute:02d}:{moment.second:02d} {suffix}"
    )
