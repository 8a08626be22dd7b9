"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config` populated with defaults for any missing fields.

Every setting has a default, so the report can be produced without a
configuration file at all.  When extending the configuration, add new
fields to the appropriate dataclass and to `_defaults()`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
import yaml


CAPITAL_BASE = 100_000
DEFAULT_MULTIPLIER = 50

CONTRACT_MULTIPLIERS: Dict[str, float] = {
    'ES': 50,     # E-mini S&P 500
    'NQ': 20,     # E-mini Nasdaq-100
    'RTY': 50,    # E-mini Russell 2000
    'GC': 100,    # Gold
    'CL': 1000,   # Crude Oil
    'ZB': 1000,   # 30-Year Treasury
    'ZN': 1000,   # 10-Year Treasury
    'YM': 5,      # E-mini Dow
    'SI': 5000,   # Silver
    'NG': 10000,  # Natural Gas
}


@dataclass
class OrdersConfig:
    """Controls which rows of the order log are accepted.

    Attributes
    ----------
    accepted_statuses : List[str]
        Order statuses (case-insensitive) kept by the loader, e.g.
        ``["Filled"]``.  An empty list accepts every status.
    """

    accepted_statuses: List[str] = field(default_factory=list)


@dataclass
class ReportConfig:
    """Report output settings.

    Attributes
    ----------
    title : str
        Title line printed in the report header.
    out_dir : str
        Directory receiving the report artefacts.
    chart : bool
        Whether to draw the cumulative P/L chart.
    """

    title: str = "FUTURES TRADING PERFORMANCE REPORT"
    out_dir: str = "results"
    chart: bool = True


@dataclass
class Config:
    """Root configuration for the report generator.

    Attributes
    ----------
    capital_base : float
        Reference notional used to express position size as a percentage.
    default_multiplier : float
        Contract multiplier for root symbols missing from the table.
    contract_multipliers : Dict[str, float]
        Value per point keyed by root symbol (``ES``, ``NQ``...).
    orders : OrdersConfig
        Order log filtering.
    report : ReportConfig
        Output settings.
    """

    capital_base: float = CAPITAL_BASE
    default_multiplier: float = DEFAULT_MULTIPLIER
    contract_multipliers: Dict[str, float] = field(default_factory=lambda: dict(CONTRACT_MULTIPLIERS))
    orders: OrdersConfig = field(default_factory=OrdersConfig)
    report: ReportConfig = field(default_factory=ReportConfig)


def _defaults() -> Dict[str, Any]:
    return {
        'capital_base': CAPITAL_BASE,
        'default_multiplier': DEFAULT_MULTIPLIER,
        'contract_multipliers': dict(CONTRACT_MULTIPLIERS),
        'orders': {
            'accepted_statuses': [],
        },
        'report': {
            'title': "FUTURES TRADING PERFORMANCE REPORT",
            'out_dir': "results",
            'chart': True,
        },
    }


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    This helper is used when loading YAML into nested dataclasses.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build a `Config` from a (possibly partial) dictionary."""
    merged = _merge_dict(_defaults(), raw or {})

    capital_base = float(merged['capital_base'])
    if capital_base <= 0:
        raise ValueError(f"capital_base must be positive, got {capital_base}")

    multipliers = {
        str(symbol).upper(): float(value)
        for symbol, value in (merged.get('contract_multipliers') or {}).items()
    }

    orders_cfg = OrdersConfig(
        accepted_statuses=[str(s) for s in (merged['orders'].get('accepted_statuses') or [])],
    )
    report_cfg = ReportConfig(
        title=str(merged['report'].get('title')),
        out_dir=str(merged['report'].get('out_dir')),
        chart=bool(merged['report'].get('chart')),
    )

    return Config(
        capital_base=capital_base,
        default_multiplier=float(merged['default_multiplier']),
        contract_multipliers=multipliers,
        orders=orders_cfg,
        report=report_cfg,
    )


def load_config(path: Optional[str] = None) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str, optional
        Path to the YAML file.  When omitted the defaults are returned.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        the defaults defined in the dataclasses.
    """
    if path is None:
        return Config()
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}
    return config_from_dict(raw)
