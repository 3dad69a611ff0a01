# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Clinic DRE.

This module is responsible for:
- loading the application configuration from a TOML file,
- merging per-regime tax rate overrides into the default rate tables,
- exposing typed dataclasses used by the CLI and the report service.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .reconciliation import DEFAULT_DIFFERENCE_THRESHOLD, DEFAULT_MINIMUM_RATE
from .taxes import DEFAULT_RATE_TABLES, RateTable, TaxRegime, load_rate_tables
from .views import VIEWS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "clinic_dre_config.toml"
DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ReconciliationConfig:
    """Alert thresholds of the bank reconciliation."""

    difference_threshold: float = DEFAULT_DIFFERENCE_THRESHOLD
    minimum_rate: float = DEFAULT_MINIMUM_RATE


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Clinic DRE.

    This aggregates:
    - the company name and its tax regime,
    - the rate tables used for fallback tax estimates,
    - the reconciliation alert thresholds,
    - display and logging options for the CLI.
    """

    company_name: str = ""
    regime: TaxRegime = TaxRegime.SIMPLES_NACIONAL
    rate_tables: Mapping[TaxRegime, RateTable] = field(
        default_factory=lambda: dict(DEFAULT_RATE_TABLES)
    )
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    display_mode: str = "table"
    view: str = "regular"
    log_level: str = "WARNING"


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section [{name}] must be a table.")
    return section


def _choice(value: Any, allowed: tuple[str, ...], key: str) -> str:
    text = str(value)
    if text not in allowed:
        raise ValueError(
            f"Invalid value '{text}' for '{key}'. Expected one of: {', '.join(allowed)}"
        )
    return text


def _float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for '{key}', expected a number.") from exc


def parse_app_config(raw: Mapping[str, Any]) -> AppConfig:
    """Build an AppConfig from already-parsed TOML data.

    Raises:
        ValueError: on invalid regimes, rates, thresholds or display options.
    """
    company = _section(raw, "company")
    company_name = str(company.get("name", ""))
    regime = TaxRegime.parse(company.get("regime", TaxRegime.SIMPLES_NACIONAL.value))

    rate_tables = load_rate_tables(_section(raw, "tax_rates"))

    recon = _section(raw, "reconciliation")
    reconciliation = ReconciliationConfig(
        difference_threshold=_float(
            recon.get("difference_threshold", DEFAULT_DIFFERENCE_THRESHOLD),
            "reconciliation.difference_threshold",
        ),
        minimum_rate=_float(
            recon.get("minimum_rate", DEFAULT_MINIMUM_RATE),
            "reconciliation.minimum_rate",
        ),
    )
    if reconciliation.difference_threshold < 0:
        raise ValueError("'reconciliation.difference_threshold' cannot be negative.")

    display = _section(raw, "display")
    display_mode = _choice(display.get("mode", "table"), DISPLAY_MODES, "display.mode")
    view = _choice(display.get("view", "regular"), VIEWS, "display.view")

    logging_section = _section(raw, "logging")
    raw_level = str(logging_section.get("level", "WARNING")).upper()
    log_level = _choice(raw_level, LOG_LEVELS, "logging.level")

    return AppConfig(
        company_name=company_name,
        regime=regime,
        rate_tables=rate_tables,
        reconciliation=reconciliation,
        display_mode=display_mode,
        view=view,
        log_level=log_level,
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Clinic DRE configuration from a TOML file.

    Expected sections in the TOML file (all optional)
    -------------------------------------------------
    [company]
        ``name`` and tax ``regime`` (simples_nacional, lucro_presumido,
        lucro_real).

    [tax_rates.<regime>]
        Overrides of the default rate table of a regime (fractions, e.g.
        ``simples = 0.06``).

    [reconciliation]
        ``difference_threshold`` (fraction of the bank total) and
        ``minimum_rate`` (percent).

    [display]
        ``mode`` (table, csv, both) and ``view`` (simplified, regular,
        detailed).

    [logging]
        ``level`` (DEBUG, INFO, WARNING, ...).

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML file. Defaults to ``clinic_dre_config.toml`` in
        the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    config = parse_app_config(_load_toml(config_file))
    logger.debug("Loaded config %s (regime %s)", config_file, config.regime.value)
    return config
