"""
Configuration Loader (``bid_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``bid_config.schema`` dataclasses.  Callers use
``bid_config.get_active_config()`` rather than this module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Malformed values (numbers, UUIDs, unknown keys)  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from bid_config.schema import EngineConfig, EngineSettings, OperatingExpenseDefaults

_SETTINGS_KEYS = frozenset({
    "database_url",
    "bid_number_prefix",
    "bid_number_counter",
    "min_sequence_digits",
    "system_actor_id",
})
_DEFAULTS_KEYS = frozenset({
    "gross_revenue_previous_year",
    "operating_cost_previous_year",
    "inflation_rate",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(name: str, value: Any) -> Decimal | None:
    """Parse an optional decimal; YAML floats go through their string form."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name}: '{value}' is not a valid number") from None


def _check_keys(section: str, data: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"{section}: unknown keys {unknown}")


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """Parse the ``engine`` section."""
    _check_keys("engine", data, _SETTINGS_KEYS)
    actor = data.get("system_actor_id")
    defaults = EngineSettings()
    return EngineSettings(
        database_url=str(data.get("database_url", defaults.database_url)),
        bid_number_prefix=str(data.get("bid_number_prefix", defaults.bid_number_prefix)),
        bid_number_counter=str(data.get("bid_number_counter", defaults.bid_number_counter)),
        min_sequence_digits=int(
            data.get("min_sequence_digits", defaults.min_sequence_digits)
        ),
        system_actor_id=UUID(str(actor)) if actor else None,
    )


def parse_operating_expense_defaults(
    section: str, data: dict[str, Any]
) -> OperatingExpenseDefaults:
    _check_keys(section, data, _DEFAULTS_KEYS)
    return OperatingExpenseDefaults(
        gross_revenue_previous_year=parse_decimal(
            f"{section}.gross_revenue_previous_year",
            data.get("gross_revenue_previous_year"),
        ),
        operating_cost_previous_year=parse_decimal(
            f"{section}.operating_cost_previous_year",
            data.get("operating_cost_previous_year"),
        ),
        inflation_rate=parse_decimal(
            f"{section}.inflation_rate", data.get("inflation_rate")
        ),
    )


def parse_config(data: dict[str, Any], source: str | None = None) -> EngineConfig:
    """
    Parse a whole configuration document.

    Expected layout::

        engine:
          database_url: postgresql://...
          bid_number_prefix: BID
        operating_expenses:
          default:
            gross_revenue_previous_year: "500000"
          organizations:
            <organization uuid>:
              inflation_rate: "3"
    """
    _check_keys("root", data, frozenset({"engine", "operating_expenses"}))
    opex = data.get("operating_expenses") or {}
    _check_keys("operating_expenses", opex, frozenset({"default", "organizations"}))

    overrides = {
        UUID(str(org_id)): parse_operating_expense_defaults(
            f"operating_expenses.organizations.{org_id}", values or {}
        )
        for org_id, values in (opex.get("organizations") or {}).items()
    }
    return EngineConfig(
        settings=parse_settings(data.get("engine") or {}),
        operating_expense_default=parse_operating_expense_defaults(
            "operating_expenses.default", opex.get("default") or {}
        ),
        organization_overrides=overrides,
        source=source,
    )


def load_config(path: Path) -> EngineConfig:
    """Load and parse a configuration file."""
    return parse_config(load_yaml_file(path), source=str(path))
