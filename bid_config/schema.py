"""
Bid engine configuration schema.

Frozen dataclasses the loader parses YAML into.  The runtime never sees
raw YAML: ``get_active_config()`` returns an ``EngineConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping
from uuid import UUID

from bid_kernel.domain.bid_numbers import DEFAULT_MIN_DIGITS, DEFAULT_PREFIX


@dataclass(frozen=True)
class EngineSettings:
    """Database and numbering settings."""

    database_url: str = "sqlite://"
    bid_number_prefix: str = DEFAULT_PREFIX
    bid_number_counter: str = "bid_number"
    min_sequence_digits: int = DEFAULT_MIN_DIGITS
    # Actor recorded on history entries written by the expiration sweep
    system_actor_id: UUID | None = None


@dataclass(frozen=True)
class OperatingExpenseDefaults:
    """Organization-wide fallback for a bid's overhead parameters."""

    gross_revenue_previous_year: Decimal | None = None
    operating_cost_previous_year: Decimal | None = None
    inflation_rate: Decimal | None = None


@dataclass(frozen=True)
class EngineConfig:
    """The whole configuration, as returned by ``get_active_config()``."""

    settings: EngineSettings = field(default_factory=EngineSettings)
    operating_expense_default: OperatingExpenseDefaults = field(
        default_factory=OperatingExpenseDefaults
    )
    # organization_id -> overrides for that organization
    organization_overrides: Mapping[UUID, OperatingExpenseDefaults] = field(
        default_factory=dict
    )
    source: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "organization_overrides",
            MappingProxyType(dict(self.organization_overrides)),
        )
