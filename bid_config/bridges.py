"""
Config -> Kernel Bridges.

Functions and adapters that turn an ``EngineConfig`` into the
collaborators the kernel services take.  They live in bid_config (the
producer) because the kernel never imports bid_config.

Usage:
    config = get_active_config()
    defaults = ConfiguredOrganizationDefaults(config)
    recalculation = RecalculationService(session, defaults_provider=defaults)
    generator = build_sequence_generator(config, session, clock)
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from bid_config.schema import EngineConfig, OperatingExpenseDefaults
from bid_kernel.domain.clock import Clock
from bid_kernel.domain.collaborators import OrganizationDefaults
from bid_kernel.services.sequence_service import DatabaseCounterProvider, SequenceGenerator


class ConfiguredOrganizationDefaults:
    """OrganizationDefaultsProvider backed by the configuration file.

    An organization override wins field by field; fields it leaves unset
    fall back to the global default block.
    """

    def __init__(self, config: EngineConfig):
        self._default = config.operating_expense_default
        self._overrides = config.organization_overrides

    def get_organization_defaults(
        self, organization_id: UUID
    ) -> OrganizationDefaults | None:
        override = self._overrides.get(organization_id) or OperatingExpenseDefaults()

        def pick(name: str):
            value = getattr(override, name)
            return value if value is not None else getattr(self._default, name)

        defaults = OrganizationDefaults(
            gross_revenue_previous_year=pick("gross_revenue_previous_year"),
            operating_cost_previous_year=pick("operating_cost_previous_year"),
            inflation_rate=pick("inflation_rate"),
        )
        if defaults == OrganizationDefaults():
            return None
        return defaults


def build_sequence_generator(
    config: EngineConfig,
    session: Session,
    clock: Clock | None = None,
) -> SequenceGenerator:
    """SequenceGenerator on the database counter with configured numbering."""
    settings = config.settings
    return SequenceGenerator(
        session,
        counter_provider=DatabaseCounterProvider(session),
        clock=clock,
        prefix=settings.bid_number_prefix,
        counter_name=settings.bid_number_counter,
        min_digits=settings.min_sequence_digits,
    )
