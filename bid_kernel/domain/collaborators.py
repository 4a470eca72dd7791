"""Collaborator interfaces consumed by the bid kernel.

Organization settings, the employee directory, and the atomic counter
primitive live outside this engine.  Services receive implementations
through their constructors; nothing here reaches module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID


@dataclass(frozen=True)
class OrganizationDefaults:
    """Organization-wide operating-expense parameters.

    Any field may be None; the recalculation treats None as zero after the
    bid's own configuration has been consulted.
    """

    gross_revenue_previous_year: Decimal | None = None
    operating_cost_previous_year: Decimal | None = None
    inflation_rate: Decimal | None = None


@runtime_checkable
class OrganizationDefaultsProvider(Protocol):
    """Lookup of fallback operating-expense parameters for an organization."""

    def get_organization_defaults(
        self, organization_id: UUID
    ) -> OrganizationDefaults | None:
        ...


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Existence check for supervisor / technician references."""

    def employee_exists(self, employee_id: int) -> bool:
        """True when the id resolves to an existing, non-deleted employee."""
        ...


@runtime_checkable
class CounterProvider(Protocol):
    """Atomic increment-and-fetch primitive scoped to (organization, counter).

    Implementations must be safe under concurrent invocation and raise
    CounterUnavailableError when the primitive cannot be used.
    """

    def next_counter_value(self, organization_id: UUID, counter_name: str) -> int:
        ...


class StaticOrganizationDefaults:
    """OrganizationDefaultsProvider backed by a fixed mapping."""

    def __init__(
        self,
        default: OrganizationDefaults | None = None,
        overrides: dict[UUID, OrganizationDefaults] | None = None,
    ) -> None:
        self._default = default
        self._overrides = dict(overrides or {})

    def get_organization_defaults(
        self, organization_id: UUID
    ) -> OrganizationDefaults | None:
        return self._overrides.get(organization_id, self._default)
