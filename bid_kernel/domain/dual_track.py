"""
Dual-track update planning -- initial (quoted) vs actual (realized) values.

Responsibility:
    Decides which columns an incoming partial update writes for any entity
    that carries paired initial/actual fields: material, labor and travel
    lines, the financial breakdown, and the operating-expense configuration.
    The rule lives here once; each entity contributes only a
    ``TrackedFields`` classification table.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    CostComponentService before it touches the ORM row.

Propagation rule:
    1. Classify the update as INITIAL_ONLY, ACTUAL_ONLY, BOTH or NONE.
    2. ACTUAL_ONLY on an existing row writes exactly the actual fields.
    3. INITIAL_ONLY on an existing row writes the initial fields and mirrors
       each paired one into its actual counterpart.
    4. BOTH writes initial and actual fields as given; mirroring only fills
       actual fields that were not supplied explicitly.
    5. No row yet, initial fields supplied: insert with actual = initial
       unless an explicit actual was supplied.
    6. No row yet, no initial fields: nothing to do (plan is None).

    Fields without an actual counterpart (``plain``) are written as given and
    classify as initial-track fields.

Failure modes:
    - UnknownFieldError when an update names a field the entity lacks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from bid_kernel.exceptions import UnknownFieldError


class UpdateKind(str, Enum):
    """Which tracks a partial update touches."""

    NONE = "none"
    INITIAL_ONLY = "initial_only"
    ACTUAL_ONLY = "actual_only"
    BOTH = "both"


@dataclass(frozen=True)
class TrackedFields:
    """Field-classification table for one entity.

    ``pairs`` maps each initial field to its actual counterpart; ``plain``
    lists writable fields that have no actual counterpart.
    """

    entity: str
    pairs: Mapping[str, str]
    plain: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pairs", MappingProxyType(dict(self.pairs)))
        object.__setattr__(self, "plain", frozenset(self.plain))

    @property
    def initial_fields(self) -> frozenset[str]:
        return frozenset(self.pairs) | self.plain

    @property
    def actual_fields(self) -> frozenset[str]:
        return frozenset(self.pairs.values())

    @property
    def writable_fields(self) -> frozenset[str]:
        return self.initial_fields | self.actual_fields

    def classify(self, changes: Mapping[str, Any]) -> UpdateKind:
        """Classify an update by the tracks it touches.

        Raises:
            UnknownFieldError: If a key is not a writable field.
        """
        for name in changes:
            if name not in self.writable_fields:
                raise UnknownFieldError(self.entity, name)

        has_initial = any(name in self.initial_fields for name in changes)
        has_actual = any(name in self.actual_fields for name in changes)
        if has_initial and has_actual:
            return UpdateKind.BOTH
        if has_initial:
            return UpdateKind.INITIAL_ONLY
        if has_actual:
            return UpdateKind.ACTUAL_ONLY
        return UpdateKind.NONE


@dataclass(frozen=True)
class UpdatePlan:
    """Column assignments an update resolves to."""

    kind: UpdateKind
    is_insert: bool
    assignments: Mapping[str, Any]

    @property
    def touches_initial(self) -> bool:
        return self.kind in (UpdateKind.INITIAL_ONLY, UpdateKind.BOTH)


def plan_update(
    fields: TrackedFields,
    changes: Mapping[str, Any],
    exists: bool,
) -> UpdatePlan | None:
    """Resolve a partial update into column assignments.

    Args:
        fields: Classification table of the target entity.
        changes: Field name -> new value, only the fields being changed.
        exists: Whether the target row already exists.

    Returns:
        UpdatePlan, or None when the row does not exist and the update
        supplies no initial field.
    """
    kind = fields.classify(changes)

    if not exists and kind in (UpdateKind.NONE, UpdateKind.ACTUAL_ONLY):
        return None

    if kind is UpdateKind.ACTUAL_ONLY:
        return UpdatePlan(kind=kind, is_insert=False, assignments=dict(changes))

    # Initial fields are written as given; actual counterparts are mirrored
    # unless supplied explicitly.  The same holds for an insert.
    assignments: dict[str, Any] = dict(changes)
    for initial_name, actual_name in fields.pairs.items():
        if initial_name in changes and actual_name not in changes:
            assignments[actual_name] = changes[initial_name]

    return UpdatePlan(kind=kind, is_insert=not exists, assignments=assignments)


# =============================================================================
# Classification tables
# =============================================================================

MATERIAL_FIELDS = TrackedFields(
    entity="material",
    pairs={
        "quantity": "actual_quantity",
        "unit_cost": "actual_unit_cost",
        "markup": "actual_markup",
        "total_cost": "actual_total_cost",
        "total_price": "actual_total_price",
    },
    plain=frozenset({"description", "custom_name"}),
)

LABOR_FIELDS = TrackedFields(
    entity="labor",
    pairs={
        "days": "actual_days",
        "hours_per_day": "actual_hours_per_day",
        "total_hours": "actual_total_hours",
        "cost_rate": "actual_cost_rate",
        "billable_rate": "actual_billable_rate",
        "total_cost": "actual_total_cost",
        "total_price": "actual_total_price",
    },
    plain=frozenset({"position_id", "quantity"}),
)

TRAVEL_FIELDS = TrackedFields(
    entity="travel",
    pairs={
        "round_trip_miles": "actual_round_trip_miles",
        "mileage_rate": "actual_mileage_rate",
        "vehicle_day_rate": "actual_vehicle_day_rate",
        "days": "actual_days",
        "mileage_cost": "actual_mileage_cost",
        "vehicle_cost": "actual_vehicle_cost",
        "markup": "actual_markup",
        "total_cost": "actual_total_cost",
        "total_price": "actual_total_price",
    },
    plain=frozenset({"vehicle_name"}),
)

BREAKDOWN_FIELDS = TrackedFields(
    entity="financial_breakdown",
    pairs={
        "materials_equipment": "actual_materials_equipment",
        "labor": "actual_labor",
        "travel": "actual_travel",
        "operating_expenses": "actual_operating_expenses",
        "total_cost": "actual_total_cost",
        "total_price": "actual_total_price",
        "gross_profit": "actual_gross_profit",
    },
)

OPERATING_EXPENSE_FIELDS = TrackedFields(
    entity="operating_expenses",
    pairs={
        "current_bid_amount": "actual_current_bid_amount",
        "calculated_operating_cost": "actual_calculated_operating_cost",
        "inflation_adjusted_operating_cost": "actual_inflation_adjusted_operating_cost",
        "operating_price": "actual_operating_price",
    },
    plain=frozenset({
        "enabled",
        "gross_revenue_previous_year",
        "operating_cost_previous_year",
        "inflation_rate",
        "utilization_percentage",
        "apply_markup",
        "markup_percentage",
    }),
)
