"""
DTOs -- Immutable data transfer objects returned by services and selectors.

Responsibility:
    Frozen snapshots of bids, their financial rows, cost lines, timeline
    events and history entries, plus the enumerations shared by the ORM
    models and callers.

Architecture position:
    Kernel > Domain -- pure, no ORM or session access.  Services and
    selectors convert ORM rows into these at the boundary (``_to_dto``), so
    callers never hold live ORM instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


# =============================================================================
# Enumerations
# =============================================================================


class BidStatus(str, Enum):
    """Lifecycle status of a bid."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    WON = "won"
    REJECTED = "rejected"
    LOST = "lost"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Still open; the expiration sweep moves these to EXPIRED once end_date passes.
EXPIRABLE_STATUSES: frozenset[BidStatus] = frozenset({
    BidStatus.DRAFT,
    BidStatus.PENDING,
    BidStatus.SUBMITTED,
    BidStatus.IN_PROGRESS,
})


class BidJobType(str, Enum):
    GENERAL = "general"
    SURVEY = "survey"
    PLAN_SPEC = "plan_spec"
    DESIGN_BUILD = "design_build"
    SERVICE = "service"
    PREVENTATIVE_MAINTENANCE = "preventative_maintenance"


class BidPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# =============================================================================
# Bid
# =============================================================================


@dataclass(frozen=True)
class BidInfo:
    """Snapshot of a bid row."""

    id: UUID
    organization_id: UUID
    bid_number: str
    title: str
    job_type: BidJobType
    status: BidStatus
    priority: BidPriority
    bid_amount: Decimal
    created_at: datetime
    created_by_id: UUID
    end_date: date | None = None
    planned_start_date: date | None = None
    estimated_completion: date | None = None
    project_name: str | None = None
    description: str | None = None
    scope_of_work: str | None = None
    site_address: str | None = None
    supervisor_manager_id: int | None = None
    primary_technician_id: int | None = None
    assigned_to: UUID | None = None
    estimated_duration: int | None = None
    profit_margin: Decimal | None = None
    is_deleted: bool = False

    @property
    def created_date(self) -> date:
        return self.created_at.date()


@dataclass(frozen=True)
class BidSummary:
    """Headline figures for a bid."""

    bid_id: UUID
    bid_number: str
    status: BidStatus
    bid_amount: Decimal
    total_cost: Decimal
    total_price: Decimal
    gross_profit: Decimal
    profit_margin: Decimal | None
    estimated_duration: int | None
    expires_in_days: int | None


# =============================================================================
# Financial rows
# =============================================================================


@dataclass(frozen=True)
class FinancialBreakdownInfo:
    """Both tracks of the bid-level rollup."""

    id: UUID
    bid_id: UUID
    materials_equipment: Decimal
    labor: Decimal
    travel: Decimal
    operating_expenses: Decimal
    total_cost: Decimal
    total_price: Decimal
    gross_profit: Decimal
    actual_materials_equipment: Decimal
    actual_labor: Decimal
    actual_travel: Decimal
    actual_operating_expenses: Decimal
    actual_total_cost: Decimal
    actual_total_price: Decimal
    actual_gross_profit: Decimal


@dataclass(frozen=True)
class OperatingExpenseInfo:
    """Overhead parameters and computed amounts for a bid."""

    id: UUID
    bid_id: UUID
    enabled: bool
    gross_revenue_previous_year: Decimal | None
    operating_cost_previous_year: Decimal | None
    inflation_rate: Decimal | None
    utilization_percentage: Decimal | None
    apply_markup: bool
    markup_percentage: Decimal | None
    current_bid_amount: Decimal
    calculated_operating_cost: Decimal
    inflation_adjusted_operating_cost: Decimal
    operating_price: Decimal
    actual_current_bid_amount: Decimal
    actual_calculated_operating_cost: Decimal
    actual_inflation_adjusted_operating_cost: Decimal
    actual_operating_price: Decimal


@dataclass(frozen=True)
class RecalculationResult:
    """Outcome of one recalculation run."""

    bid_id: UUID
    enabled: bool
    direct_cost: Decimal
    operating_add_on: Decimal
    total_price: Decimal
    bid_amount: Decimal
    self_healed: bool = False
    degenerate: bool = False


# =============================================================================
# Cost lines
# =============================================================================


@dataclass(frozen=True)
class MaterialLineInfo:
    id: UUID
    bid_id: UUID
    description: str | None
    custom_name: str | None
    quantity: Decimal
    unit_cost: Decimal
    markup: Decimal
    total_cost: Decimal
    total_price: Decimal
    actual_quantity: Decimal
    actual_unit_cost: Decimal
    actual_markup: Decimal
    actual_total_cost: Decimal
    actual_total_price: Decimal


@dataclass(frozen=True)
class LaborLineInfo:
    id: UUID
    bid_id: UUID
    position_id: int | None
    quantity: int
    days: Decimal
    hours_per_day: Decimal
    total_hours: Decimal
    cost_rate: Decimal
    billable_rate: Decimal
    total_cost: Decimal
    total_price: Decimal
    actual_days: Decimal
    actual_hours_per_day: Decimal
    actual_total_hours: Decimal
    actual_cost_rate: Decimal
    actual_billable_rate: Decimal
    actual_total_cost: Decimal
    actual_total_price: Decimal


@dataclass(frozen=True)
class TravelLineInfo:
    id: UUID
    bid_labor_id: UUID
    vehicle_name: str | None
    round_trip_miles: Decimal
    mileage_rate: Decimal
    vehicle_day_rate: Decimal
    days: Decimal
    mileage_cost: Decimal
    vehicle_cost: Decimal
    markup: Decimal
    total_cost: Decimal
    total_price: Decimal
    actual_round_trip_miles: Decimal
    actual_mileage_rate: Decimal
    actual_vehicle_day_rate: Decimal
    actual_days: Decimal
    actual_mileage_cost: Decimal
    actual_vehicle_cost: Decimal
    actual_markup: Decimal
    actual_total_cost: Decimal
    actual_total_price: Decimal


@dataclass(frozen=True)
class LaborTravelPair:
    labor: LaborLineInfo
    travel: TravelLineInfo


# =============================================================================
# Timeline and history
# =============================================================================


@dataclass(frozen=True)
class TimelineEventInfo:
    id: UUID
    bid_id: UUID
    event: str
    event_date: datetime
    estimated_duration: int
    duration_type: str
    is_completed: bool
    description: str | None
    sort_order: int


@dataclass(frozen=True)
class HistoryEntryInfo:
    id: UUID
    bid_id: UUID
    action: str
    old_value: str | None
    new_value: str | None
    description: str | None
    performed_by_id: UUID
    performed_at: datetime
