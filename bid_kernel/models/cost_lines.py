"""
Module: bid_kernel.models.cost_lines
Responsibility: ORM persistence for the itemized inputs of a bid's
    breakdown: material, labor and travel lines.  Each line carries an
    initial (quoted) and an actual (realized) value set.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Travel lines are owned by exactly one labor line (bid_labor_id).
    - Actual fields are seeded from initial fields on insert; afterwards
      they follow the dual-track rule in domain/dual_track.py.
    - Lines are soft-deleted; a deleted labor line takes its travel with it.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bid_kernel.db.base import SoftDeletableBase, UUIDString

_ZERO = Decimal("0")


class MaterialLine(SoftDeletableBase):
    """Materials / equipment line."""

    __tablename__ = "bid_materials"

    __table_args__ = (Index("idx_bid_materials_bid_id", "bid_id"),)

    bid_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("bids.id"), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    markup: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    actual_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_markup: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)


class LaborLine(SoftDeletableBase):
    """Labor line for one position."""

    __tablename__ = "bid_labor"

    __table_args__ = (Index("idx_bid_labor_bid_id", "bid_id"),)

    bid_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("bids.id"), nullable=False)

    position_id: Mapped[int | None] = mapped_column(nullable=True)
    # Headcount for the position
    quantity: Mapped[int] = mapped_column(nullable=False, default=1)

    days: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    hours_per_day: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_hours: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    cost_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    billable_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    actual_days: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_hours_per_day: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_hours: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_cost_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_billable_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)


class TravelLine(SoftDeletableBase):
    """Travel line, paired 1:1 with a labor line."""

    __tablename__ = "bid_travel"

    __table_args__ = (Index("idx_bid_travel_labor_id", "bid_labor_id"),)

    bid_labor_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bid_labor.id"), nullable=False
    )

    vehicle_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    round_trip_miles: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    mileage_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    vehicle_day_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    days: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    mileage_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    vehicle_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    markup: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    actual_round_trip_miles: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_mileage_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_vehicle_day_rate: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_days: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_mileage_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_vehicle_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_markup: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
