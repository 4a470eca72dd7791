"""
Module: bid_kernel.models.financial
Responsibility: ORM persistence for the two 1:1 financial rows of a bid: the
    FinancialBreakdown rollup and the OperatingExpenseConfig overhead
    parameters.  Both carry an initial (quoted) and an actual (realized) track.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One live row of each kind per bid (unique bid_id).
    - Per track: total_cost = materials_equipment + labor + travel and
      total_price = total_cost + operating_expenses.  Maintained by
      RecalculationService, not by the storage layer.

Failure modes:
    - IntegrityError on a second row for the same bid.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from bid_kernel.db.base import SoftDeletableBase, UUIDString

_ZERO = Decimal("0")


class FinancialBreakdown(SoftDeletableBase):
    """Bid-level rollup, initial and actual tracks."""

    __tablename__ = "bid_financial_breakdowns"

    bid_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bids.id"), nullable=False, unique=True
    )

    # Initial (quoted) track
    materials_equipment: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    labor: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    travel: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    operating_expenses: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    gross_profit: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    # Actual (realized) track
    actual_materials_equipment: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_labor: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_travel: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_operating_expenses: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_total_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_gross_profit: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    def __repr__(self) -> str:
        return f"<FinancialBreakdown bid={self.bid_id} cost={self.actual_total_cost}>"


class OperatingExpenseConfig(SoftDeletableBase):
    """
    Overhead parameters for a bid.

    Contract:
        gross_revenue_previous_year, operating_cost_previous_year and
        inflation_rate are nullable: NULL means "use the organization
        default" during recalculation.
    """

    __tablename__ = "bid_operating_expenses"

    bid_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bids.id"), nullable=False, unique=True
    )

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gross_revenue_previous_year: Mapped[Decimal | None] = mapped_column(nullable=True)
    operating_cost_previous_year: Mapped[Decimal | None] = mapped_column(nullable=True)
    inflation_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    utilization_percentage: Mapped[Decimal | None] = mapped_column(nullable=True)
    apply_markup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    markup_percentage: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Computed amounts, initial track
    current_bid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    calculated_operating_cost: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    inflation_adjusted_operating_cost: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )
    operating_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    # Computed amounts, actual track
    actual_current_bid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)
    actual_calculated_operating_cost: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )
    actual_inflation_adjusted_operating_cost: Mapped[Decimal] = mapped_column(
        nullable=False, default=_ZERO
    )
    actual_operating_price: Mapped[Decimal] = mapped_column(nullable=False, default=_ZERO)

    def __repr__(self) -> str:
        return f"<OperatingExpenseConfig bid={self.bid_id} enabled={self.enabled}>"
