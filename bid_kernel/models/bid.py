"""
Module: bid_kernel.models.bid
Responsibility: ORM persistence for the Bid aggregate root -- a quote under
    negotiation for a unit of mechanical-services work.
Architecture position: Kernel > Models.  May import from db/ and domain/dtos.py.

Invariants enforced:
    - (organization_id, bid_number) is unique (uq_bid_number_per_org).  A
      duplicate from the degraded sequence fallback fails loudly.
    - bid_number is immutable once assigned (no service writes it again).
    - end_date >= created_at.date() (enforced by BidService on create and
      update, against the original creation date).
    - Bids are soft-deleted, never hard-deleted.

Failure modes:
    - IntegrityError on duplicate bid number (translated to
      DuplicateBidNumberError by BidService).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bid_kernel.db.base import SoftDeletableBase, UTCDateTime, UUIDString
from bid_kernel.domain.dtos import BidPriority, BidStatus


class Bid(SoftDeletableBase):
    """
    A bid (quote) owned by one organization.

    Contract:
        bid_amount is derived: RecalculationService is the only writer after
        creation and always stores a whole-dollar value.
    """

    __tablename__ = "bids"

    __table_args__ = (
        UniqueConstraint("organization_id", "bid_number", name="uq_bid_number_per_org"),
        Index("idx_bids_org_status", "organization_id", "status"),
        Index("idx_bids_end_date", "end_date"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Human-readable sequence number, e.g. BID-2025-0001
    bid_number: Mapped[str] = mapped_column(String(100), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BidStatus.DRAFT.value
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BidPriority.MEDIUM.value
    )

    project_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    site_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    scope_of_work: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    planned_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    estimated_completion: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Headline price, whole dollars
    bid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    estimated_duration: Mapped[int | None] = mapped_column(nullable=True)
    profit_margin: Mapped[Decimal | None] = mapped_column(nullable=True)

    # Employee references (validated against the employee directory)
    supervisor_manager_id: Mapped[int | None] = mapped_column(nullable=True)
    primary_technician_id: Mapped[int | None] = mapped_column(nullable=True)
    assigned_to: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Bid {self.bid_number}: {self.status}>"

    @property
    def created_date(self) -> date:
        return self.created_at.date()
