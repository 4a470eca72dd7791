"""
Module: bid_kernel.models.timeline
Responsibility: Append-only milestone and history tables for bids.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Rows are only ever inserted.  No service updates or deletes them.
    - Every history entry names the actor that performed the change; the
      expiration sweep uses the configured system actor.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bid_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString


class BidTimelineEvent(TrackedBase):
    """Milestone on a bid's timeline ("created", "end date", ...)."""

    __tablename__ = "bid_timeline_events"

    __table_args__ = (Index("idx_bid_timeline_bid_id", "bid_id"),)

    bid_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("bids.id"), nullable=False)

    event: Mapped[str] = mapped_column(String(255), nullable=False)
    event_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    # Days from bid creation to this milestone
    estimated_duration: Mapped[int] = mapped_column(nullable=False, default=0)
    duration_type: Mapped[str] = mapped_column(String(20), nullable=False, default="days")
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)


class BidHistoryEntry(Base):
    """Audit entry for a change made to a bid."""

    __tablename__ = "bid_history"

    __table_args__ = (
        Index("idx_bid_history_bid_id", "bid_id"),
        Index("idx_bid_history_action", "action"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    bid_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("bids.id"), nullable=False)

    # e.g. "status_changed"
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    performed_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
