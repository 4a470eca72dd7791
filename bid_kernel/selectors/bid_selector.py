"""
BidSelector -- read access to bids, their financial rows, cost lines,
timeline and history.

Every query excludes soft-deleted rows.  Travel lines are visible only
through a live labor line.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bid_kernel.db.types import ZERO, round_money
from bid_kernel.domain.dtos import (
    EXPIRABLE_STATUSES,
    BidInfo,
    BidStatus,
    BidSummary,
    FinancialBreakdownInfo,
    HistoryEntryInfo,
    LaborLineInfo,
    MaterialLineInfo,
    OperatingExpenseInfo,
    TimelineEventInfo,
    TravelLineInfo,
)
from bid_kernel.models.bid import Bid
from bid_kernel.models.cost_lines import LaborLine, MaterialLine, TravelLine
from bid_kernel.models.financial import FinancialBreakdown, OperatingExpenseConfig
from bid_kernel.models.snapshots import (
    bid_to_dto,
    breakdown_to_dto,
    history_entry_to_dto,
    labor_to_dto,
    material_to_dto,
    operating_expense_to_dto,
    timeline_event_to_dto,
    travel_to_dto,
)
from bid_kernel.models.timeline import BidHistoryEntry, BidTimelineEvent
from bid_kernel.selectors.base import BaseSelector


class BidSelector(BaseSelector[Bid]):
    """
    Selector for bid queries.

    Guarantees:
        - Read-only: no mutations are performed.
        - Ordering: lists are ordered by creation time (bids newest first,
          lines and history oldest first), timeline by sort order.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # -------------------------------------------------------------------------
    # Bids
    # -------------------------------------------------------------------------

    def _live_bid(self, bid_id: UUID, organization_id: UUID | None = None) -> Bid | None:
        query = select(Bid).where(Bid.id == bid_id, self.live(Bid))
        if organization_id is not None:
            query = query.where(Bid.organization_id == organization_id)
        return self.session.execute(query).scalar_one_or_none()

    def get_bid(self, bid_id: UUID, organization_id: UUID | None = None) -> BidInfo | None:
        """
        Get a bid by ID.

        Args:
            bid_id: Bid ID.
            organization_id: When given, the bid must belong to it.

        Returns:
            BidInfo if found and not deleted, None otherwise.
        """
        bid = self._live_bid(bid_id, organization_id)
        return bid_to_dto(bid) if bid is not None else None

    def list_bids(
        self,
        organization_id: UUID,
        status: BidStatus | str | None = None,
    ) -> list[BidInfo]:
        """List an organization's live bids, optionally by status."""
        query = select(Bid).where(
            Bid.organization_id == organization_id,
            self.live(Bid),
        )
        if status is not None:
            query = query.where(Bid.status == BidStatus(status).value)
        bids = self.session.execute(
            query.order_by(Bid.created_at.desc(), Bid.bid_number.desc())
        ).scalars()
        return [bid_to_dto(bid) for bid in bids]

    def list_expirable_bid_ids(self, as_of: date) -> list[UUID]:
        """
        IDs of live bids still open whose end date is on or before ``as_of``.

        Ordered by end date so the sweep processes the oldest first.
        """
        return list(
            self.session.execute(
                select(Bid.id)
                .where(
                    self.live(Bid),
                    Bid.status.in_([status.value for status in EXPIRABLE_STATUSES]),
                    Bid.end_date.is_not(None),
                    Bid.end_date <= as_of,
                )
                .order_by(Bid.end_date, Bid.bid_number)
            ).scalars()
        )

    def bid_summary(self, bid_id: UUID, today: date) -> BidSummary | None:
        """
        Headline figures for a bid card.

        estimated_duration is derived from planned start and estimated
        completion when both are set; expires_in_days counts from ``today``
        to the end date and never goes below zero.
        """
        bid = self._live_bid(bid_id)
        if bid is None:
            return None
        breakdown = self.session.execute(
            select(FinancialBreakdown).where(FinancialBreakdown.bid_id == bid.id)
        ).scalar_one_or_none()

        duration = bid.estimated_duration or 0
        if bid.planned_start_date is not None and bid.estimated_completion is not None:
            duration = (bid.estimated_completion - bid.planned_start_date).days

        expires_in = 0
        if bid.end_date is not None:
            expires_in = max(0, (bid.end_date - today).days)

        return BidSummary(
            bid_id=bid.id,
            bid_number=bid.bid_number,
            status=BidStatus(bid.status),
            bid_amount=round_money(bid.bid_amount),
            total_cost=round_money(breakdown.actual_total_cost) if breakdown else ZERO,
            total_price=round_money(breakdown.actual_total_price) if breakdown else ZERO,
            gross_profit=round_money(breakdown.actual_gross_profit) if breakdown else ZERO,
            profit_margin=(
                round_money(bid.profit_margin) if bid.profit_margin is not None else None
            ),
            estimated_duration=duration,
            expires_in_days=expires_in,
        )

    # -------------------------------------------------------------------------
    # Financial rows
    # -------------------------------------------------------------------------

    def get_breakdown(self, bid_id: UUID) -> FinancialBreakdownInfo | None:
        breakdown = self.session.execute(
            select(FinancialBreakdown).where(
                FinancialBreakdown.bid_id == bid_id,
                self.live(FinancialBreakdown),
            )
        ).scalar_one_or_none()
        return breakdown_to_dto(breakdown) if breakdown is not None else None

    def get_operating_expenses(self, bid_id: UUID) -> OperatingExpenseInfo | None:
        config = self.session.execute(
            select(OperatingExpenseConfig).where(
                OperatingExpenseConfig.bid_id == bid_id,
                self.live(OperatingExpenseConfig),
            )
        ).scalar_one_or_none()
        return operating_expense_to_dto(config) if config is not None else None

    # -------------------------------------------------------------------------
    # Cost lines
    # -------------------------------------------------------------------------

    def list_materials(self, bid_id: UUID) -> list[MaterialLineInfo]:
        lines = self.session.execute(
            select(MaterialLine)
            .where(MaterialLine.bid_id == bid_id, self.live(MaterialLine))
            .order_by(MaterialLine.created_at, MaterialLine.id)
        ).scalars()
        return [material_to_dto(line) for line in lines]

    def list_labor(self, bid_id: UUID) -> list[LaborLineInfo]:
        lines = self.session.execute(
            select(LaborLine)
            .where(LaborLine.bid_id == bid_id, self.live(LaborLine))
            .order_by(LaborLine.created_at, LaborLine.id)
        ).scalars()
        return [labor_to_dto(line) for line in lines]

    def list_travel(self, bid_id: UUID) -> list[TravelLineInfo]:
        """All live travel lines of all live labor lines of a bid."""
        lines = self.session.execute(
            select(TravelLine)
            .join(LaborLine, TravelLine.bid_labor_id == LaborLine.id)
            .where(
                LaborLine.bid_id == bid_id,
                self.live(LaborLine),
                self.live(TravelLine),
            )
            .order_by(TravelLine.created_at, TravelLine.id)
        ).scalars()
        return [travel_to_dto(line) for line in lines]

    # -------------------------------------------------------------------------
    # Timeline and history
    # -------------------------------------------------------------------------

    def get_timeline(self, bid_id: UUID) -> list[TimelineEventInfo]:
        events = self.session.execute(
            select(BidTimelineEvent)
            .where(BidTimelineEvent.bid_id == bid_id)
            .order_by(BidTimelineEvent.sort_order, BidTimelineEvent.event_date)
        ).scalars()
        return [timeline_event_to_dto(event) for event in events]

    def get_history(self, bid_id: UUID) -> list[HistoryEntryInfo]:
        entries = self.session.execute(
            select(BidHistoryEntry)
            .where(BidHistoryEntry.bid_id == bid_id)
            .order_by(BidHistoryEntry.performed_at, BidHistoryEntry.id)
        ).scalars()
        return [history_entry_to_dto(entry) for entry in entries]
