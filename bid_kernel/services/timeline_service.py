"""
TimelineService -- append-only milestones and audit history for bids.

Responsibility:
    Records the "created" and "end date" milestones when a bid is created,
    and appends history entries for status changes (explicit edits and the
    expiration sweep).

Architecture position:
    Kernel > Services -- imperative shell.  Driven by BidService and the
    expiration task; never called on its own by routing layers.

Invariants enforced:
    - Timeline and history rows are only inserted, never updated.
    - The "end date" milestone is dated 23:59:59 UTC on the end date and
      carries the whole-day count from creation, floored at zero.
"""

from datetime import datetime, time, timezone
from uuid import UUID

from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.domain.dtos import HistoryEntryInfo, TimelineEventInfo
from bid_kernel.logging_config import get_logger
from bid_kernel.models.bid import Bid
from bid_kernel.models.snapshots import history_entry_to_dto, timeline_event_to_dto
from bid_kernel.models.timeline import BidHistoryEntry, BidTimelineEvent
from bid_kernel.services.base import BaseService

logger = get_logger("services.timeline")

CREATED_EVENT = "created"
END_DATE_EVENT = "end date"
STATUS_CHANGED = "status_changed"

_END_OF_DAY = time(23, 59, 59, tzinfo=timezone.utc)


class TimelineService(BaseService[BidTimelineEvent]):
    """Writes bid milestones and history entries."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record_creation_milestones(
        self, bid: Bid, actor_id: UUID
    ) -> list[TimelineEventInfo]:
        """
        Record the milestones of a newly created bid.

        "created" is always recorded, already completed.  "end date" is
        recorded only when the bid has an end date.
        """
        created_at = bid.created_at
        events = [
            BidTimelineEvent(
                bid_id=bid.id,
                event=CREATED_EVENT,
                event_date=created_at,
                estimated_duration=0,
                duration_type="days",
                is_completed=True,
                description="Bid created",
                sort_order=0,
                created_at=created_at,
                created_by_id=actor_id,
            )
        ]
        if bid.end_date is not None:
            end_at = datetime.combine(bid.end_date, _END_OF_DAY)
            days = (end_at - created_at).days
            events.append(
                BidTimelineEvent(
                    bid_id=bid.id,
                    event=END_DATE_EVENT,
                    event_date=end_at,
                    estimated_duration=max(0, days),
                    duration_type="days",
                    is_completed=False,
                    description="Project end date",
                    sort_order=1,
                    created_at=created_at,
                    created_by_id=actor_id,
                )
            )

        self.session.add_all(events)
        self.session.flush()
        logger.debug(
            "timeline_milestones_recorded",
            extra={"bid_id": str(bid.id), "count": len(events)},
        )
        return [timeline_event_to_dto(event) for event in events]

    def record_history(
        self,
        bid: Bid,
        action: str,
        performed_by_id: UUID,
        old_value: str | None = None,
        new_value: str | None = None,
        description: str | None = None,
    ) -> HistoryEntryInfo:
        entry = BidHistoryEntry(
            organization_id=bid.organization_id,
            bid_id=bid.id,
            action=action,
            old_value=old_value,
            new_value=new_value,
            description=description,
            performed_by_id=performed_by_id,
            performed_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        return history_entry_to_dto(entry)
