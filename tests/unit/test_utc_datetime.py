"""
Tests for the UTCDateTime column type (bid_kernel/db/base.py).

Verifies:
- Stored timestamps read back timezone-aware in UTC after a reload
- Aware values in other zones are stored as the same instant
- The bind and result conversions on their own
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from bid_kernel.db.base import UTCDateTime
from bid_kernel.models.bid import Bid
from bid_kernel.models.timeline import BidHistoryEntry

DENVER = timezone(timedelta(hours=-6))


class TestRoundTrip:

    def test_created_at_reloads_aware(self, bid, session, deterministic_clock):
        session.expire_all()

        row = session.execute(select(Bid).where(Bid.id == bid.id)).scalar_one()
        assert row.created_at.tzinfo is not None
        assert row.created_at == deterministic_clock.now()

    def test_history_timestamp_reloads_aware(
        self, bid, bid_service, session, deterministic_clock, organization_id, test_actor_id
    ):
        bid_service.update_bid(bid.id, organization_id, {"status": "pending"}, test_actor_id)
        session.expire_all()

        entry = session.execute(
            select(BidHistoryEntry).where(BidHistoryEntry.bid_id == bid.id)
        ).scalar_one()
        assert entry.performed_at.utcoffset() == timedelta(0)
        assert entry.performed_at == deterministic_clock.now()

    def test_other_zone_stored_as_same_instant(
        self, bid, session, test_actor_id
    ):
        moment = datetime(2025, 6, 15, 20, 0, tzinfo=DENVER)
        session.add(
            BidHistoryEntry(
                organization_id=bid.organization_id,
                bid_id=bid.id,
                action="note",
                performed_by_id=test_actor_id,
                performed_at=moment,
            )
        )
        session.flush()
        session.expire_all()

        entry = session.execute(
            select(BidHistoryEntry).where(BidHistoryEntry.bid_id == bid.id)
        ).scalar_one()
        assert entry.performed_at == datetime(2025, 6, 16, 2, 0, tzinfo=timezone.utc)
        assert entry.performed_at.tzinfo == timezone.utc


class TestConversions:

    def test_bind_converts_to_utc(self):
        moment = datetime(2025, 6, 15, 20, 0, tzinfo=DENVER)
        bound = UTCDateTime().process_bind_param(moment, None)
        assert bound == moment
        assert bound.tzinfo == timezone.utc

    def test_naive_result_tagged_utc(self):
        loaded = UTCDateTime().process_result_value(datetime(2025, 6, 15, 12, 0), None)
        assert loaded == datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

    def test_none_passes_through(self):
        assert UTCDateTime().process_bind_param(None, None) is None
        assert UTCDateTime().process_result_value(None, None) is None
