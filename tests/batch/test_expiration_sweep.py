"""
Tests for the expiration sweep (bid_batch.services.expiration).

The bids are created on 2025-06-15; the sweep runs two days later.
"""

from datetime import date
from uuid import UUID

import pytest

from bid_batch.domain.types import ExpirationSweepResult
from bid_batch.services.expiration import sweep_expirations
from bid_batch.tasks.base import TaskRegistry
from bid_batch.tasks.bid_tasks import ExpireBidsTask
from bid_kernel.domain.dtos import BidStatus
from bid_kernel.services.bid_service import EXPIRED_DESCRIPTION
from bid_kernel.services.timeline_service import STATUS_CHANGED


class FailingExpireBidsTask(ExpireBidsTask):
    """Expiration task that blows up on one chosen bid."""

    def __init__(self, failing_bid_id: UUID):
        self._failing_bid_id = failing_bid_id

    def execute_item(self, item, parameters, session, as_of):
        if item.payload["bid_id"] == str(self._failing_bid_id):
            raise RuntimeError("storage hiccup")
        return super().execute_item(item, parameters, session, as_of)


@pytest.fixture
def sweep_day(deterministic_clock):
    """Move the clock to 2025-06-17 after the bids are created."""

    def _advance():
        deterministic_clock.advance_days(2)
        return deterministic_clock

    return _advance


class TestSweepExpirations:

    def test_expires_past_due_bid(
        self, create_bid, selector, session, sweep_day, system_actor_id
    ):
        past_due = create_bid(end_date=date(2025, 6, 16), status="submitted")
        clock = sweep_day()

        result = sweep_expirations(session, system_actor_id, clock=clock)

        assert result == ExpirationSweepResult(expired_count=1, error_count=0)
        assert selector.get_bid(past_due.id).status == BidStatus.EXPIRED

        entry = selector.get_history(past_due.id)[-1]
        assert entry.action == STATUS_CHANGED
        assert entry.old_value == "submitted"
        assert entry.new_value == "expired"
        assert entry.description == EXPIRED_DESCRIPTION
        assert entry.performed_by_id == system_actor_id
        assert entry.performed_at.date() == date(2025, 6, 17)

    def test_end_date_today_expires(self, create_bid, selector, session, sweep_day, system_actor_id):
        due_today = create_bid(end_date=date(2025, 6, 17))

        result = sweep_expirations(session, system_actor_id, clock=sweep_day())

        assert result.expired_count == 1
        assert selector.get_bid(due_today.id).status == BidStatus.EXPIRED

    def test_leaves_future_and_closed_bids(
        self, create_bid, selector, session, sweep_day, system_actor_id
    ):
        future = create_bid(end_date=date(2025, 6, 30))
        won = create_bid(end_date=date(2025, 6, 16), status="won")
        no_end_date = create_bid()

        result = sweep_expirations(session, system_actor_id, clock=sweep_day())

        assert result == ExpirationSweepResult(expired_count=0, error_count=0)
        assert selector.get_bid(future.id).status == BidStatus.DRAFT
        assert selector.get_bid(won.id).status == BidStatus.WON
        assert selector.get_bid(no_end_date.id).status == BidStatus.DRAFT
        assert selector.get_history(future.id) == []

    def test_second_sweep_is_a_no_op(self, create_bid, session, sweep_day, system_actor_id):
        create_bid(end_date=date(2025, 6, 16))
        clock = sweep_day()

        sweep_expirations(session, system_actor_id, clock=clock)
        result = sweep_expirations(session, system_actor_id, clock=clock)

        assert result == ExpirationSweepResult(expired_count=0, error_count=0)

    def test_failure_is_counted_not_raised(
        self, create_bid, selector, session, sweep_day, system_actor_id, captured_logs
    ):
        broken = create_bid(end_date=date(2025, 6, 16))
        healthy = create_bid(end_date=date(2025, 6, 16))
        registry = TaskRegistry()
        registry.register(FailingExpireBidsTask(broken.id))

        result = sweep_expirations(
            session, system_actor_id, clock=sweep_day(), task_registry=registry
        )

        assert result == ExpirationSweepResult(expired_count=1, error_count=1)
        assert selector.get_bid(broken.id).status == BidStatus.DRAFT
        assert selector.get_bid(healthy.id).status == BidStatus.EXPIRED

        failures = [r for r in captured_logs() if r["message"] == "bid_expiration_failed"]
        assert len(failures) == 1
        assert failures[0]["bid_id"] == str(broken.id)
        assert failures[0]["error_code"] == "UNHANDLED_EXCEPTION"
        assert failures[0]["error_message"] == "storage hiccup"

    def test_completion_logged(self, create_bid, session, sweep_day, system_actor_id, captured_logs):
        create_bid(end_date=date(2025, 6, 16))

        sweep_expirations(session, system_actor_id, clock=sweep_day())

        completed = [r for r in captured_logs() if r["message"] == "expiration_sweep_completed"]
        assert completed[-1]["expired_count"] == 1
        assert completed[-1]["error_count"] == 0
