"""
Tests for bid_batch.tasks.base and bid_batch.tasks.bid_tasks.

Validates the BatchTask protocol, TaskRegistry registration and lookup,
default_task_registry(), and ExpireBidsTask item preparation/execution.
"""

from dataclasses import FrozenInstanceError
from datetime import date, datetime, timezone
from typing import Any

import pytest
from sqlalchemy.orm import Session

from bid_batch.domain.types import BatchItemStatus
from bid_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
    default_task_registry,
)
from bid_batch.tasks.bid_tasks import EXPIRE_BIDS, ExpireBidsTask
from bid_kernel.domain.dtos import BidStatus

SWEEP_TIME = datetime(2025, 6, 17, 2, 0, tzinfo=timezone.utc)


class FakeReminderTask:
    """Minimal BatchTask implementation for registry tests."""

    @property
    def task_type(self) -> str:
        return "bids.send_reminders"

    @property
    def description(self) -> str:
        return "Remind owners of bids closing soon"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        return ()

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED)


class TestBatchDTOs:
    def test_item_input_defaults(self):
        item = BatchItemInput(item_index=0, item_key="bid-1")
        assert item.payload == {}

    def test_item_input_frozen(self):
        item = BatchItemInput(item_index=0, item_key="x")
        with pytest.raises(FrozenInstanceError):
            item.item_key = "y"  # type: ignore[misc]

    def test_task_result_defaults(self):
        result = BatchTaskResult(status=BatchItemStatus.SUCCEEDED)
        assert result.result_data is None
        assert result.error_code is None
        assert result.error_message is None


class TestTaskRegistry:
    def test_register_and_get(self):
        registry = TaskRegistry()
        task = FakeReminderTask()
        registry.register(task)

        assert registry.get("bids.send_reminders") is task
        assert "bids.send_reminders" in registry
        assert len(registry) == 1

    def test_duplicate_rejected(self):
        registry = TaskRegistry()
        registry.register(FakeReminderTask())

        with pytest.raises(ValueError, match="already registered"):
            registry.register(FakeReminderTask())

    def test_missing_task(self):
        with pytest.raises(KeyError, match="bids.unknown"):
            TaskRegistry().get("bids.unknown")

    def test_list_tasks_sorted(self):
        registry = TaskRegistry()
        registry.register(FakeReminderTask())
        registry.register(ExpireBidsTask())

        assert registry.list_tasks() == (EXPIRE_BIDS, "bids.send_reminders")

    def test_default_registry_holds_expiration(self):
        registry = default_task_registry()

        assert registry.list_tasks() == (EXPIRE_BIDS,)
        assert isinstance(registry.get(EXPIRE_BIDS), ExpireBidsTask)


class TestExpireBidsTask:
    def test_protocol_compliant(self):
        task = ExpireBidsTask()
        assert isinstance(task, BatchTask)
        assert task.task_type == "bids.expire_expired"

    def test_prepare_items(self, create_bid, session):
        first = create_bid(end_date=date(2025, 6, 15))
        second = create_bid(end_date=date(2025, 6, 16))
        create_bid(end_date=date(2025, 6, 18))

        items = ExpireBidsTask().prepare_items({}, session, SWEEP_TIME)

        assert [item.item_key for item in items] == [str(first.id), str(second.id)]
        assert [item.item_index for item in items] == [0, 1]
        assert items[0].payload == {"bid_id": str(first.id)}

    def test_execute_item(self, create_bid, session, selector, system_actor_id):
        bid = create_bid(end_date=date(2025, 6, 16), status="pending")
        item = BatchItemInput(item_index=0, item_key=str(bid.id), payload={"bid_id": str(bid.id)})

        result = ExpireBidsTask().execute_item(
            item, {"system_actor_id": str(system_actor_id)}, session, SWEEP_TIME
        )

        assert result.status == BatchItemStatus.SUCCEEDED
        assert result.result_data == {
            "bid_id": str(bid.id),
            "bid_number": bid.bid_number,
            "old_status": "pending",
        }
        assert selector.get_bid(bid.id).status == BidStatus.EXPIRED
        assert selector.get_history(bid.id)[-1].performed_at.date() == SWEEP_TIME.date()

    def test_skips_bid_closed_since_preparation(
        self, create_bid, bid_service, session, organization_id, test_actor_id, system_actor_id
    ):
        bid = create_bid(end_date=date(2025, 6, 16))
        item = ExpireBidsTask().prepare_items({}, session, SWEEP_TIME)[0]
        bid_service.update_bid(bid.id, organization_id, {"status": "won"}, test_actor_id)

        result = ExpireBidsTask().execute_item(
            item, {"system_actor_id": str(system_actor_id)}, session, SWEEP_TIME
        )

        assert result.status == BatchItemStatus.SKIPPED
        assert result.result_data == {"bid_id": str(bid.id), "status": "won"}
