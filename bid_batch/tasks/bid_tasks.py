"""
Batch tasks: bid lifecycle (automatic expiration).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bid_batch.domain.types import BatchItemStatus
from bid_batch.tasks.base import BatchItemInput, BatchTaskResult
from bid_kernel.domain.clock import FixedClock
from bid_kernel.domain.dtos import EXPIRABLE_STATUSES, BidStatus
from bid_kernel.exceptions import BidEngineError
from bid_kernel.models.bid import Bid
from bid_kernel.selectors.bid_selector import BidSelector
from bid_kernel.services.bid_service import BidService

EXPIRE_BIDS = "bids.expire_expired"


class ExpireBidsTask:
    """Move bids whose end date has passed to EXPIRED.

    Parameters:
        system_actor_id: UUID (or its string form) recorded on the history
            entries.
    """

    @property
    def task_type(self) -> str:
        return EXPIRE_BIDS

    @property
    def description(self) -> str:
        return "Expire open bids whose end date has passed"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        bid_ids = BidSelector(session).list_expirable_bid_ids(as_of.date())
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(bid_id),
                payload={"bid_id": str(bid_id)},
            )
            for i, bid_id in enumerate(bid_ids)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        bid_id = UUID(item.payload["bid_id"])
        status = session.execute(
            select(Bid.status).where(Bid.id == bid_id)
        ).scalar_one_or_none()
        if status is None or BidStatus(status) not in EXPIRABLE_STATUSES:
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"bid_id": str(bid_id), "status": status},
            )

        system_actor_id = UUID(str(parameters["system_actor_id"]))
        try:
            bid = BidService(session, clock=FixedClock(as_of)).expire_bid(
                bid_id, system_actor_id
            )
        except BidEngineError as exc:
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                error_code=exc.code,
                error_message=str(exc),
            )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "bid_id": str(bid.id),
                "bid_number": bid.bid_number,
                "old_status": status,
            },
        )
