"""
Expiration sweep -- the periodic job that expires stale bids.

Any bid still in draft, pending, submitted or in_progress whose end date is
on or before today (per the injected clock) moves to EXPIRED with a history
entry attributed to the system actor.  Per-bid failures are logged and
counted, never raised.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from bid_batch.domain.types import ExpirationSweepResult
from bid_batch.services.executor import BatchExecutor
from bid_batch.tasks.base import TaskRegistry, default_task_registry
from bid_batch.tasks.bid_tasks import EXPIRE_BIDS
from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.logging_config import get_logger

logger = get_logger("batch.expiration")


def sweep_expirations(
    session: Session,
    system_actor_id: UUID,
    clock: Clock | None = None,
    task_registry: TaskRegistry | None = None,
) -> ExpirationSweepResult:
    """Expire every open bid whose end date has passed.

    Args:
        session: Caller-owned session; the caller commits.
        system_actor_id: Actor recorded on the history entries.
        clock: Source of "today".
        task_registry: Registry holding the expiration task.

    Returns:
        ExpirationSweepResult(expired_count, error_count).
    """
    clock = clock or SystemClock()
    executor = BatchExecutor(session, task_registry or default_task_registry(), clock)
    run = executor.run(EXPIRE_BIDS, {"system_actor_id": str(system_actor_id)})

    for item in run.failed_items:
        logger.warning(
            "bid_expiration_failed",
            extra={
                "bid_id": item.item_key,
                "error_code": item.error_code,
                "error_message": item.error_message,
            },
        )

    result = ExpirationSweepResult(expired_count=run.succeeded, error_count=run.failed)
    logger.info(
        "expiration_sweep_completed",
        extra={
            "expired_count": result.expired_count,
            "error_count": result.error_count,
            "skipped_count": run.skipped,
        },
    )
    return result
