"""
BatchExecutor -- runs a registered task item by item.

Contract:
    ``run(task_type, parameters)`` asks the task for its items, then hands
    them to ``execute_item`` in order.  Every item gets its own SAVEPOINT:
    SUCCEEDED releases it, SKIPPED and FAILED roll it back, and an exception
    escaping the task is caught, rolled back and recorded as
    ``UNHANDLED_EXCEPTION``.  The run itself never raises for an item.

Invariants enforced:
    - ``as_of`` for every item is the run's start time from the injected clock.
    - The executor never commits; the caller owns the outer transaction.
    - Nothing is persisted about the run; the result is returned and logged.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from bid_batch.domain.types import BatchItemResult, BatchItemStatus, BatchRunResult
from bid_batch.tasks.base import BatchItemInput, BatchTask, TaskRegistry
from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.logging_config import get_logger

logger = get_logger("batch.executor")

UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"


def _elapsed_ms(since: float) -> int:
    return int((time.monotonic() - since) * 1000)


class BatchExecutor:
    """SAVEPOINT-per-item runner for tasks in a TaskRegistry."""

    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
    ):
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()

    def run(
        self,
        task_type: str,
        parameters: dict[str, Any] | None = None,
    ) -> BatchRunResult:
        """Run every item the task prepares.

        Raises:
            KeyError: If task_type is not registered.
        """
        task = self._task_registry.get(task_type)
        parameters = parameters or {}
        run_start = time.monotonic()
        started_at = self._clock.now()

        items = task.prepare_items(
            parameters=parameters, session=self._session, as_of=started_at
        )
        logger.info(
            "batch_run_started",
            extra={
                "task_type": task_type,
                "description": task.description,
                "total_items": len(items),
            },
        )

        results = tuple(
            self._run_item(task, item, parameters, started_at) for item in items
        )
        counts = {status: 0 for status in BatchItemStatus}
        for result in results:
            counts[result.status] += 1

        run = BatchRunResult(
            task_type=task_type,
            total_items=len(items),
            succeeded=counts[BatchItemStatus.SUCCEEDED],
            failed=counts[BatchItemStatus.FAILED],
            skipped=counts[BatchItemStatus.SKIPPED],
            item_results=results,
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=_elapsed_ms(run_start),
        )
        logger.info(
            "batch_run_completed",
            extra={
                "task_type": task_type,
                "succeeded": run.succeeded,
                "failed": run.failed,
                "skipped": run.skipped,
                "duration_ms": run.duration_ms,
            },
        )
        return run

    def _run_item(
        self,
        task: BatchTask,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: datetime,
    ) -> BatchItemResult:
        item_start = time.monotonic()
        savepoint = self._session.begin_nested()
        try:
            outcome = task.execute_item(
                item=item, parameters=parameters, session=self._session, as_of=as_of
            )
        except Exception as exc:
            savepoint.rollback()
            logger.error(
                "batch_item_failed",
                extra={
                    "task_type": task.task_type,
                    "item_key": item.item_key,
                    "error_code": UNHANDLED_EXCEPTION,
                },
                exc_info=True,
            )
            return BatchItemResult(
                item_index=item.item_index,
                item_key=item.item_key,
                status=BatchItemStatus.FAILED,
                error_code=UNHANDLED_EXCEPTION,
                error_message=str(exc),
                duration_ms=_elapsed_ms(item_start),
            )

        if outcome.status == BatchItemStatus.SUCCEEDED:
            savepoint.commit()
        else:
            savepoint.rollback()
            if outcome.status == BatchItemStatus.FAILED:
                logger.warning(
                    "batch_item_failed",
                    extra={
                        "task_type": task.task_type,
                        "item_key": item.item_key,
                        "error_code": outcome.error_code,
                        "error_message": outcome.error_message,
                    },
                )

        return BatchItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=outcome.status,
            error_code=outcome.error_code,
            error_message=outcome.error_message,
            result_data=outcome.result_data,
            duration_ms=_elapsed_ms(item_start),
        )
