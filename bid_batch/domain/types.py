"""
Outcome records for batch runs.

Nothing here touches the database.  The executor builds one
``BatchItemResult`` per item and folds them into a ``BatchRunResult``; the
expiration sweep reduces that to an ``ExpirationSweepResult``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class BatchItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"  # its savepoint was rolled back
    SKIPPED = "skipped"


@dataclass(frozen=True)
class BatchItemResult:
    """What happened to one item, keyed by the business id it was about."""

    item_index: int
    item_key: str
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BatchRunResult:
    """Tally of a whole run.  ``item_results`` keeps item order."""

    task_type: str
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def failed_items(self) -> tuple[BatchItemResult, ...]:
        return tuple(
            item for item in self.item_results if item.status is BatchItemStatus.FAILED
        )


@dataclass(frozen=True)
class ExpirationSweepResult:
    expired_count: int
    error_count: int
