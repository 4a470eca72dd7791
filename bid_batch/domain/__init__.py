"""Run and item outcome records for batch work."""

from bid_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    ExpirationSweepResult,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchRunResult",
    "ExpirationSweepResult",
]
