"""
bid_batch.tasks -- The task contract, the registry, and the bid tasks registered with it.
"""

from bid_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
    default_task_registry,
)
from bid_batch.tasks.bid_tasks import EXPIRE_BIDS, ExpireBidsTask

__all__ = [
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
    "EXPIRE_BIDS",
    "ExpireBidsTask",
    "TaskRegistry",
    "default_task_registry",
]
