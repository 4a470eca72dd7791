"""Batch services: the executor and the expiration sweep."""

from bid_batch.services.executor import BatchExecutor
from bid_batch.services.expiration import sweep_expirations

__all__ = [
    "BatchExecutor",
    "sweep_expirations",
]
