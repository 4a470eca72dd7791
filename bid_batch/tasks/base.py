"""
Batch task contract and the registry the executor looks tasks up in.

A task is two steps.  ``prepare_items`` picks the records a run should
touch (bids past their end date, for the expiration sweep) and freezes
them into ``BatchItemInput`` values.  ``execute_item`` then handles one of
those records; the executor wraps each call in its own SAVEPOINT, so a task
never begins, commits or rolls back anything itself.

Registry rules:
    - A ``task_type`` key is registered at most once.
    - Looking up an unknown key is a programming error (KeyError).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from bid_batch.domain.types import BatchItemStatus


@dataclass(frozen=True)
class BatchItemInput:
    """One record selected for a run; ``item_key`` is usually a bid id."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """What ``execute_item`` reports back for its record."""

    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@runtime_checkable
class BatchTask(Protocol):
    """Anything the executor can run.

    ``as_of`` is the run's start time from the executor's clock; tasks use it
    instead of reading the wall clock so a sweep is reproducible.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]: ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult: ...


class TaskRegistry:
    """task_type -> BatchTask."""

    def __init__(self) -> None:
        self._by_type: dict[str, BatchTask] = {}

    def register(self, task: BatchTask) -> None:
        """Add a task.

        Raises:
            ValueError: ``task.task_type`` is taken.
        """
        key = task.task_type
        if key in self._by_type:
            raise ValueError(f"Task type '{key}' is already registered")
        self._by_type[key] = task

    def get(self, task_type: str) -> BatchTask:
        """Look a task up.

        Raises:
            KeyError: Nothing registered under ``task_type``; the message
                lists what is.
        """
        task = self._by_type.get(task_type)
        if task is None:
            raise KeyError(
                f"No task registered for type '{task_type}' "
                f"(registered: {', '.join(self.list_tasks()) or 'none'})"
            )
        return task

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_type))

    def __len__(self) -> int:
        return len(self._by_type)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._by_type


def default_task_registry() -> TaskRegistry:
    """Registry holding every bid task (today: the expiration sweep)."""
    from bid_batch.tasks.bid_tasks import ExpireBidsTask

    registry = TaskRegistry()
    registry.register(ExpireBidsTask())
    return registry
