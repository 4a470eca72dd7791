"""
Module: bid_kernel.selectors.base
Responsibility: Read side of the kernel.  Selectors answer questions about
    bids and their components and hand back frozen DTOs, never ORM rows.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/dtos.py; never from services/.

Invariants enforced:
    - Read-only: no add, delete, flush or commit.
    - A soft-deleted row is invisible; every query goes through ``live()``.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy import ColumnElement
from sqlalchemy.orm import Session

from bid_kernel.db.base import Base, SoftDeletableBase

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only access over the caller's session."""

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def live(model: type[SoftDeletableBase]) -> ColumnElement[bool]:
        """WHERE criterion excluding soft-deleted rows of ``model``."""
        return model.is_deleted.is_(False)
