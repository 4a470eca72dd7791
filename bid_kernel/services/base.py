"""
BaseService -- common ancestor of the bid write services.

Every service receives the caller's Session and writes through
``session.flush()``.  Committing is the caller's job: a request handler, the
expiration script or a test fixture decides when a unit of work is done.

Writes that must land together (a bid with its breakdown, config and
timeline; a cost line with the recalculation it triggers) run inside
``session.begin_nested()``.  A failure rolls the SAVEPOINT back, leaves no
partial rows and keeps the caller's transaction usable.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from bid_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Holds the session; never commits or rolls back."""

    def __init__(self, session: Session):
        self.session = session
