"""
Module: bid_kernel.db.base
Responsibility: Declarative bases shared by every bid table: the UUID key,
    the column type for each Python annotation, the audit columns
    (``TrackedBase``) and the soft-delete flag (``SoftDeletableBase``).
Architecture position: Kernel > DB.  Imported by every model module and by
    the sequence counter table; imports nothing else from the kernel.

Invariants enforced:
    - Every row is keyed by a uuid4 stored as String(36), so the same schema
      runs on PostgreSQL and SQLite.
    - ``Mapped[Decimal]`` columns are Numeric(38, 9); money is never a float.
      Cents rounding happens in db/types.py before values are assigned.
    - Bids, cost lines and financial rows are never physically deleted; they
      carry ``is_deleted`` and every read path filters on it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, Boolean, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID bound as its 36-character string and read back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp that always reads back in UTC.

    Values are converted to UTC before binding; a naive value read back
    (SQLite keeps no offset) is tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Root of the bid schema."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Rows that remember who wrote them.

    ``created_at`` is passed explicitly by services from their injected
    Clock so bid numbers, end-date checks and timelines agree on "today";
    the server default only covers raw inserts.  ``created_by_id`` is
    mandatory: there is no anonymous write.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by_id: Mapped[PyUUID] = mapped_column(nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(nullable=True)


class SoftDeletableBase(TrackedBase):
    """Tracked rows removed by flag, never by DELETE."""

    __abstract__ = True

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


# Re-export UUID for convenience
UUID = PyUUID
