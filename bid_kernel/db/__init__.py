"""Database layer - engine, base classes, and column types."""

from bid_kernel.db.base import (
    UUID,
    Base,
    SoftDeletableBase,
    TrackedBase,
    UTCDateTime,
    UUIDString,
)
from bid_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from bid_kernel.db.types import ceil_dollars, parse_money, round_money

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "SoftDeletableBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "round_money",
    "ceil_dollars",
    "parse_money",
]
