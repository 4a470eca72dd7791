"""Conversion of caller-supplied field values into column values.

Callers (routing layers, scripts, tests) hand services plain mappings whose
values may be strings, ints, Decimals, dates or ISO date strings.  Each value
is converted according to the target column's SQL type so that a malformed
number or date fails as a ValidationError naming the field, before any row
is touched.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy import inspect as sa_inspect

from bid_kernel.db.base import Base, UTCDateTime, UUIDString
from bid_kernel.db.types import parse_money, parse_whole_number
from bid_kernel.exceptions import UnknownFieldError, ValidationError


def parse_date(field: str, value: date | datetime | str | None) -> date | None:
    """Accept a date, a datetime (its date part) or an ISO-8601 string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            raise ValidationError(field, f"'{value}' is not a valid date") from None
    raise ValidationError(field, f"{value!r} is not a valid date")


def coerce_value(model: type[Base], entity: str, field: str, value: Any) -> Any:
    """Convert one value for ``model.field``.

    Raises:
        UnknownFieldError: If the model has no such column.
        ValidationError: If the value does not fit the column.
    """
    columns = sa_inspect(model).columns
    if field not in columns:
        raise UnknownFieldError(entity, field)
    column = columns[field]

    if value is None:
        if not column.nullable:
            raise ValidationError(field, "cannot be null")
        return None

    column_type = column.type
    if isinstance(column_type, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(field, f"{value!r} is not a boolean")
        return value
    if isinstance(column_type, Numeric):
        return parse_money(field, value)
    if isinstance(column_type, Integer):
        return parse_whole_number(field, value)
    if isinstance(column_type, (Date,)):
        return parse_date(field, value)
    if isinstance(column_type, (DateTime, UTCDateTime)):
        if not isinstance(value, datetime):
            raise ValidationError(field, f"{value!r} is not a datetime")
        return value
    if isinstance(column_type, UUIDString):
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            raise ValidationError(field, f"'{value}' is not a valid id") from None
    if isinstance(column_type, (String, Text)):
        return str(value)
    return value


def coerce_fields(
    model: type[Base], entity: str, values: Mapping[str, Any]
) -> dict[str, Any]:
    """Convert every value of a partial update for ``model``."""
    return {
        name: coerce_value(model, entity, name, value)
        for name, value in values.items()
    }
