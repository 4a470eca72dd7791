"""Derived totals for cost lines.

When a line is created without explicit totals they are computed from its
inputs.  Explicitly supplied totals always win.

    material: total_cost  = quantity * unit_cost
              total_price = total_cost * (1 + markup / 100)
    labor:    total_hours = days * hours_per_day
              total_cost  = total_hours * cost_rate
              total_price = total_hours * billable_rate
    travel:   mileage_cost = round_trip_miles * mileage_rate * days
              vehicle_cost = vehicle_day_rate * days
              total_cost   = mileage_cost + vehicle_cost
              total_price  = total_cost * (1 + markup / 100)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from bid_kernel.db.types import ZERO, round_money

_HUNDRED = Decimal("100")


def _get(values: dict[str, Any], name: str) -> Decimal:
    value = values.get(name)
    return ZERO if value is None else Decimal(value)


def _with_markup(cost: Decimal, markup: Decimal) -> Decimal:
    return round_money(cost * (1 + markup / _HUNDRED))


def derive_material_totals(values: dict[str, Any]) -> dict[str, Any]:
    derived = dict(values)
    if derived.get("total_cost") is None:
        derived["total_cost"] = round_money(
            _get(derived, "quantity") * _get(derived, "unit_cost")
        )
    if derived.get("total_price") is None:
        derived["total_price"] = _with_markup(
            _get(derived, "total_cost"), _get(derived, "markup")
        )
    return derived


def derive_labor_totals(values: dict[str, Any]) -> dict[str, Any]:
    derived = dict(values)
    if derived.get("total_hours") is None:
        derived["total_hours"] = round_money(
            _get(derived, "days") * _get(derived, "hours_per_day")
        )
    hours = _get(derived, "total_hours")
    if derived.get("total_cost") is None:
        derived["total_cost"] = round_money(hours * _get(derived, "cost_rate"))
    if derived.get("total_price") is None:
        derived["total_price"] = round_money(hours * _get(derived, "billable_rate"))
    return derived


def derive_travel_totals(values: dict[str, Any]) -> dict[str, Any]:
    derived = dict(values)
    days = _get(derived, "days")
    if derived.get("mileage_cost") is None:
        derived["mileage_cost"] = round_money(
            _get(derived, "round_trip_miles") * _get(derived, "mileage_rate") * days
        )
    if derived.get("vehicle_cost") is None:
        derived["vehicle_cost"] = round_money(_get(derived, "vehicle_day_rate") * days)
    if derived.get("total_cost") is None:
        derived["total_cost"] = round_money(
            _get(derived, "mileage_cost") + _get(derived, "vehicle_cost")
        )
    if derived.get("total_price") is None:
        derived["total_price"] = _with_markup(
            _get(derived, "total_cost"), _get(derived, "markup")
        )
    return derived
