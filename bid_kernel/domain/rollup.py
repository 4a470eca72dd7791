"""
Financial breakdown rollup -- line sums per track.

Responsibility:
    Pure aggregation of material, labor and travel line costs into the
    bid-level subtotals for both the initial and the actual track, and the
    price/gross-profit composition of a track once the operating-expense
    add-on is known.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  RecalculationService
    feeds it live line rows and writes the result to the breakdown row.

Invariants enforced:
    - total_cost  = materials_equipment + labor + travel     (per track)
    - total_price = total_cost + operating_expenses          (per track)
    - gross_profit = total_price - total_cost                (per track)
    All amounts are rounded to cents with round_money.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from bid_kernel.db.types import ZERO, round_money


@dataclass(frozen=True)
class LineCost:
    """Initial and actual cost of one cost line."""

    initial: Decimal
    actual: Decimal


@dataclass(frozen=True)
class TrackSubtotals:
    """Direct-cost subtotals of one track."""

    materials_equipment: Decimal
    labor: Decimal
    travel: Decimal

    @property
    def total_cost(self) -> Decimal:
        return round_money(self.materials_equipment + self.labor + self.travel)


@dataclass(frozen=True)
class TrackPricing:
    """Price side of one track."""

    operating_expenses: Decimal
    total_price: Decimal
    gross_profit: Decimal


def _sum(values: Iterable[Decimal]) -> Decimal:
    return round_money(sum(values, ZERO))


def rollup_lines(
    materials: Iterable[LineCost],
    labor: Iterable[LineCost],
    travel: Iterable[LineCost],
) -> tuple[TrackSubtotals, TrackSubtotals]:
    """Sum line costs into (initial, actual) subtotals."""
    materials = tuple(materials)
    labor = tuple(labor)
    travel = tuple(travel)

    initial = TrackSubtotals(
        materials_equipment=_sum(line.initial for line in materials),
        labor=_sum(line.initial for line in labor),
        travel=_sum(line.initial for line in travel),
    )
    actual = TrackSubtotals(
        materials_equipment=_sum(line.actual for line in materials),
        labor=_sum(line.actual for line in labor),
        travel=_sum(line.actual for line in travel),
    )
    return initial, actual


def price_track(total_cost: Decimal, operating_add_on: Decimal) -> TrackPricing:
    """Compose total price and gross profit for a track."""
    add_on = round_money(operating_add_on)
    total_price = round_money(total_cost + add_on)
    return TrackPricing(
        operating_expenses=add_on,
        total_price=total_price,
        gross_profit=round_money(total_price - total_cost),
    )
