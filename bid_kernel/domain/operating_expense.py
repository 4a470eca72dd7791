"""
Operating-expense calculator -- overhead add-on for a bid.

Responsibility:
    Pure function turning a bid's direct cost and the prior-year revenue /
    operating-cost ratio into an inflation-adjusted overhead add-on and the
    whole-dollar headline price.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    RecalculationService; organization defaults are resolved by the caller.

Formula:
    overhead_ratio         = operating_cost / gross_revenue
    overhead_allocation    = direct_cost * overhead_ratio
    inflation_multiplier   = 1 + inflation_rate / 100
    total_operating_add_on = overhead_allocation * inflation_multiplier
    inflation_offset       = total_operating_add_on - overhead_allocation
    total_price            = direct_cost + total_operating_add_on
    final_bid_rounded_up   = ceil(total_price)

    When gross_revenue <= 0 or direct_cost < 0 every derived amount is zero
    and final_bid_rounded_up = ceil(direct_cost).  The calculator never
    raises for these inputs.

Invariants enforced:
    - Decimal arithmetic only; amounts are returned unrounded so callers
      decide where cents rounding happens.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from bid_kernel.db.types import ZERO, ceil_dollars

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class OperatingExpenseResult:
    """Outcome of one operating-expense calculation."""

    overhead_ratio: Decimal
    overhead_allocation: Decimal
    inflation_offset: Decimal
    total_operating_add_on: Decimal
    total_price: Decimal
    final_bid_rounded_up: Decimal
    # Set only by the fail-safe branch (no revenue or negative cost)
    is_degenerate: bool = False


def calculate_operating_expense_add_on(
    direct_cost: Decimal,
    gross_revenue_previous_year: Decimal,
    operating_cost_previous_year: Decimal,
    inflation_rate_percent: Decimal,
) -> OperatingExpenseResult:
    """Compute the overhead add-on for a direct cost.

    >>> r = calculate_operating_expense_add_on(
    ...     Decimal("10000"), Decimal("500000"), Decimal("100000"), Decimal("5"))
    >>> r.overhead_ratio, r.total_operating_add_on, r.final_bid_rounded_up
    (Decimal('0.2'), Decimal('2100.000'), Decimal('12100'))
    """
    if gross_revenue_previous_year <= ZERO or direct_cost < ZERO:
        return OperatingExpenseResult(
            overhead_ratio=ZERO,
            overhead_allocation=ZERO,
            inflation_offset=ZERO,
            total_operating_add_on=ZERO,
            total_price=direct_cost,
            final_bid_rounded_up=ceil_dollars(direct_cost),
            is_degenerate=True,
        )

    overhead_ratio = operating_cost_previous_year / gross_revenue_previous_year
    overhead_allocation = direct_cost * overhead_ratio
    inflation_multiplier = 1 + inflation_rate_percent / _HUNDRED
    total_operating_add_on = overhead_allocation * inflation_multiplier
    inflation_offset = total_operating_add_on - overhead_allocation
    total_price = direct_cost + total_operating_add_on

    return OperatingExpenseResult(
        overhead_ratio=overhead_ratio,
        overhead_allocation=overhead_allocation,
        inflation_offset=inflation_offset,
        total_operating_add_on=total_operating_add_on,
        total_price=total_price,
        final_bid_rounded_up=ceil_dollars(total_price),
    )
