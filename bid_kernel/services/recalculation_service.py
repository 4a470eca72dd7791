"""
RecalculationService -- keeps a bid's headline price consistent with its
components.

Responsibility:
    The cascade run after any cost-line or operating-expense write (and on
    explicit request): re-derive the breakdown from live cost lines, apply
    the operating-expense add-on, and store the whole-dollar headline amount
    on the bid.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by CostComponentService after every line / opex write, by
    CostComponentService.update_financial_breakdown when it inserts the row,
    and directly by callers via ``recalculate(bid_id)``.  Delegates the math
    to the pure domain (domain/rollup.py, domain/operating_expense.py).

Algorithm:
    1. Self-heal: if the bid has any material or labor rows (live or
       deleted), recompute subtotals and total cost of both tracks from the
       live lines.  Otherwise the stored breakdown values are authoritative.
    2. direct_cost = breakdown.actual_total_cost.
    3. Operating expenses disabled (or no live config): add-on 0 in both
       tracks, total_price = total_cost, gross_profit = 0,
       bid_amount = ceil(unrounded actual total_cost).
    4. Enabled: resolve revenue / cost / inflation from the bid's config,
       falling back per field to the organization defaults, then zero.
    5. Write allocation and add-on into the config's actual fields and the
       breakdown's actual track; the initial track is seeded only when
       ``seed_initial`` is set.
    6. bid_amount = the calculator's ceiling of the unrounded actual price.
       Stored breakdown and config figures are rounded to cents.

Invariants enforced:
    - Steps 1-6 run in one SAVEPOINT: the breakdown and the headline amount
      are never stored out of step with each other.
    - Running twice with no intervening change yields identical values.
    - bid_amount == ceil(direct cost + unrounded add-on) when enabled and
      == ceil(actual_total_cost) when disabled; cents rounding never
      lowers the headline.

Failure modes:
    - BidNotFoundError: bid id unknown or soft-deleted.
    - NegativeDirectCostError: overhead enabled and direct cost < 0.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import Session

from bid_kernel.db.types import ZERO, ceil_dollars, round_money
from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.domain.collaborators import (
    OrganizationDefaults,
    OrganizationDefaultsProvider,
)
from bid_kernel.domain.dtos import RecalculationResult
from bid_kernel.domain.operating_expense import calculate_operating_expense_add_on
from bid_kernel.domain.rollup import LineCost, TrackSubtotals, price_track, rollup_lines
from bid_kernel.exceptions import BidNotFoundError, NegativeDirectCostError
from bid_kernel.logging_config import LogContext, get_logger
from bid_kernel.models.bid import Bid
from bid_kernel.models.cost_lines import LaborLine, MaterialLine, TravelLine
from bid_kernel.models.financial import FinancialBreakdown, OperatingExpenseConfig
from bid_kernel.services.base import BaseService

logger = get_logger("services.recalculation")

_SUBTOTAL_FIELDS = ("materials_equipment", "labor", "travel", "total_cost")


class RecalculationService(BaseService[FinancialBreakdown]):
    """
    Orchestrates the recalculation cascade for one bid.

    Contract:
        ``recalculate`` flushes within the caller's transaction and returns
        a frozen ``RecalculationResult``.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT validate cost-line input; CostComponentService does.
    """

    def __init__(
        self,
        session: Session,
        defaults_provider: OrganizationDefaultsProvider | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._defaults_provider = defaults_provider
        self._clock = clock or SystemClock()

    def recalculate(
        self,
        bid_id: UUID,
        actor_id: UUID | None = None,
        seed_initial: bool = False,
        lines_changed: bool = False,
    ) -> RecalculationResult:
        """
        Recompute the breakdown and headline amount of a bid.

        Args:
            bid_id: Bid to recalculate.
            actor_id: Recorded as updated_by on the rows written.
            seed_initial: Also write the add-on into the initial track
                (the triggering write created a row or changed initial
                values).
            lines_changed: The triggering write touched a cost line, so
                stale subtotals are expected rather than a sign of an
                interrupted earlier cascade.

        Returns:
            RecalculationResult.

        Raises:
            BidNotFoundError: If the bid does not exist or is deleted.
            NegativeDirectCostError: If overhead is enabled and the direct
                cost is negative.
        """
        bid = self.session.execute(
            select(Bid).where(Bid.id == bid_id, Bid.is_deleted.is_(False))
        ).scalar_one_or_none()
        if bid is None:
            raise BidNotFoundError(str(bid_id))

        with LogContext.bind(bid_id=str(bid_id), organization_id=str(bid.organization_id)):
            with self.session.begin_nested():
                breakdown = self._breakdown_for(bid, actor_id)
                self_healed = self._self_heal(breakdown, expected=lines_changed)
                opex = self.session.execute(
                    select(OperatingExpenseConfig).where(
                        OperatingExpenseConfig.bid_id == bid_id,
                        OperatingExpenseConfig.is_deleted.is_(False),
                    )
                ).scalar_one_or_none()

                if opex is None or not opex.enabled:
                    result = self._apply_disabled(bid, breakdown, self_healed)
                else:
                    result = self._apply_enabled(
                        bid, breakdown, opex, seed_initial, self_healed
                    )

                for row in (bid, breakdown, opex):
                    if row is not None and actor_id is not None:
                        row.updated_by_id = actor_id
                self.session.flush()

            logger.info(
                "bid_recalculated",
                extra={
                    "enabled": result.enabled,
                    "direct_cost": str(result.direct_cost),
                    "operating_add_on": str(result.operating_add_on),
                    "total_price": str(result.total_price),
                    "bid_amount": str(result.bid_amount),
                    "seed_initial": seed_initial,
                    "self_healed": self_healed,
                    "degenerate": result.degenerate,
                },
            )
        return result

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _breakdown_for(self, bid: Bid, actor_id: UUID | None) -> FinancialBreakdown:
        breakdown = self.session.execute(
            select(FinancialBreakdown).where(FinancialBreakdown.bid_id == bid.id)
        ).scalar_one_or_none()
        if breakdown is None:
            breakdown = FinancialBreakdown(
                bid_id=bid.id,
                created_at=self._clock.now(),
                created_by_id=actor_id or bid.created_by_id,
            )
            self.session.add(breakdown)
            self.session.flush()
        return breakdown

    def _has_line_rows(self, bid_id: UUID) -> bool:
        return bool(
            self.session.execute(
                select(
                    or_(
                        exists().where(MaterialLine.bid_id == bid_id),
                        exists().where(LaborLine.bid_id == bid_id),
                    )
                )
            ).scalar()
        )

    def _self_heal(self, breakdown: FinancialBreakdown, expected: bool) -> bool:
        """Recompute subtotals from live lines.

        Returns True when stored subtotals disagreed with the lines without
        a line write explaining it.
        """
        bid_id = breakdown.bid_id
        if not self._has_line_rows(bid_id):
            return False

        materials = self.session.execute(
            select(MaterialLine.total_cost, MaterialLine.actual_total_cost).where(
                MaterialLine.bid_id == bid_id, MaterialLine.is_deleted.is_(False)
            )
        ).all()
        labor = self.session.execute(
            select(LaborLine.total_cost, LaborLine.actual_total_cost).where(
                LaborLine.bid_id == bid_id, LaborLine.is_deleted.is_(False)
            )
        ).all()
        travel = self.session.execute(
            select(TravelLine.total_cost, TravelLine.actual_total_cost)
            .join(LaborLine, TravelLine.bid_labor_id == LaborLine.id)
            .where(
                LaborLine.bid_id == bid_id,
                LaborLine.is_deleted.is_(False),
                TravelLine.is_deleted.is_(False),
            )
        ).all()

        initial, actual = rollup_lines(
            (LineCost(row[0], row[1]) for row in materials),
            (LineCost(row[0], row[1]) for row in labor),
            (LineCost(row[0], row[1]) for row in travel),
        )

        before = {
            name: (getattr(breakdown, name), getattr(breakdown, f"actual_{name}"))
            for name in _SUBTOTAL_FIELDS
        }
        self._write_subtotals(breakdown, initial, prefix="")
        self._write_subtotals(breakdown, actual, prefix="actual_")
        changed = [
            name
            for name in _SUBTOTAL_FIELDS
            if before[name]
            != (getattr(breakdown, name), getattr(breakdown, f"actual_{name}"))
        ]
        if changed and not expected:
            logger.warning(
                "breakdown_self_healed",
                extra={"fields": changed},
            )
            return True
        return False

    @staticmethod
    def _write_subtotals(
        breakdown: FinancialBreakdown, subtotals: TrackSubtotals, prefix: str
    ) -> None:
        setattr(breakdown, f"{prefix}materials_equipment", subtotals.materials_equipment)
        setattr(breakdown, f"{prefix}labor", subtotals.labor)
        setattr(breakdown, f"{prefix}travel", subtotals.travel)
        setattr(breakdown, f"{prefix}total_cost", subtotals.total_cost)

    def _apply_disabled(
        self, bid: Bid, breakdown: FinancialBreakdown, self_healed: bool
    ) -> RecalculationResult:
        for prefix in ("", "actual_"):
            cost = round_money(getattr(breakdown, f"{prefix}total_cost"))
            setattr(breakdown, f"{prefix}operating_expenses", ZERO)
            setattr(breakdown, f"{prefix}total_price", cost)
            setattr(breakdown, f"{prefix}gross_profit", ZERO)

        direct_cost = round_money(breakdown.actual_total_cost)
        bid.bid_amount = ceil_dollars(breakdown.actual_total_cost)
        return RecalculationResult(
            bid_id=bid.id,
            enabled=False,
            direct_cost=direct_cost,
            operating_add_on=ZERO,
            total_price=direct_cost,
            bid_amount=bid.bid_amount,
            self_healed=self_healed,
        )

    def _apply_enabled(
        self,
        bid: Bid,
        breakdown: FinancialBreakdown,
        opex: OperatingExpenseConfig,
        seed_initial: bool,
        self_healed: bool,
    ) -> RecalculationResult:
        raw_cost = breakdown.actual_total_cost
        direct_cost = round_money(raw_cost)
        if raw_cost < ZERO:
            raise NegativeDirectCostError(str(bid.id), str(direct_cost))

        gross_revenue, operating_cost, inflation_rate = self._resolve_parameters(
            bid.organization_id, opex
        )

        actual_calc = calculate_operating_expense_add_on(
            raw_cost, gross_revenue, operating_cost, inflation_rate
        )
        actual_add_on = round_money(actual_calc.total_operating_add_on)
        actual_pricing = price_track(direct_cost, actual_add_on)

        opex.actual_current_bid_amount = direct_cost
        opex.actual_calculated_operating_cost = round_money(actual_calc.overhead_allocation)
        opex.actual_inflation_adjusted_operating_cost = actual_add_on
        opex.actual_operating_price = actual_add_on

        breakdown.actual_operating_expenses = actual_pricing.operating_expenses
        breakdown.actual_total_price = actual_pricing.total_price
        breakdown.actual_gross_profit = actual_pricing.gross_profit

        initial_cost = round_money(breakdown.total_cost)
        if seed_initial:
            initial_calc = calculate_operating_expense_add_on(
                initial_cost, gross_revenue, operating_cost, inflation_rate
            )
            initial_add_on = round_money(initial_calc.total_operating_add_on)
            opex.current_bid_amount = initial_cost
            opex.calculated_operating_cost = round_money(initial_calc.overhead_allocation)
            opex.inflation_adjusted_operating_cost = initial_add_on
            opex.operating_price = initial_add_on
        else:
            initial_add_on = round_money(breakdown.operating_expenses)

        initial_pricing = price_track(initial_cost, initial_add_on)
        breakdown.operating_expenses = initial_pricing.operating_expenses
        breakdown.total_price = initial_pricing.total_price
        breakdown.gross_profit = initial_pricing.gross_profit

        bid.bid_amount = actual_calc.final_bid_rounded_up
        return RecalculationResult(
            bid_id=bid.id,
            enabled=True,
            direct_cost=direct_cost,
            operating_add_on=actual_add_on,
            total_price=actual_pricing.total_price,
            bid_amount=bid.bid_amount,
            self_healed=self_healed,
            degenerate=actual_calc.is_degenerate,
        )

    def _resolve_parameters(
        self, organization_id: UUID, opex: OperatingExpenseConfig
    ) -> tuple[Decimal, Decimal, Decimal]:
        """Bid's own values first, then organization defaults, then zero."""
        defaults: OrganizationDefaults | None = None
        if self._defaults_provider is not None and (
            opex.gross_revenue_previous_year is None
            or opex.operating_cost_previous_year is None
            or opex.inflation_rate is None
        ):
            defaults = self._defaults_provider.get_organization_defaults(organization_id)
        defaults = defaults or OrganizationDefaults()

        def pick(own: Decimal | None, fallback: Decimal | None) -> Decimal:
            if own is not None:
                return own
            if fallback is not None:
                return fallback
            return ZERO

        return (
            pick(opex.gross_revenue_previous_year, defaults.gross_revenue_previous_year),
            pick(opex.operating_cost_previous_year, defaults.operating_cost_previous_year),
            pick(opex.inflation_rate, defaults.inflation_rate),
        )
