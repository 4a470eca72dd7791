"""
CostComponentService -- writes to a bid's itemized and financial components.

Responsibility:
    Create, update and soft-delete material, labor and travel lines; update
    the financial breakdown; create, update and soft-delete the
    operating-expense configuration.  Every write follows the dual-track
    rule of ``domain/dual_track.py`` and then hands the bid to
    RecalculationService.

Architecture position:
    Kernel > Services -- imperative shell.
    Converts caller input with ``field_coercion``, plans column assignments
    with ``plan_update`` (pure), applies them to the ORM row, and triggers
    the cascade.

Invariants enforced:
    - A write and the recalculation it triggers run in one SAVEPOINT: a
      failed cascade (e.g. NegativeDirectCostError) leaves no line behind.
    - Unknown or malformed fields are rejected before any row is touched.
    - Exactly one live travel line per labor line.
    - A soft-deleted labor line takes its travel line with it.
    - Cost lines are reachable only through a live bid of the caller's
      organization.

Failure modes:
    - BidNotFoundError: bid unknown, deleted, or of another organization.
    - CostLineNotFoundError: line unknown or deleted.
    - UnknownFieldError / MalformedNumberError / ValidationError: bad input.
    - LaborTravelMismatchError: bulk create with unequal list lengths.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from bid_kernel.domain.clock import Clock, SystemClock
from bid_kernel.domain.dtos import (
    FinancialBreakdownInfo,
    LaborLineInfo,
    LaborTravelPair,
    MaterialLineInfo,
    OperatingExpenseInfo,
    TravelLineInfo,
)
from bid_kernel.domain.dual_track import (
    BREAKDOWN_FIELDS,
    LABOR_FIELDS,
    MATERIAL_FIELDS,
    OPERATING_EXPENSE_FIELDS,
    TRAVEL_FIELDS,
    TrackedFields,
    UpdateKind,
    UpdatePlan,
    plan_update,
)
from bid_kernel.domain.line_totals import (
    derive_labor_totals,
    derive_material_totals,
    derive_travel_totals,
)
from bid_kernel.exceptions import (
    BidNotFoundError,
    CostLineNotFoundError,
    LaborTravelMismatchError,
    ValidationError,
)
from bid_kernel.logging_config import LogContext, get_logger
from bid_kernel.models.bid import Bid
from bid_kernel.models.cost_lines import LaborLine, MaterialLine, TravelLine
from bid_kernel.models.financial import FinancialBreakdown, OperatingExpenseConfig
from bid_kernel.models.snapshots import (
    breakdown_to_dto,
    labor_to_dto,
    material_to_dto,
    operating_expense_to_dto,
    travel_to_dto,
)
from bid_kernel.services.base import BaseService
from bid_kernel.services.field_coercion import coerce_fields
from bid_kernel.services.recalculation_service import RecalculationService

logger = get_logger("services.cost_components")

Derive = Callable[[dict[str, Any]], dict[str, Any]]

# Parameters reset when a deleted configuration is created again
_OPEX_PARAMETERS = (
    "gross_revenue_previous_year",
    "operating_cost_previous_year",
    "inflation_rate",
    "utilization_percentage",
    "markup_percentage",
)


def _derive_tracks(
    fields: TrackedFields, derive: Derive, values: dict[str, Any]
) -> dict[str, Any]:
    """Fill in missing totals of a new line for both tracks.

    The actual track is derived separately only when the caller supplied
    actual inputs; otherwise mirroring copies the initial totals.
    """
    derived = derive(values)
    actual_inputs = {
        initial: values[actual]
        for initial, actual in fields.pairs.items()
        if actual in values
    }
    if not actual_inputs:
        return derived

    merged = {name: value for name, value in values.items() if name in fields.pairs}
    merged.update(actual_inputs)
    for initial, value in derive(merged).items():
        actual = fields.pairs.get(initial)
        if actual is not None and actual not in derived:
            derived[actual] = value
    return derived


class CostComponentService(BaseService[MaterialLine]):
    """
    Write side of a bid's cost lines and financial rows.

    Contract:
        Every public method returns a frozen DTO (or None for a no-op) and
        flushes within the caller's transaction.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT compute the headline amount; RecalculationService does.
    """

    def __init__(
        self,
        session: Session,
        recalculation: RecalculationService | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._recalculation = recalculation or RecalculationService(
            session, clock=self._clock
        )

    # =========================================================================
    # Financial breakdown
    # =========================================================================

    def update_financial_breakdown(
        self,
        bid_id: UUID,
        organization_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> FinancialBreakdownInfo | None:
        """
        Apply a partial update to the bid's breakdown.

        Recalculation follows only when the update inserts the row.

        Returns:
            The breakdown, or None when no row exists and the update names
            no initial-track field.
        """
        bid = self._live_bid(bid_id, organization_id)
        breakdown = self.session.execute(
            select(FinancialBreakdown).where(FinancialBreakdown.bid_id == bid.id)
        ).scalar_one_or_none()
        exists = breakdown is not None and not breakdown.is_deleted

        plan = self._plan(BREAKDOWN_FIELDS, FinancialBreakdown, changes, exists)
        if plan is None:
            return None
        if plan.kind is UpdateKind.NONE:
            return breakdown_to_dto(breakdown)

        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                if breakdown is None:
                    breakdown = FinancialBreakdown(
                        bid_id=bid.id,
                        created_at=self._clock.now(),
                        created_by_id=actor_id,
                    )
                    self.session.add(breakdown)
                breakdown.is_deleted = False
                self._apply(breakdown, plan, actor_id)
                self._log_applied(BREAKDOWN_FIELDS, plan)
                if plan.is_insert:
                    self._recalculation.recalculate(
                        bid.id, actor_id=actor_id, seed_initial=True
                    )
        return breakdown_to_dto(breakdown)

    # =========================================================================
    # Operating expenses
    # =========================================================================

    def create_operating_expenses(
        self,
        bid_id: UUID,
        organization_id: UUID,
        values: Mapping[str, Any],
        actor_id: UUID,
    ) -> OperatingExpenseInfo:
        """
        Create the bid's operating-expense configuration.

        A live configuration is returned unchanged.  A soft-deleted one is
        revived with the supplied values.
        """
        bid = self._live_bid(bid_id, organization_id)
        config = self._operating_expense_row(bid.id)
        if config is not None and not config.is_deleted:
            logger.info(
                "operating_expenses_already_exist",
                extra={"bid_id": str(bid.id)},
            )
            return operating_expense_to_dto(config)

        OPERATING_EXPENSE_FIELDS.classify(values)
        coerced = coerce_fields(OperatingExpenseConfig, "operating_expenses", values)
        plan = plan_update(OPERATING_EXPENSE_FIELDS, coerced, exists=False)

        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                config = self._fresh_config(bid, config, actor_id)
                if plan is not None:
                    self._apply(config, plan, actor_id)
                    self._log_applied(OPERATING_EXPENSE_FIELDS, plan)
                self.session.flush()
                self._recalculation.recalculate(
                    bid.id, actor_id=actor_id, seed_initial=True
                )
        return operating_expense_to_dto(config)

    def update_operating_expenses(
        self,
        bid_id: UUID,
        organization_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> OperatingExpenseInfo | None:
        """
        Apply a partial update to the bid's operating-expense configuration.

        Returns:
            The configuration, or None when no live row exists and the
            update names no initial-track field.
        """
        bid = self._live_bid(bid_id, organization_id)
        config = self._operating_expense_row(bid.id)
        exists = config is not None and not config.is_deleted

        plan = self._plan(
            OPERATING_EXPENSE_FIELDS, OperatingExpenseConfig, changes, exists
        )
        if plan is None:
            return None
        if plan.kind is UpdateKind.NONE:
            return operating_expense_to_dto(config)

        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                if plan.is_insert:
                    config = self._fresh_config(bid, config, actor_id)
                self._apply(config, plan, actor_id)
                self._log_applied(OPERATING_EXPENSE_FIELDS, plan)
                self._recalculation.recalculate(
                    bid.id,
                    actor_id=actor_id,
                    seed_initial=plan.is_insert or plan.touches_initial,
                )
        return operating_expense_to_dto(config)

    def delete_operating_expenses(
        self,
        bid_id: UUID,
        organization_id: UUID,
        actor_id: UUID,
    ) -> bool:
        """
        Soft-delete the configuration; the bid is then priced as disabled.

        Returns:
            True if a live configuration was deleted.
        """
        bid = self._live_bid(bid_id, organization_id)
        config = self._operating_expense_row(bid.id)
        if config is None or config.is_deleted:
            return False

        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                config.is_deleted = True
                config.updated_by_id = actor_id
                self.session.flush()
                self._recalculation.recalculate(
                    bid.id, actor_id=actor_id, seed_initial=True
                )
            logger.info("operating_expenses_deleted")
        return True

    # =========================================================================
    # Material lines
    # =========================================================================

    def create_material(
        self,
        bid_id: UUID,
        organization_id: UUID,
        values: Mapping[str, Any],
        actor_id: UUID,
    ) -> MaterialLineInfo:
        """Add a material line; missing totals are derived from its inputs."""
        bid = self._live_bid(bid_id, organization_id)
        line = MaterialLine(bid_id=bid.id)
        self._create_line(
            line, MATERIAL_FIELDS, derive_material_totals, values, bid, actor_id
        )
        return material_to_dto(line)

    def update_material(
        self,
        line_id: UUID,
        organization_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> MaterialLineInfo:
        line, bid = self._live_material(line_id, organization_id)
        self._update_line(line, MATERIAL_FIELDS, changes, bid, actor_id)
        return material_to_dto(line)

    def delete_material(
        self, line_id: UUID, organization_id: UUID, actor_id: UUID
    ) -> None:
        line, bid = self._live_material(line_id, organization_id)
        self._delete_lines([line], "material", bid, actor_id)

    # =========================================================================
    # Labor lines
    # =========================================================================

    def create_labor(
        self,
        bid_id: UUID,
        organization_id: UUID,
        values: Mapping[str, Any],
        actor_id: UUID,
    ) -> LaborLineInfo:
        """Add a labor line; missing hours and totals are derived."""
        bid = self._live_bid(bid_id, organization_id)
        line = LaborLine(bid_id=bid.id)
        self._create_line(line, LABOR_FIELDS, derive_labor_totals, values, bid, actor_id)
        return labor_to_dto(line)

    def update_labor(
        self,
        line_id: UUID,
        organization_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> LaborLineInfo:
        line, bid = self._live_labor(line_id, organization_id)
        self._update_line(line, LABOR_FIELDS, changes, bid, actor_id)
        return labor_to_dto(line)

    def delete_labor(self, line_id: UUID, organization_id: UUID, actor_id: UUID) -> None:
        """Soft-delete a labor line together with its travel line."""
        line, bid = self._live_labor(line_id, organization_id)
        travel = self._live_travel_for(line.id)
        lines: list[LaborLine | TravelLine] = [line]
        if travel is not None:
            lines.append(travel)
        self._delete_lines(lines, "labor", bid, actor_id)

    # =========================================================================
    # Travel lines
    # =========================================================================

    def create_travel(
        self,
        labor_id: UUID,
        organization_id: UUID,
        values: Mapping[str, Any],
        actor_id: UUID,
    ) -> TravelLineInfo:
        """
        Add the travel line of a labor line.

        Raises:
            ValidationError: If the labor line already has a live travel line.
        """
        labor, bid = self._live_labor(labor_id, organization_id)
        if self._live_travel_for(labor.id) is not None:
            raise ValidationError("bid_labor_id", "already has a travel line")
        line = TravelLine(bid_labor_id=labor.id)
        self._create_line(
            line, TRAVEL_FIELDS, derive_travel_totals, values, bid, actor_id
        )
        return travel_to_dto(line)

    def update_travel(
        self,
        line_id: UUID,
        organization_id: UUID,
        changes: Mapping[str, Any],
        actor_id: UUID,
    ) -> TravelLineInfo:
        line, bid = self._live_travel(line_id, organization_id)
        self._update_line(line, TRAVEL_FIELDS, changes, bid, actor_id)
        return travel_to_dto(line)

    def delete_travel(self, line_id: UUID, organization_id: UUID, actor_id: UUID) -> None:
        line, bid = self._live_travel(line_id, organization_id)
        self._delete_lines([line], "travel", bid, actor_id)

    def create_bulk_labor_and_travel(
        self,
        bid_id: UUID,
        organization_id: UUID,
        labor_entries: list[Mapping[str, Any]],
        travel_entries: list[Mapping[str, Any]],
        actor_id: UUID,
    ) -> list[LaborTravelPair]:
        """
        Create labor lines paired index-by-index with travel lines.

        All rows and the single recalculation that follows land together or
        not at all.

        Raises:
            LaborTravelMismatchError: If the lists differ in length.
        """
        if len(labor_entries) != len(travel_entries):
            raise LaborTravelMismatchError(len(labor_entries), len(travel_entries))
        bid = self._live_bid(bid_id, organization_id)

        labor_plans = [
            self._insert_plan(LABOR_FIELDS, LaborLine, derive_labor_totals, values)
            for values in labor_entries
        ]
        travel_plans = [
            self._insert_plan(TRAVEL_FIELDS, TravelLine, derive_travel_totals, values)
            for values in travel_entries
        ]

        rows: list[tuple[LaborLine, TravelLine]] = []
        with LogContext.bind(bid_id=str(bid.id), organization_id=str(organization_id)):
            with self.session.begin_nested():
                for labor_plan, travel_plan in zip(labor_plans, travel_plans):
                    labor = LaborLine(bid_id=bid.id)
                    self._insert(labor, labor_plan, actor_id)
                    self.session.flush()
                    travel = TravelLine(bid_labor_id=labor.id)
                    self._insert(travel, travel_plan, actor_id)
                    rows.append((labor, travel))
                self.session.flush()
                self._recalculation.recalculate(
                    bid.id, actor_id=actor_id, seed_initial=True, lines_changed=True
                )
            logger.info("labor_travel_bulk_created", extra={"pairs": len(rows)})

        return [
            LaborTravelPair(labor=labor_to_dto(labor), travel=travel_to_dto(travel))
            for labor, travel in rows
        ]

    # =========================================================================
    # Lookups
    # =========================================================================

    def _live_bid(self, bid_id: UUID, organization_id: UUID) -> Bid:
        bid = self.session.execute(
            select(Bid).where(
                Bid.id == bid_id,
                Bid.organization_id == organization_id,
                Bid.is_deleted.is_(False),
            )
        ).scalar_one_or_none()
        if bid is None:
            raise BidNotFoundError(str(bid_id))
        return bid

    def _operating_expense_row(self, bid_id: UUID) -> OperatingExpenseConfig | None:
        return self.session.execute(
            select(OperatingExpenseConfig).where(OperatingExpenseConfig.bid_id == bid_id)
        ).scalar_one_or_none()

    def _fresh_config(
        self,
        bid: Bid,
        config: OperatingExpenseConfig | None,
        actor_id: UUID,
    ) -> OperatingExpenseConfig:
        """New configuration row, or a deleted one revived with defaults."""
        if config is None:
            config = OperatingExpenseConfig(
                bid_id=bid.id,
                created_at=self._clock.now(),
                created_by_id=actor_id,
            )
            self.session.add(config)
            return config
        for name in _OPEX_PARAMETERS:
            setattr(config, name, None)
        config.enabled = False
        config.apply_markup = False
        config.is_deleted = False
        return config

    def _live_material(
        self, line_id: UUID, organization_id: UUID
    ) -> tuple[MaterialLine, Bid]:
        row = self.session.execute(
            select(MaterialLine, Bid)
            .join(Bid, MaterialLine.bid_id == Bid.id)
            .where(
                MaterialLine.id == line_id,
                MaterialLine.is_deleted.is_(False),
                Bid.organization_id == organization_id,
                Bid.is_deleted.is_(False),
            )
        ).one_or_none()
        if row is None:
            raise CostLineNotFoundError("material", str(line_id))
        return row[0], row[1]

    def _live_labor(self, line_id: UUID, organization_id: UUID) -> tuple[LaborLine, Bid]:
        row = self.session.execute(
            select(LaborLine, Bid)
            .join(Bid, LaborLine.bid_id == Bid.id)
            .where(
                LaborLine.id == line_id,
                LaborLine.is_deleted.is_(False),
                Bid.organization_id == organization_id,
                Bid.is_deleted.is_(False),
            )
        ).one_or_none()
        if row is None:
            raise CostLineNotFoundError("labor", str(line_id))
        return row[0], row[1]

    def _live_travel(self, line_id: UUID, organization_id: UUID) -> tuple[TravelLine, Bid]:
        row = self.session.execute(
            select(TravelLine, Bid)
            .join(LaborLine, TravelLine.bid_labor_id == LaborLine.id)
            .join(Bid, LaborLine.bid_id == Bid.id)
            .where(
                TravelLine.id == line_id,
                TravelLine.is_deleted.is_(False),
                LaborLine.is_deleted.is_(False),
                Bid.organization_id == organization_id,
                Bid.is_deleted.is_(False),
            )
        ).one_or_none()
        if row is None:
            raise CostLineNotFoundError("travel", str(line_id))
        return row[0], row[1]

    def _live_travel_for(self, labor_id: UUID) -> TravelLine | None:
        return self.session.execute(
            select(TravelLine).where(
                TravelLine.bid_labor_id == labor_id,
                TravelLine.is_deleted.is_(False),
            )
        ).scalar_one_or_none()

    # =========================================================================
    # Dual-track write helpers
    # =========================================================================

    @staticmethod
    def _plan(
        fields: TrackedFields,
        model: type,
        changes: Mapping[str, Any],
        exists: bool,
    ) -> UpdatePlan | None:
        # Classify raw keys first so unknown fields win over malformed values
        fields.classify(changes)
        coerced = coerce_fields(model, fields.entity, changes)
        return plan_update(fields, coerced, exists=exists)

    @staticmethod
    def _insert_plan(
        fields: TrackedFields,
        model: type,
        derive: Derive,
        values: Mapping[str, Any],
    ) -> UpdatePlan:
        fields.classify(values)
        coerced = coerce_fields(model, fields.entity, values)
        derived = _derive_tracks(fields, derive, coerced)
        plan = plan_update(fields, derived, exists=False)
        if plan is None:
            raise ValidationError(fields.entity, "no values supplied")
        return plan

    def _apply(self, row: Any, plan: UpdatePlan, actor_id: UUID) -> None:
        for name, value in plan.assignments.items():
            setattr(row, name, value)
        row.updated_by_id = actor_id
        self.session.flush()

    def _insert(self, row: Any, plan: UpdatePlan, actor_id: UUID) -> None:
        for name, value in plan.assignments.items():
            setattr(row, name, value)
        row.created_at = self._clock.now()
        row.created_by_id = actor_id
        self.session.add(row)

    @staticmethod
    def _log_applied(fields: TrackedFields, plan: UpdatePlan) -> None:
        logger.info(
            "dual_track_update_applied",
            extra={
                "entity": fields.entity,
                "kind": plan.kind.value,
                "is_insert": plan.is_insert,
                "fields": sorted(plan.assignments),
            },
        )

    def _create_line(
        self,
        line: MaterialLine | LaborLine | TravelLine,
        fields: TrackedFields,
        derive: Derive,
        values: Mapping[str, Any],
        bid: Bid,
        actor_id: UUID,
    ) -> None:
        plan = self._insert_plan(fields, type(line), derive, values)
        with LogContext.bind(bid_id=str(bid.id), organization_id=str(bid.organization_id)):
            with self.session.begin_nested():
                self._insert(line, plan, actor_id)
                self.session.flush()
                self._log_applied(fields, plan)
                self._recalculation.recalculate(
                    bid.id, actor_id=actor_id, seed_initial=True, lines_changed=True
                )

    def _update_line(
        self,
        line: MaterialLine | LaborLine | TravelLine,
        fields: TrackedFields,
        changes: Mapping[str, Any],
        bid: Bid,
        actor_id: UUID,
    ) -> None:
        plan = self._plan(fields, type(line), changes, exists=True)
        if plan is None or plan.kind is UpdateKind.NONE:
            return
        with LogContext.bind(bid_id=str(bid.id), organization_id=str(bid.organization_id)):
            with self.session.begin_nested():
                self._apply(line, plan, actor_id)
                self._log_applied(fields, plan)
                self._recalculation.recalculate(
                    bid.id,
                    actor_id=actor_id,
                    seed_initial=plan.touches_initial,
                    lines_changed=True,
                )

    def _delete_lines(
        self,
        lines: list[Any],
        kind: str,
        bid: Bid,
        actor_id: UUID,
    ) -> None:
        with LogContext.bind(bid_id=str(bid.id), organization_id=str(bid.organization_id)):
            with self.session.begin_nested():
                for line in lines:
                    line.is_deleted = True
                    line.updated_by_id = actor_id
                self.session.flush()
                self._recalculation.recalculate(
                    bid.id, actor_id=actor_id, seed_initial=True, lines_changed=True
                )
            logger.info(
                "cost_line_deleted",
                extra={"line_kind": kind, "line_id": str(lines[0].id)},
            )
