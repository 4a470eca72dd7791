"""
Tests for RecalculationService.

Verifies:
- Disabled and enabled pricing of the reference scenarios
- bid_amount is the whole-dollar ceiling of the unrounded actual price
- Organization defaults fill unset operating-expense parameters
- Idempotence
- Self-heal of a stale breakdown
- Negative direct cost with overhead enabled
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from bid_kernel.domain.collaborators import OrganizationDefaults, StaticOrganizationDefaults
from bid_kernel.exceptions import BidNotFoundError, NegativeDirectCostError
from bid_kernel.models.financial import FinancialBreakdown
from bid_kernel.services.recalculation_service import RecalculationService


def _breakdown_row(session, bid_id) -> FinancialBreakdown:
    return session.execute(
        select(FinancialBreakdown).where(FinancialBreakdown.bid_id == bid_id)
    ).scalar_one()


@pytest.fixture
def priced_bid(bid, cost_service, organization_id, test_actor_id):
    """A bid with 10,000.00 of materials and overhead disabled."""
    cost_service.create_material(
        bid.id, organization_id, {"quantity": "100", "unit_cost": "100"}, test_actor_id
    )
    return bid


class TestDisabledPricing:

    def test_bid_amount_is_direct_cost(self, priced_bid, recalculation_service, selector):
        result = recalculation_service.recalculate(priced_bid.id)

        assert result.enabled is False
        assert result.direct_cost == Decimal("10000.00")
        assert result.operating_add_on == Decimal("0")
        assert result.bid_amount == Decimal("10000")

        breakdown = selector.get_breakdown(priced_bid.id)
        assert breakdown.operating_expenses == Decimal("0")
        assert breakdown.total_price == breakdown.total_cost
        assert breakdown.gross_profit == Decimal("0")

    def test_cents_round_up_to_next_dollar(
        self, bid, cost_service, selector, organization_id, test_actor_id
    ):
        cost_service.create_material(
            bid.id, organization_id, {"quantity": "3", "unit_cost": "33.335"}, test_actor_id
        )

        # 100.005 rounds to 100.01, which ceils to 101
        assert selector.get_breakdown(bid.id).actual_total_cost == Decimal("100.01")
        assert selector.get_bid(bid.id).bid_amount == Decimal("101")

    def test_deleted_config_prices_as_disabled(
        self, priced_bid, cost_service, selector, organization_id, test_actor_id, enabled_opex
    ):
        cost_service.update_operating_expenses(
            priced_bid.id, organization_id, enabled_opex, test_actor_id
        )
        assert selector.get_bid(priced_bid.id).bid_amount == Decimal("12100")

        cost_service.delete_operating_expenses(priced_bid.id, organization_id, test_actor_id)

        assert selector.get_bid(priced_bid.id).bid_amount == Decimal("10000")
        assert selector.get_breakdown(priced_bid.id).actual_operating_expenses == Decimal("0")

    def test_headline_ceils_unrounded_direct_cost(
        self, bid, cost_service, recalculation_service, selector, organization_id, test_actor_id
    ):
        cost_service.update_financial_breakdown(
            bid.id, organization_id, {"actual_total_cost": "100.004"}, test_actor_id
        )

        result = recalculation_service.recalculate(bid.id)

        assert result.direct_cost == Decimal("100.00")
        assert result.bid_amount == Decimal("101")
        assert selector.get_breakdown(bid.id).actual_total_price == Decimal("100.00")


class TestEnabledPricing:

    def test_reference_scenario(
        self, priced_bid, cost_service, selector, organization_id, test_actor_id, enabled_opex
    ):
        config = cost_service.update_operating_expenses(
            priced_bid.id, organization_id, enabled_opex, test_actor_id
        )

        assert config.actual_current_bid_amount == Decimal("10000.00")
        assert config.actual_calculated_operating_cost == Decimal("2000.00")
        assert config.actual_inflation_adjusted_operating_cost == Decimal("2100.00")
        assert config.operating_price == Decimal("2100.00")

        breakdown = selector.get_breakdown(priced_bid.id)
        assert breakdown.actual_operating_expenses == Decimal("2100.00")
        assert breakdown.actual_total_price == Decimal("12100.00")
        assert breakdown.actual_gross_profit == Decimal("2100.00")
        assert breakdown.total_price == Decimal("12100.00")
        assert selector.get_bid(priced_bid.id).bid_amount == Decimal("12100")

    def test_zero_revenue_is_degenerate(
        self, priced_bid, cost_service, selector, organization_id, test_actor_id
    ):
        cost_service.update_operating_expenses(
            priced_bid.id,
            organization_id,
            {"enabled": True, "gross_revenue_previous_year": "0",
             "operating_cost_previous_year": "100000", "inflation_rate": "5"},
            test_actor_id,
        )

        breakdown = selector.get_breakdown(priced_bid.id)
        assert breakdown.actual_operating_expenses == Decimal("0")
        assert breakdown.actual_total_price == Decimal("10000.00")
        assert selector.get_bid(priced_bid.id).bid_amount == Decimal("10000")

    def test_sub_cent_add_on_still_raises_headline(
        self, bid, cost_service, selector, organization_id, test_actor_id
    ):
        cost_service.create_material(
            bid.id, organization_id, {"quantity": "1", "unit_cost": "100"}, test_actor_id
        )
        cost_service.update_operating_expenses(
            bid.id,
            organization_id,
            {"enabled": True, "gross_revenue_previous_year": "100000",
             "operating_cost_previous_year": "4", "inflation_rate": "0"},
            test_actor_id,
        )

        # add-on is 0.004: stored figures round it away, the headline does not
        breakdown = selector.get_breakdown(bid.id)
        assert breakdown.actual_operating_expenses == Decimal("0.00")
        assert breakdown.actual_total_price == Decimal("100.00")
        assert selector.get_bid(bid.id).bid_amount == Decimal("101")

    def test_degenerate_pricing_is_logged(
        self, priced_bid, cost_service, recalculation_service, captured_logs,
        organization_id, test_actor_id
    ):
        cost_service.update_operating_expenses(
            priced_bid.id,
            organization_id,
            {"enabled": True, "gross_revenue_previous_year": "0",
             "operating_cost_previous_year": "100000", "inflation_rate": "5"},
            test_actor_id,
        )

        result = recalculation_service.recalculate(priced_bid.id)

        assert result.degenerate is True
        recalculated = [r for r in captured_logs() if r["message"] == "bid_recalculated"]
        assert recalculated[-1]["degenerate"] is True

    def test_reference_scenario_is_not_degenerate(
        self, priced_bid, cost_service, recalculation_service, organization_id,
        test_actor_id, enabled_opex
    ):
        cost_service.update_operating_expenses(
            priced_bid.id, organization_id, enabled_opex, test_actor_id
        )
        assert recalculation_service.recalculate(priced_bid.id).degenerate is False

    def test_actual_change_keeps_initial_add_on(
        self, priced_bid, cost_service, selector, organization_id, test_actor_id, enabled_opex
    ):
        cost_service.update_operating_expenses(
            priced_bid.id, organization_id, enabled_opex, test_actor_id
        )
        material = selector.list_materials(priced_bid.id)[0]

        cost_service.update_material(
            material.id, organization_id, {"actual_total_cost": "20000"}, test_actor_id
        )

        breakdown = selector.get_breakdown(priced_bid.id)
        assert breakdown.actual_operating_expenses == Decimal("4200.00")
        assert breakdown.actual_total_price == Decimal("24200.00")
        assert breakdown.operating_expenses == Decimal("2100.00")
        assert breakdown.total_price == Decimal("12100.00")
        assert selector.get_bid(priced_bid.id).bid_amount == Decimal("24200")

    def test_organization_defaults_fill_unset_parameters(
        self, priced_bid, session, cost_service, selector, organization_id, test_actor_id
    ):
        recalculation = RecalculationService(
            session,
            defaults_provider=StaticOrganizationDefaults(
                overrides={
                    organization_id: OrganizationDefaults(
                        gross_revenue_previous_year=Decimal("500000"),
                        operating_cost_previous_year=Decimal("100000"),
                        inflation_rate=Decimal("5"),
                    )
                }
            ),
        )
        cost_service.update_operating_expenses(
            priced_bid.id, organization_id, {"enabled": True}, test_actor_id
        )
        # Without defaults every parameter is zero: no add-on
        assert selector.get_bid(priced_bid.id).bid_amount == Decimal("10000")

        result = recalculation.recalculate(priced_bid.id, seed_initial=True)

        assert result.operating_add_on == Decimal("2100.00")
        assert result.bid_amount == Decimal("12100")

    def test_bid_value_wins_over_default(
        self, priced_bid, session, cost_service, organization_id, test_actor_id
    ):
        recalculation = RecalculationService(
            session,
            defaults_provider=StaticOrganizationDefaults(
                default=OrganizationDefaults(
                    gross_revenue_previous_year=Decimal("500000"),
                    operating_cost_previous_year=Decimal("100000"),
                    inflation_rate=Decimal("50"),
                )
            ),
        )
        cost_service.update_operating_expenses(
            priced_bid.id, organization_id, {"enabled": True, "inflation_rate": "5"},
            test_actor_id,
        )

        result = recalculation.recalculate(priced_bid.id)
        assert result.bid_amount == Decimal("12100")

    def test_negative_direct_cost_rejected(
        self, bid, cost_service, selector, organization_id, test_actor_id, enabled_opex
    ):
        cost_service.update_operating_expenses(bid.id, organization_id, enabled_opex, test_actor_id)

        with pytest.raises(NegativeDirectCostError) as exc_info:
            cost_service.create_material(
                bid.id, organization_id, {"quantity": "1", "unit_cost": "-50"}, test_actor_id
            )

        assert exc_info.value.code == "NEGATIVE_DIRECT_COST"
        assert selector.list_materials(bid.id) == []
        assert selector.get_bid(bid.id).bid_amount == Decimal("0")

    def test_negative_direct_cost_allowed_when_disabled(
        self, bid, cost_service, selector, organization_id, test_actor_id
    ):
        cost_service.create_material(
            bid.id, organization_id, {"quantity": "1", "unit_cost": "-50.25"}, test_actor_id
        )
        assert selector.get_bid(bid.id).bid_amount == Decimal("-50")


class TestRecalculationProperties:

    def test_idempotent(self, priced_bid, session, recalculation_service, selector,
                        cost_service, organization_id, test_actor_id, enabled_opex):
        cost_service.update_operating_expenses(
            priced_bid.id, organization_id, enabled_opex, test_actor_id
        )

        first = recalculation_service.recalculate(priced_bid.id)
        breakdown_after_first = selector.get_breakdown(priced_bid.id)
        second = recalculation_service.recalculate(priced_bid.id)

        assert first == second
        assert selector.get_breakdown(priced_bid.id) == breakdown_after_first

    def test_unknown_bid(self, recalculation_service):
        with pytest.raises(BidNotFoundError):
            recalculation_service.recalculate(uuid4())

    def test_logs_result(self, priced_bid, recalculation_service, captured_logs):
        recalculation_service.recalculate(priced_bid.id)

        records = [r for r in captured_logs() if r["message"] == "bid_recalculated"]
        assert records[-1]["bid_amount"] == "10000"
        assert records[-1]["bid_id"] == str(priced_bid.id)
        assert records[-1]["self_healed"] is False


class TestSelfHeal:

    def test_stale_breakdown_repaired(
        self, priced_bid, session, recalculation_service, selector, captured_logs
    ):
        row = _breakdown_row(session, priced_bid.id)
        row.actual_materials_equipment = Decimal("5")
        row.actual_total_cost = Decimal("5")
        session.flush()

        result = recalculation_service.recalculate(priced_bid.id)

        assert result.self_healed is True
        assert result.bid_amount == Decimal("10000")
        assert selector.get_breakdown(priced_bid.id).actual_total_cost == Decimal("10000.00")
        warnings = [r for r in captured_logs() if r["message"] == "breakdown_self_healed"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"
        assert "materials_equipment" in warnings[0]["fields"]

    def test_line_writes_do_not_warn(
        self, bid, cost_service, organization_id, test_actor_id, captured_logs
    ):
        cost_service.create_material(
            bid.id, organization_id, {"quantity": "1", "unit_cost": "5"}, test_actor_id
        )
        assert not [r for r in captured_logs() if r["message"] == "breakdown_self_healed"]

    def test_stored_values_authoritative_without_lines(
        self, bid, session, recalculation_service
    ):
        row = _breakdown_row(session, bid.id)
        row.total_cost = Decimal("750")
        row.actual_total_cost = Decimal("800")
        session.flush()

        result = recalculation_service.recalculate(bid.id)

        assert result.self_healed is False
        assert result.bid_amount == Decimal("800")
