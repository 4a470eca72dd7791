"""Tests for BidSelector read paths."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from bid_kernel.domain.dtos import BidStatus

TODAY = date(2025, 6, 15)

LABOR = {"days": "5", "hours_per_day": "8", "cost_rate": "40", "billable_rate": "65"}
TRAVEL = {"round_trip_miles": "60", "mileage_rate": "0.5", "vehicle_day_rate": "75", "days": "5"}


class TestGetBid:

    def test_scoped_to_organization(self, bid, selector, organization_id):
        assert selector.get_bid(bid.id, organization_id).id == bid.id
        assert selector.get_bid(bid.id, uuid4()) is None

    def test_unknown(self, selector):
        assert selector.get_bid(uuid4()) is None

    def test_deleted_bid_hidden(self, bid, bid_service, selector, organization_id, test_actor_id):
        bid_service.delete_bid(bid.id, organization_id, test_actor_id)
        assert selector.get_bid(bid.id) is None


class TestListBids:

    def test_newest_first(self, create_bid, selector, organization_id):
        first = create_bid(title="First")
        second = create_bid(title="Second")

        assert [b.id for b in selector.list_bids(organization_id)] == [second.id, first.id]

    def test_status_filter(self, create_bid, selector, organization_id):
        create_bid()
        submitted = create_bid(status="submitted")

        result = selector.list_bids(organization_id, status=BidStatus.SUBMITTED)
        assert [b.id for b in result] == [submitted.id]
        assert selector.list_bids(organization_id, status="won") == []

    def test_excludes_deleted_and_other_organizations(
        self, create_bid, bid_service, selector, organization_id, test_actor_id
    ):
        kept = create_bid()
        dropped = create_bid()
        bid_service.delete_bid(dropped.id, organization_id, test_actor_id)
        bid_service.create_bid(uuid4(), test_actor_id, "Elsewhere", "general")

        assert [b.id for b in selector.list_bids(organization_id)] == [kept.id]


class TestListExpirableBidIds:

    def test_selects_open_bids_past_end_date(self, create_bid, selector):
        past_due = create_bid(end_date=date(2025, 6, 16))
        due_today = create_bid(end_date=date(2025, 6, 17))
        create_bid(end_date=date(2025, 6, 30))
        create_bid()
        create_bid(end_date=date(2025, 6, 16), status="won")

        assert selector.list_expirable_bid_ids(date(2025, 6, 17)) == [past_due.id, due_today.id]

    def test_excludes_deleted(self, create_bid, bid_service, selector, organization_id, test_actor_id):
        bid = create_bid(end_date=date(2025, 6, 16))
        bid_service.delete_bid(bid.id, organization_id, test_actor_id)

        assert selector.list_expirable_bid_ids(date(2025, 6, 17)) == []


class TestBidSummary:

    def test_duration_from_planned_dates(self, create_bid, selector):
        bid = create_bid(
            planned_start_date=date(2025, 7, 1),
            estimated_completion=date(2025, 7, 15),
            end_date=date(2025, 6, 25),
        )

        summary = selector.bid_summary(bid.id, TODAY)

        assert summary.estimated_duration == 14
        assert summary.expires_in_days == 10
        assert summary.bid_number == bid.bid_number
        assert summary.status == BidStatus.DRAFT

    def test_expires_in_never_negative(self, create_bid, selector):
        bid = create_bid(end_date=date(2025, 6, 20))
        assert selector.bid_summary(bid.id, date(2025, 7, 1)).expires_in_days == 0

    def test_no_end_date(self, bid, selector):
        summary = selector.bid_summary(bid.id, TODAY)
        assert summary.expires_in_days == 0
        assert summary.estimated_duration == 0

    def test_money_figures(
        self, bid, cost_service, selector, organization_id, test_actor_id, enabled_opex
    ):
        cost_service.create_material(
            bid.id, organization_id, {"quantity": "100", "unit_cost": "100"}, test_actor_id
        )
        cost_service.update_operating_expenses(bid.id, organization_id, enabled_opex, test_actor_id)

        summary = selector.bid_summary(bid.id, TODAY)

        assert summary.bid_amount == Decimal("12100.00")
        assert summary.total_cost == Decimal("10000.00")
        assert summary.total_price == Decimal("12100.00")
        assert summary.gross_profit == Decimal("2100.00")
        assert summary.profit_margin is None

    def test_unknown_bid(self, selector):
        assert selector.bid_summary(uuid4(), TODAY) is None


class TestCostLineQueries:

    def test_travel_hidden_with_deleted_labor(
        self, bid, cost_service, selector, organization_id, test_actor_id
    ):
        labor = cost_service.create_labor(
            bid.id, organization_id, LABOR, test_actor_id
        )
        cost_service.create_travel(
            labor.id, organization_id, TRAVEL, test_actor_id
        )
        assert len(selector.list_travel(bid.id)) == 1

        cost_service.delete_labor(labor.id, organization_id, test_actor_id)

        assert selector.list_labor(bid.id) == []
        assert selector.list_travel(bid.id) == []

    def test_timeline_and_history_order(
        self, bid, bid_service, selector, deterministic_clock, organization_id, test_actor_id
    ):
        bid_service.update_bid(bid.id, organization_id, {"status": "pending"}, test_actor_id)
        deterministic_clock.advance(60)
        bid_service.update_bid(bid.id, organization_id, {"status": "submitted"}, test_actor_id)

        history = selector.get_history(bid.id)
        assert [(h.old_value, h.new_value) for h in history] == [
            ("draft", "pending"),
            ("pending", "submitted"),
        ]
        assert [e.event for e in selector.get_timeline(bid.id)] == ["created"]
