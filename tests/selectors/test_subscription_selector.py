"""Tests for SubscriptionSelector read queries."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from lunch_kernel.exceptions import (
    EmployeeNotFoundError,
    SubscriptionNotFoundError,
    UnknownComboError,
)
from lunch_kernel.models import Order, OrderStatus
from lunch_kernel.selectors.subscription_selector import SubscriptionSelector

TZ = "Asia/Dushanbe"


@pytest.fixture
def selector(session, deterministic_clock):
    return SubscriptionSelector(session, deterministic_clock)


class TestLookup:
    def test_get_by_id_and_employee(self, selector, employee, subscribed):
        assert selector.get_by_id(subscribed.id) == subscribed
        assert selector.get_by_employee_id(employee.id).id == subscribed.id

    def test_missing_returns_none(self, selector, employee):
        assert selector.get_by_id(uuid4()) is None
        assert selector.get_by_employee_id(employee.id) is None

    def test_remaining_days(self, selector, subscribed, deterministic_clock):
        assert selector.remaining_days(subscribed.id) == 10
        deterministic_clock.set_local(date(2026, 1, 12), 8, 0, TZ)
        assert selector.remaining_days(subscribed.id) == 5

    def test_remaining_days_unknown(self, selector):
        with pytest.raises(SubscriptionNotFoundError):
            selector.remaining_days(uuid4())


class TestFreezeInfo:
    def test_fresh_week(self, selector, employee, subscribed):
        info = selector.get_freeze_info(employee.id)
        assert info.used == 0
        assert info.remaining == 2
        assert info.can_freeze is True
        assert info.week_start == date(2026, 1, 5)
        assert info.week_end == date(2026, 1, 11)
        assert info.frozen_orders == ()

    def test_after_two_freezes(self, selector, lifecycle, employee, subscribed, order_on):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 6)).id)
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 7)).id)

        info = selector.get_freeze_info(employee.id)

        assert info.used == 2
        assert info.remaining == 0
        assert info.can_freeze is False
        assert {o.order_date for o in info.frozen_orders} == {
            date(2026, 1, 6), date(2026, 1, 7),
        }

    def test_unknown_employee(self, selector):
        with pytest.raises(EmployeeNotFoundError):
            selector.get_freeze_info(uuid4())


class TestPricePreview:
    def test_preview_matches_change(self, selector, lifecycle, employee, subscribed, pricing):
        preview = selector.get_price_preview(subscribed.id, "Combo35", pricing)

        assert preview.current_price == Decimal("25.00")
        assert preview.new_price == Decimal("35.00")
        assert preview.price_difference == Decimal("10")
        assert preview.affected_orders == 10
        assert preview.total_impact == Decimal("100")

        outcome = lifecycle.change_combo(employee.id, "Combo35")
        assert outcome.price_delta == preview.total_impact

    def test_preview_counts_the_orders_a_change_rebills(
        self, selector, lifecycle, session, employee, subscribed, pricing, order_on
    ):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 7)).id)
        stray = Order(
            employee_id=employee.id,
            project_id=employee.project_id,
            subscription_id=None,
            combo_type="Combo25",
            price=Decimal("25"),
            currency_code="TJS",
            order_date=date(2026, 1, 23),
        )
        session.add(stray)
        session.flush()

        preview = selector.get_price_preview(subscribed.id, "Combo35", pricing)
        outcome = lifecycle.change_combo(employee.id, "Combo35")

        assert preview.affected_orders == 11
        assert outcome.price_delta == preview.total_impact == Decimal("110")

    def test_preview_after_cutoff(self, selector, subscribed, pricing, deterministic_clock):
        deterministic_clock.set_local(date(2026, 1, 5), 11, 0, TZ)
        preview = selector.get_price_preview(subscribed.id, "Combo35", pricing)
        assert preview.affected_orders == 9
        assert preview.total_impact == Decimal("90")

    def test_unknown_combo(self, selector, subscribed, pricing):
        with pytest.raises(UnknownComboError):
            selector.get_price_preview(subscribed.id, "Combo99", pricing)


class TestListOrders:
    def test_range_and_status_filters(self, selector, lifecycle, employee, subscribed, order_on):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 6)).id)

        week = selector.list_orders(employee.id, date(2026, 1, 5), date(2026, 1, 9))
        assert [o.order_date for o in week] == [
            date(2026, 1, 5), date(2026, 1, 6), date(2026, 1, 7),
            date(2026, 1, 8), date(2026, 1, 9),
        ]

        frozen = selector.list_orders(employee.id, statuses=(OrderStatus.FROZEN,))
        assert [o.order_date for o in frozen] == [date(2026, 1, 6)]
        assert len(selector.list_orders(employee.id)) == 11
