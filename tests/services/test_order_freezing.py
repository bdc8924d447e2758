"""
Tests for freezing and unfreezing single subscription orders.

Freeze skips one day and appends a replacement order on the next free
working day after the window, so TotalDays never changes.  Unfreeze undoes
that and gives the weekly slot back.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from lunch_kernel.exceptions import (
    CutoffPassedError,
    FreezeLimitExceededError,
    GuestOrderNotAllowedError,
    InvalidDateRangeError,
    NoActiveSubscriptionError,
    NoOrdersInPeriodError,
    OrderNotFoundError,
    OrderNotFreezableError,
    OrderNotUnfreezableError,
)
from lunch_kernel.models import Order, OrderStatus
from lunch_kernel.services.guest_orders import GuestOrders
from lunch_kernel.services.subscription_lifecycle import SubscriptionLifecycle

TZ = "Asia/Dushanbe"


class TestFreeze:
    def test_freeze_first_day_extends_window(
        self, lifecycle, employee, subscribed, order_on, session
    ):
        first = order_on(employee.id, date(2026, 1, 5))

        outcome = lifecycle.freeze(first.id, "sick")

        assert outcome.frozen_order.status == OrderStatus.FROZEN
        assert outcome.frozen_order.frozen_reason == "sick"
        assert outcome.replacement_order.order_date == date(2026, 1, 19)
        assert outcome.replacement_order.status == OrderStatus.ACTIVE
        assert outcome.frozen_order.replacement_order_id == outcome.replacement_order.id
        assert outcome.subscription.end_date == date(2026, 1, 19)
        assert outcome.subscription.total_days == 10
        assert outcome.subscription.total_price == Decimal("250")
        assert outcome.subscription.frozen_days_count == 1
        assert outcome.remaining_freezes == 1

    def test_freeze_moves_no_money(self, lifecycle, employee, subscribed, order_on, ledger, project):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 7)).id)
        assert ledger.get_available(project.id).balance == Decimal("750")

    def test_replacement_skips_weekend(
        self, lifecycle, employee, order_on
    ):
        lifecycle.create(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 9))
        outcome = lifecycle.freeze(order_on(employee.id, date(2026, 1, 6)).id)
        assert outcome.replacement_order.order_date == date(2026, 1, 12)

    def test_freeze_today_before_cutoff(
        self, lifecycle, employee, subscribed, order_on, deterministic_clock
    ):
        deterministic_clock.set_local(date(2026, 1, 5), 10, 29, TZ)
        outcome = lifecycle.freeze(order_on(employee.id, date(2026, 1, 5)).id)
        assert outcome.frozen_order.status == OrderStatus.FROZEN

    def test_freeze_today_at_cutoff_is_rejected(
        self, lifecycle, employee, subscribed, order_on, deterministic_clock
    ):
        deterministic_clock.set_local(date(2026, 1, 5), 10, 30, TZ)
        with pytest.raises(CutoffPassedError):
            lifecycle.freeze(order_on(employee.id, date(2026, 1, 5)).id)

    def test_freeze_tomorrow_after_cutoff_is_allowed(
        self, lifecycle, employee, subscribed, order_on, deterministic_clock
    ):
        deterministic_clock.set_local(date(2026, 1, 5), 15, 0, TZ)
        outcome = lifecycle.freeze(order_on(employee.id, date(2026, 1, 6)).id)
        assert outcome.subscription.end_date == date(2026, 1, 19)

    def test_past_order_is_not_freezable(
        self, lifecycle, employee, subscribed, order_on, deterministic_clock
    ):
        deterministic_clock.set_local(date(2026, 1, 6), 8, 0, TZ)
        with pytest.raises(OrderNotFreezableError):
            lifecycle.freeze(order_on(employee.id, date(2026, 1, 5)).id)

    def test_frozen_order_is_not_freezable_again(
        self, lifecycle, employee, subscribed, order_on
    ):
        order = order_on(employee.id, date(2026, 1, 7))
        lifecycle.freeze(order.id)
        with pytest.raises(OrderNotFreezableError):
            lifecycle.freeze(order.id)

    def test_guest_order_is_not_freezable(
        self, lifecycle, session, pricing, deterministic_clock, project
    ):
        guests = GuestOrders(session, pricing, deterministic_clock)
        placed = guests.create(project.id, "Visitor", "Combo25", 1, date(2026, 1, 6))
        with pytest.raises(GuestOrderNotAllowedError):
            lifecycle.freeze(placed.orders[0].id)

    def test_unknown_order(self, lifecycle):
        with pytest.raises(OrderNotFoundError):
            lifecycle.freeze(uuid4())

    def test_paused_subscription_cannot_freeze(
        self, lifecycle, employee, subscribed, order_on
    ):
        lifecycle.pause(employee.id)
        with pytest.raises(NoActiveSubscriptionError):
            lifecycle.freeze(order_on(employee.id, date(2026, 1, 12)).id)

    def test_logs_freeze(self, lifecycle, employee, subscribed, order_on, captured_logs):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 8)).id)
        [record] = [r for r in captured_logs() if r["message"] == "order_frozen"]
        assert record["end_date"] == "2026-01-19"
        assert record["remaining_freezes"] == 1


class TestWeeklyLimit:
    def test_third_freeze_in_a_week_is_rejected(
        self, lifecycle, employee, subscribed, order_on
    ):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 6)).id)
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 7)).id)

        with pytest.raises(FreezeLimitExceededError) as exc_info:
            lifecycle.freeze(order_on(employee.id, date(2026, 1, 8)).id)

        assert exc_info.value.used == 2
        assert exc_info.value.week_start == "2026-01-05"
        assert exc_info.value.week_end == "2026-01-11"

    def test_freezing_next_weeks_orders_uses_this_weeks_allowance(
        self, lifecycle, employee, subscribed, order_on, deterministic_clock
    ):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 12)).id)
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 13)).id)
        with pytest.raises(FreezeLimitExceededError):
            lifecycle.freeze(order_on(employee.id, date(2026, 1, 14)).id)

        deterministic_clock.set_local(date(2026, 1, 12), 8, 0, TZ)
        outcome = lifecycle.freeze(order_on(employee.id, date(2026, 1, 14)).id)
        assert outcome.remaining_freezes == 1

    def test_unfreeze_returns_the_slot(self, lifecycle, employee, subscribed, order_on):
        first = order_on(employee.id, date(2026, 1, 6))
        lifecycle.freeze(first.id)
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 7)).id)

        lifecycle.unfreeze(first.id)

        outcome = lifecycle.freeze(order_on(employee.id, date(2026, 1, 8)).id)
        assert outcome.remaining_freezes == 0

    def test_custom_weekly_cap(self, session, pricing, deterministic_clock, employee, order_on):
        strict = SubscriptionLifecycle(
            session, pricing, deterministic_clock, max_freezes_per_week=1
        )
        strict.create(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))
        strict.freeze(order_on(employee.id, date(2026, 1, 6)).id)
        with pytest.raises(FreezeLimitExceededError):
            strict.freeze(order_on(employee.id, date(2026, 1, 7)).id)


class TestUnfreeze:
    def test_round_trip_restores_window(
        self, lifecycle, employee, subscribed, order_on, session
    ):
        first = order_on(employee.id, date(2026, 1, 5))
        frozen = lifecycle.freeze(first.id)

        outcome = lifecycle.unfreeze(first.id)

        assert outcome.order.status == OrderStatus.ACTIVE
        assert outcome.order.frozen_at is None
        assert outcome.removed_replacement_id == frozen.replacement_order.id
        assert outcome.subscription.end_date == date(2026, 1, 16)
        assert outcome.subscription.total_days == 10
        assert outcome.subscription.frozen_days_count == 0
        assert session.get(Order, frozen.replacement_order.id) is None

    def test_unfreeze_earlier_of_two_moves_last_order_in(
        self, lifecycle, employee, subscribed, order_on
    ):
        tuesday = order_on(employee.id, date(2026, 1, 6))
        wednesday = order_on(employee.id, date(2026, 1, 7))
        lifecycle.freeze(tuesday.id)
        second = lifecycle.freeze(wednesday.id)
        assert second.subscription.end_date == date(2026, 1, 20)

        outcome = lifecycle.unfreeze(tuesday.id)

        assert outcome.subscription.end_date == date(2026, 1, 19)
        assert outcome.subscription.total_days == 10
        moved = order_on(employee.id, date(2026, 1, 19))
        assert moved.id == second.replacement_order.id
        assert order_on(employee.id, date(2026, 1, 20)) is None

    def test_active_order_is_not_unfreezable(self, lifecycle, employee, subscribed, order_on):
        with pytest.raises(OrderNotUnfreezableError):
            lifecycle.unfreeze(order_on(employee.id, date(2026, 1, 6)).id)

    def test_frozen_replacement_must_be_unfrozen_first(
        self, lifecycle, employee, subscribed, order_on
    ):
        first = order_on(employee.id, date(2026, 1, 5))
        frozen = lifecycle.freeze(first.id)
        lifecycle.freeze(frozen.replacement_order.id)

        with pytest.raises(OrderNotUnfreezableError):
            lifecycle.unfreeze(first.id)

    def test_unfreeze_after_cutoff_is_rejected(
        self, lifecycle, employee, subscribed, order_on, deterministic_clock
    ):
        first = order_on(employee.id, date(2026, 1, 5))
        lifecycle.freeze(first.id)
        deterministic_clock.set_local(date(2026, 1, 5), 11, 0, TZ)
        with pytest.raises(CutoffPassedError):
            lifecycle.unfreeze(first.id)

    def test_unfreeze_while_paused_returns_order_to_paused(
        self, lifecycle, employee, subscribed, order_on
    ):
        order = order_on(employee.id, date(2026, 1, 12))
        lifecycle.freeze(order.id)
        lifecycle.pause(employee.id)

        outcome = lifecycle.unfreeze(order.id)

        assert outcome.order.status == OrderStatus.PAUSED
        assert outcome.subscription.end_date == date(2026, 1, 16)


class TestFreezePeriod:
    def test_stops_at_weekly_cap(self, lifecycle, employee, subscribed):
        outcome = lifecycle.freeze_period(
            employee.id, date(2026, 1, 12), date(2026, 1, 16), "vacation"
        )

        assert [f.frozen_order.order_date for f in outcome.frozen] == [
            date(2026, 1, 12), date(2026, 1, 13),
        ]
        assert [o.order_date for o in outcome.skipped_orders] == [
            date(2026, 1, 14), date(2026, 1, 15), date(2026, 1, 16),
        ]
        assert outcome.limit_reached is True
        assert outcome.subscription.end_date == date(2026, 1, 20)
        assert outcome.subscription.frozen_days_count == 2

    def test_whole_period_within_cap(self, lifecycle, employee, subscribed):
        outcome = lifecycle.freeze_period(employee.id, date(2026, 1, 8), date(2026, 1, 9))
        assert len(outcome.frozen) == 2
        assert outcome.limit_reached is False

    def test_cap_already_used(self, lifecycle, employee, subscribed, order_on):
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 6)).id)
        lifecycle.freeze(order_on(employee.id, date(2026, 1, 7)).id)
        with pytest.raises(FreezeLimitExceededError):
            lifecycle.freeze_period(employee.id, date(2026, 1, 12), date(2026, 1, 16))

    def test_weekend_period_has_no_orders(self, lifecycle, employee, subscribed):
        with pytest.raises(NoOrdersInPeriodError):
            lifecycle.freeze_period(employee.id, date(2026, 1, 10), date(2026, 1, 11))

    def test_inverted_period(self, lifecycle, employee, subscribed):
        with pytest.raises(InvalidDateRangeError):
            lifecycle.freeze_period(employee.id, date(2026, 1, 16), date(2026, 1, 12))
