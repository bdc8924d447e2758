"""Tests for SubscriptionReconciler counting rules."""

from datetime import date
from decimal import Decimal

from lunch_kernel.models import OrderStatus
from lunch_kernel.services.reconciler import SubscriptionReconciler


class TestSubscriptionReconciler:
    def test_totals_match_created_orders(self, session, employee, subscribed, subscription_row):
        totals = SubscriptionReconciler(session).recompute(
            subscription_row(employee.id), date(2026, 1, 5)
        )
        assert totals.total_days == 10
        assert totals.total_price == Decimal("250")
        assert totals.remaining_days == 10

    def test_cancelled_and_frozen_are_not_counted(
        self, session, employee, subscribed, subscription_row, order_on
    ):
        order_on(employee.id, date(2026, 1, 6)).status = OrderStatus.CANCELLED
        order_on(employee.id, date(2026, 1, 7)).status = OrderStatus.FROZEN

        totals = SubscriptionReconciler(session).recompute(
            subscription_row(employee.id), date(2026, 1, 5)
        )

        assert totals.total_days == 8
        assert totals.total_price == Decimal("200")
        # Frozen still upcoming, cancelled not
        assert totals.remaining_days == 9

    def test_orders_outside_window_are_not_counted(
        self, session, employee, subscribed, subscription_row
    ):
        subscription = subscription_row(employee.id)
        subscription.end_date = date(2026, 1, 9)

        totals = SubscriptionReconciler(session).apply(subscription, date(2026, 1, 5))

        assert totals.total_days == 5
        assert subscription.total_days == 5
        assert Decimal(subscription.total_price) == Decimal("125")

    def test_remaining_days_counts_from_today(
        self, session, employee, subscribed, subscription_row
    ):
        totals = SubscriptionReconciler(session).recompute(
            subscription_row(employee.id), date(2026, 1, 12)
        )
        assert totals.remaining_days == 5

    def test_logs_when_totals_drift(
        self, session, employee, subscribed, subscription_row, captured_logs
    ):
        subscription = subscription_row(employee.id)
        subscription.total_days = 3

        SubscriptionReconciler(session).apply(subscription, date(2026, 1, 5))

        [record] = [
            r for r in captured_logs() if r["message"] == "subscription_totals_reconciled"
        ]
        assert record["previous_total_days"] == 3
        assert record["total_days"] == 10
