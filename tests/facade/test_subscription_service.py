"""
Tests for the SubscriptionService facade.

The facade commits on success, rolls back on rejection and converts kernel
errors into REJECTED results.  In these tests the session is joined to an
outer transaction, so commit and rollback act on a savepoint.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from lunch_kernel.models import Order, OrderStatus, SubscriptionStatus
from lunch_services import LifecycleStatus, SubscriptionService

TZ = "Asia/Dushanbe"


@pytest.fixture
def service(session, lunch_settings, deterministic_clock):
    return SubscriptionService(session, lunch_settings, deterministic_clock)


class TestWrites:
    def test_create_success(self, service, employee):
        result = service.create_subscription(
            employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16)
        )
        assert result.is_success
        assert result.status == LifecycleStatus.SUCCESS
        assert result.value.total_days == 10

    def test_rejection_carries_code_and_details(self, service, employee_factory, project_factory):
        poor = employee_factory(project_factory(budget="100"))

        result = service.create_subscription(
            poor.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16)
        )

        assert not result.is_success
        assert result.error_code == "INSUFFICIENT_BUDGET"
        assert result.error_kind == "business_rule"
        assert Decimal(result.details["required"]) == Decimal("250")
        assert result.value is None

    def test_rejection_rolls_back(self, service, employee, session):
        service.create_subscription(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))
        result = service.create_subscription(
            employee.id, "Combo25", date(2026, 1, 19), date(2026, 1, 23)
        )
        assert result.error_code == "ALREADY_SUBSCRIBED"
        assert result.error_kind == "conflict"
        assert session.execute(
            select(func.count(Order.id)).where(Order.employee_id == employee.id)
        ).scalar_one() == 10

    def test_full_lifecycle(self, service, employee, deterministic_clock):
        service.create_subscription(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))
        first = service.list_orders(employee.id, date(2026, 1, 5), date(2026, 1, 5)).value[0]

        frozen = service.freeze_order(first.id, "sick")
        assert frozen.value.subscription.end_date == date(2026, 1, 19)

        deterministic_clock.set_local(date(2026, 1, 10), 9, 0, TZ)
        result = service.deactivate(employee.id)

        assert result.is_success
        assert result.value.subscription.status == SubscriptionStatus.COMPLETED
        assert result.value.cancelled_count == 6
        assert result.value.refund_total == Decimal("150")

    def test_freeze_unknown_order(self, service):
        result = service.freeze_order(uuid4())
        assert result.error_code == "ORDER_NOT_FOUND"
        assert result.error_kind == "not_found"

    def test_pause_resume_and_change_combo(self, service, employee):
        service.create_subscription(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))
        assert service.pause(employee.id).value.status == SubscriptionStatus.PAUSED
        assert service.resume(employee.id).value.status == SubscriptionStatus.ACTIVE
        assert service.change_combo(employee.id, "Combo35").value.price_delta == Decimal("100")

    def test_freeze_period_and_unfreeze(self, service, employee):
        service.create_subscription(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))
        period = service.freeze_period(employee.id, date(2026, 1, 12), date(2026, 1, 16))
        assert period.value.limit_reached

        first = period.value.frozen[0].frozen_order
        unfrozen = service.unfreeze_order(first.id)
        assert unfrozen.value.order.status == OrderStatus.ACTIVE

    def test_bulk_create(self, service, employee_factory, project):
        employees = [employee_factory(project, full_name=f"E{i}") for i in range(3)]
        result = service.bulk_create_subscriptions(
            [e.id for e in employees], "Combo25", date(2026, 1, 5), date(2026, 1, 9)
        )
        assert result.is_success
        assert result.value.success_count == 3

    def test_reactivate(self, service, employee):
        service.create_subscription(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))
        service.deactivate(employee.id)
        result = service.reactivate_subscription(
            employee.id, "Combo35", date(2026, 1, 19), date(2026, 1, 23)
        )
        assert result.value.combo_type == "Combo35"

    def test_guest_orders(self, service, project):
        placed = service.create_guest_orders(project.id, "Visitor", "Combo25", 2, date(2026, 1, 6))
        assert placed.value.total_cost == Decimal("50.00")
        cancelled = service.cancel_guest_order(placed.value.orders[0].id)
        assert cancelled.value.status == OrderStatus.CANCELLED

    def test_unexpected_error_propagates(self, service, employee, monkeypatch, captured_logs):
        def _boom(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(service._lifecycle, "pause", _boom)
        with pytest.raises(RuntimeError):
            service.pause(employee.id)
        assert any(r["message"] == "lifecycle_operation_failed" for r in captured_logs())


class TestReads:
    def test_get_subscription(self, service, employee):
        created = service.create_subscription(
            employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16)
        ).value
        assert service.get_subscription(created.id).value.id == created.id
        assert service.get_subscription_for_employee(employee.id).value.id == created.id

    def test_missing_subscription_is_rejected(self, service, employee):
        assert service.get_subscription(uuid4()).error_code == "SUBSCRIPTION_NOT_FOUND"
        result = service.get_subscription_for_employee(employee.id)
        assert result.error_code == "SUBSCRIPTION_NOT_FOUND"

    def test_freeze_info_and_preview(self, service, employee):
        created = service.create_subscription(
            employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16)
        ).value
        assert service.get_freeze_info(employee.id).value.remaining == 2
        preview = service.get_price_preview(created.id, "Combo35").value
        assert preview.total_impact == Decimal("100")


class TestLogging:
    def test_operations_carry_context(self, service, employee, captured_logs):
        service.create_subscription(employee.id, "Combo25", date(2026, 1, 5), date(2026, 1, 16))

        records = captured_logs()
        [done] = [r for r in records if r["message"] == "lifecycle_operation_completed"]
        assert done["operation"] == "create_subscription"
        assert done["employee_id"] == str(employee.id)
        assert "correlation_id" in done
        created = [r for r in records if r["message"] == "subscription_created"]
        assert created[0]["correlation_id"] == done["correlation_id"]

    def test_rejection_is_logged(self, service, captured_logs):
        service.deactivate(uuid4())
        [rejected] = [
            r for r in captured_logs() if r["message"] == "lifecycle_operation_rejected"
        ]
        assert rejected["error_code"] == "EMPLOYEE_NOT_FOUND"
