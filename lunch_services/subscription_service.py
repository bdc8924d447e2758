"""
SubscriptionService -- caller-facing facade over the lunch kernel.

Responsibility:
    Wires configuration into the kernel (pricing table, freeze cap, default
    subscription length), owns the transaction boundary and converts kernel
    errors into LifecycleResult values.

Architecture position:
    Services.  Imports lunch_config and lunch_kernel; nothing in the kernel
    imports this package.
"""

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from lunch_config import build_pricing_table, get_active_config
from lunch_config.schema import LunchSettings
from lunch_kernel.domain.clock import Clock
from lunch_kernel.domain.schedule import ScheduleType
from lunch_kernel.exceptions import SubscriptionNotFoundError
from lunch_kernel.selectors.subscription_selector import SubscriptionSelector
from lunch_kernel.services.audit_sink import NullAuditSink, SqlAuditSink
from lunch_kernel.services.guest_orders import GuestOrders
from lunch_kernel.services.subscription_lifecycle import SubscriptionLifecycle
from lunch_services.base import TransactionalFacade
from lunch_services.results import LifecycleResult


class SubscriptionService(TransactionalFacade):
    """
    Lunch subscription operations for the API layer.

    Every method returns a LifecycleResult.  On success ``value`` holds the
    kernel DTO; on rejection nothing was written.
    """

    def __init__(
        self,
        session: Session,
        settings: LunchSettings | None = None,
        clock: Clock | None = None,
        *,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
        record_audit: bool = True,
    ):
        super().__init__(session, clock, actor_id=actor_id, auto_commit=auto_commit)
        self._settings = settings or get_active_config()
        self._pricing = build_pricing_table(self._settings)
        audit_sink = SqlAuditSink(session, self._clock) if record_audit else NullAuditSink()

        self._lifecycle = SubscriptionLifecycle(
            session,
            self._pricing,
            self._clock,
            max_freezes_per_week=self._settings.freeze.max_per_week,
            default_months=self._settings.subscription.default_months,
            audit_sink=audit_sink,
            actor_id=actor_id,
        )
        self._guests = GuestOrders(
            session, self._pricing, self._clock, audit_sink=audit_sink, actor_id=actor_id
        )
        self._selector = SubscriptionSelector(
            session, self._clock, max_freezes_per_week=self._settings.freeze.max_per_week
        )

    @property
    def settings(self) -> LunchSettings:
        return self._settings

    # Lifecycle

    def create_subscription(
        self,
        employee_id: UUID,
        combo_type: str,
        start_date: date,
        end_date: date | None = None,
        *,
        schedule_type: ScheduleType | str | None = None,
        custom_days: list[date] | None = None,
    ) -> LifecycleResult:
        return self._run(
            "create_subscription",
            lambda: self._lifecycle.create(
                employee_id, combo_type, start_date, end_date,
                schedule_type=schedule_type, custom_days=custom_days,
            ),
            employee_id=employee_id,
        )

    def reactivate_subscription(
        self,
        employee_id: UUID,
        combo_type: str,
        start_date: date,
        end_date: date | None = None,
        *,
        schedule_type: ScheduleType | str | None = None,
        custom_days: list[date] | None = None,
    ) -> LifecycleResult:
        return self._run(
            "reactivate_subscription",
            lambda: self._lifecycle.reactivate(
                employee_id, combo_type, start_date, end_date,
                schedule_type=schedule_type, custom_days=custom_days,
            ),
            employee_id=employee_id,
        )

    def bulk_create_subscriptions(
        self,
        employee_ids: list[UUID],
        combo_type: str,
        start_date: date,
        end_date: date | None = None,
        *,
        schedule_type: ScheduleType | str | None = None,
        custom_days: list[date] | None = None,
    ) -> LifecycleResult:
        return self._run(
            "bulk_create_subscriptions",
            lambda: self._lifecycle.bulk_create(
                employee_ids, combo_type, start_date, end_date,
                schedule_type=schedule_type, custom_days=custom_days,
            ),
        )

    def change_combo(self, employee_id: UUID, new_combo_type: str) -> LifecycleResult:
        return self._run(
            "change_combo",
            lambda: self._lifecycle.change_combo(employee_id, new_combo_type),
            employee_id=employee_id,
        )

    def pause(self, employee_id: UUID) -> LifecycleResult:
        return self._run(
            "pause_subscription",
            lambda: self._lifecycle.pause(employee_id),
            employee_id=employee_id,
        )

    def resume(self, employee_id: UUID) -> LifecycleResult:
        return self._run(
            "resume_subscription",
            lambda: self._lifecycle.resume(employee_id),
            employee_id=employee_id,
        )

    def deactivate(self, employee_id: UUID) -> LifecycleResult:
        return self._run(
            "deactivate_subscription",
            lambda: self._lifecycle.deactivate(employee_id),
            employee_id=employee_id,
        )

    def freeze_order(self, order_id: UUID, reason: str | None = None) -> LifecycleResult:
        return self._run("freeze_order", lambda: self._lifecycle.freeze(order_id, reason))

    def unfreeze_order(self, order_id: UUID) -> LifecycleResult:
        return self._run("unfreeze_order", lambda: self._lifecycle.unfreeze(order_id))

    def freeze_period(
        self,
        employee_id: UUID,
        start_date: date,
        end_date: date,
        reason: str | None = None,
    ) -> LifecycleResult:
        return self._run(
            "freeze_period",
            lambda: self._lifecycle.freeze_period(employee_id, start_date, end_date, reason),
            employee_id=employee_id,
        )

    # Guest orders

    def create_guest_orders(
        self,
        project_id: UUID,
        guest_name: str,
        combo_type: str,
        quantity: int,
        order_date: date,
    ) -> LifecycleResult:
        return self._run(
            "create_guest_orders",
            lambda: self._guests.create(project_id, guest_name, combo_type, quantity, order_date),
            project_id=project_id,
        )

    def cancel_guest_order(self, order_id: UUID) -> LifecycleResult:
        return self._run("cancel_guest_order", lambda: self._guests.cancel(order_id))

    # Reads

    def get_subscription(self, subscription_id: UUID) -> LifecycleResult:
        def _get():
            info = self._selector.get_by_id(subscription_id)
            if info is None:
                raise SubscriptionNotFoundError(str(subscription_id))
            return info

        return self._run(
            "get_subscription", _get, read_only=True, subscription_id=subscription_id
        )

    def get_subscription_for_employee(self, employee_id: UUID) -> LifecycleResult:
        def _get():
            info = self._selector.get_by_employee_id(employee_id)
            if info is None:
                raise SubscriptionNotFoundError(f"employee {employee_id}")
            return info

        return self._run(
            "get_subscription_for_employee", _get, read_only=True, employee_id=employee_id
        )

    def get_freeze_info(self, employee_id: UUID) -> LifecycleResult:
        return self._run(
            "get_freeze_info",
            lambda: self._selector.get_freeze_info(employee_id),
            read_only=True,
            employee_id=employee_id,
        )

    def get_price_preview(self, subscription_id: UUID, new_combo_type: str) -> LifecycleResult:
        return self._run(
            "get_price_preview",
            lambda: self._selector.get_price_preview(
                subscription_id, new_combo_type, self._pricing
            ),
            read_only=True,
            subscription_id=subscription_id,
        )

    def list_orders(
        self,
        employee_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> LifecycleResult:
        return self._run(
            "list_orders",
            lambda: self._selector.list_orders(employee_id, start_date, end_date),
            read_only=True,
            employee_id=employee_id,
        )
