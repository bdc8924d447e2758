"""
SubscriptionLifecycle -- the state machine of one employee's lunch subscription.

Responsibility:
    Create / Reactivate / ChangeCombo / Pause / Resume / Deactivate for the
    subscription, and Freeze / Unfreeze / FreezePeriod for its individual
    orders.  Orchestrates OrderSet (order rows), BudgetLedger (money),
    FreezeRateLimiter (weekly cap) and SubscriptionReconciler (derived
    totals).

Architecture position:
    Kernel > Services -- imperative shell.  Called by the lunch_services
    facade, which owns the transaction.

States:

    (none) --create--> ACTIVE <--pause/resume--> PAUSED
                         |                         |
                         +------deactivate---------+--> COMPLETED
    COMPLETED --reactivate--> ACTIVE

    Frozen is not a subscription state; it belongs to single orders.

Invariants enforced:
    - Per-employee serialization: every transition starts by selecting the
      employee row FOR UPDATE, so two freezes for one employee cannot both
      extend end_date from a stale read.
    - Atomicity: each transition runs inside ``session.begin_nested()``.
      A late failure (no headroom for the debit, zero orders created) rolls
      back every order, subscription and ledger change made by the step.
    - TotalDays / TotalPrice are written only by the reconciler, which runs
      at the end of every transition.
    - Freeze extends end_date to the next working day and places the
      replacement order exactly there.

Failure modes:
    Every rejection is a typed LunchKernelError raised before any mutation
    where the rule can be checked up front.
"""

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock, local_date
from lunch_kernel.domain.cutoff import CutoffPolicy
from lunch_kernel.domain.dtos import (
    BulkCreateFailure,
    BulkCreateOutcome,
    ComboChangeOutcome,
    DeactivationOutcome,
    FreezeOutcome,
    FreezePeriodOutcome,
    OrderInfo,
    SubscriptionInfo,
    UnfreezeOutcome,
)
from lunch_kernel.domain.pricing import ComboPricingTable
from lunch_kernel.domain.schedule import ScheduleType
from lunch_kernel.domain.working_days import (
    add_months,
    enumerate_working_days,
    is_working_day,
    next_working_day,
    previous_working_day,
)
from lunch_kernel.exceptions import (
    AlreadySubscribedError,
    CutoffPassedError,
    EmployeeDeletedError,
    EmployeeInactiveError,
    EmployeeNotFoundError,
    EmployeeWithoutProjectError,
    GuestOrderNotAllowedError,
    InsufficientBudgetError,
    InvalidDateRangeError,
    InvalidSubscriptionTransitionError,
    LunchKernelError,
    NoActiveSubscriptionError,
    NoOrdersCreatedError,
    NoOrdersInPeriodError,
    OrderNotFoundError,
    OrderNotFreezableError,
    OrderNotUnfreezableError,
    PastDateError,
    ProjectNotFoundError,
    SubscriptionNotFoundError,
    WrongServiceTypeError,
)
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.employee import Employee, ServiceType
from lunch_kernel.models.order import Order, OrderStatus
from lunch_kernel.models.project import Project
from lunch_kernel.models.subscription import LunchSubscription, SubscriptionStatus
from lunch_kernel.models.transaction import TransactionType
from lunch_kernel.services.audit_sink import AuditSink, NullAuditSink
from lunch_kernel.services.base import BaseService
from lunch_kernel.services.budget_ledger import BudgetLedger
from lunch_kernel.services.freeze_rate_limiter import (
    DEFAULT_MAX_FREEZES_PER_WEEK,
    FreezeRateLimiter,
)
from lunch_kernel.services.order_set import OrderSet
from lunch_kernel.services.reconciler import SubscriptionReconciler

logger = get_logger("services.subscription_lifecycle")

_OPEN_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)


class SubscriptionLifecycle(BaseService[LunchSubscription]):
    """
    Lunch subscription state machine.

    Contract:
        Every public method takes plain ids / values and returns a frozen
        DTO.  Nothing is committed; the caller commits or rolls back.
    """

    def __init__(
        self,
        session: Session,
        pricing: ComboPricingTable,
        clock: Clock | None = None,
        *,
        max_freezes_per_week: int = DEFAULT_MAX_FREEZES_PER_WEEK,
        default_months: int = 1,
        audit_sink: AuditSink | None = None,
        actor_id: UUID | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._pricing = pricing
        self._default_months = default_months
        self._audit = audit_sink or NullAuditSink()
        self._actor_id = actor_id
        self.orders = OrderSet(session, pricing, self._clock)
        self.ledger = BudgetLedger(session, self._clock)
        self.limiter = FreezeRateLimiter(session, max_freezes_per_week)
        self.reconciler = SubscriptionReconciler(session)

    # ==================================================================
    # Create / Reactivate
    # ==================================================================

    def create(
        self,
        employee_id: UUID,
        combo_type: str,
        start_date: date,
        end_date: date | None = None,
        *,
        schedule_type: ScheduleType | str | None = None,
        custom_days: Iterable[date] | None = None,
    ) -> SubscriptionInfo:
        """
        Subscribe an employee.

        A completed subscription row for the employee is reused (the same
        path as ``reactivate``); an open one is a conflict.
        """
        employee = self._lock_employee(employee_id)
        existing = self._subscription_for(employee.id)
        if existing is not None and not existing.is_completed:
            raise AlreadySubscribedError(
                str(employee.id), str(existing.id), existing.status.value
            )
        return self._start(
            employee, existing, combo_type, start_date, end_date,
            schedule_type, custom_days,
        )

    def reactivate(
        self,
        employee_id: UUID,
        combo_type: str,
        start_date: date,
        end_date: date | None = None,
        *,
        schedule_type: ScheduleType | str | None = None,
        custom_days: Iterable[date] | None = None,
    ) -> SubscriptionInfo:
        """Restart a completed subscription with a new window and combo."""
        employee = self._lock_employee(employee_id)
        existing = self._subscription_for(employee.id)
        if existing is None:
            raise SubscriptionNotFoundError(f"employee {employee.id}")
        if not existing.is_completed:
            raise InvalidSubscriptionTransitionError(
                str(existing.id), existing.status.value, "reactivate"
            )
        return self._start(
            employee, existing, combo_type, start_date, end_date,
            schedule_type, custom_days,
        )

    def bulk_create(
        self,
        employee_ids: Iterable[UUID],
        combo_type: str,
        start_date: date,
        end_date: date | None = None,
        *,
        schedule_type: ScheduleType | str | None = None,
        custom_days: Iterable[date] | None = None,
    ) -> BulkCreateOutcome:
        """Create subscriptions one employee at a time; failures do not stop the rest."""
        custom = list(custom_days) if custom_days is not None else None
        created: list[SubscriptionInfo] = []
        failures: list[BulkCreateFailure] = []

        for employee_id in employee_ids:
            try:
                with self.session.begin_nested():
                    created.append(
                        self.create(
                            employee_id, combo_type, start_date, end_date,
                            schedule_type=schedule_type, custom_days=custom,
                        )
                    )
            except LunchKernelError as exc:
                failures.append(BulkCreateFailure(employee_id, exc.code, str(exc)))
                logger.info(
                    "bulk_create_employee_rejected",
                    extra={"employee_id": str(employee_id), "error_code": exc.code},
                )

        logger.info(
            "bulk_create_completed",
            extra={"created_count": len(created), "failed_count": len(failures)},
        )
        return BulkCreateOutcome(created=tuple(created), failures=tuple(failures))

    def _start(
        self,
        employee: Employee,
        existing: LunchSubscription | None,
        combo_type: str,
        start_date: date,
        end_date: date | None,
        schedule_type: ScheduleType | str | None,
        custom_days: Iterable[date] | None,
    ) -> SubscriptionInfo:
        self._check_can_subscribe(employee)
        project = self._project(employee.project_id)
        price = self._pricing.price_of(combo_type)
        schedule = ScheduleType.normalize(schedule_type)
        custom = sorted(set(custom_days or ()))

        if end_date is None:
            end_date = (
                custom[-1] if schedule is ScheduleType.CUSTOM and custom
                else add_months(start_date, self._default_months)
            )
        if start_date > end_date:
            raise InvalidDateRangeError(start_date.isoformat(), end_date.isoformat())

        today = self._clock.today(project.timezone)
        if start_date < today:
            raise PastDateError(start_date.isoformat(), today.isoformat())

        if schedule is ScheduleType.CUSTOM:
            planned = [d for d in custom if start_date <= d <= end_date]
        else:
            planned = list(enumerate_working_days(employee.working_days, start_date, end_date))
        # The window ends on its last scheduled day so freeze/unfreeze stay symmetric
        window_end = planned[-1] if planned else end_date

        eligible = self.orders.eligible_dates(employee, project, planned)
        if not eligible:
            raise NoOrdersCreatedError(
                str(employee.id), start_date.isoformat(), end_date.isoformat()
            )

        required = price * len(eligible)
        budget = self.ledger.get_available(project.id)
        if required > budget.available:
            raise InsufficientBudgetError(
                str(project.id), required, budget.available, budget.currency_code
            )

        reactivated = existing is not None
        with self.session.begin_nested():
            subscription = existing or LunchSubscription(id=uuid4(), employee_id=employee.id)
            subscription.project_id = project.id
            subscription.combo_type = combo_type
            subscription.status = SubscriptionStatus.ACTIVE
            subscription.is_active = True
            subscription.start_date = start_date
            subscription.end_date = window_end
            subscription.original_end_date = window_end
            subscription.schedule_type = schedule.value
            subscription.custom_days = (
                [d.isoformat() for d in planned] if schedule is ScheduleType.CUSTOM else None
            )
            subscription.frozen_days_count = 0
            subscription.paused_at = None
            subscription.paused_days_count = 0
            subscription.total_days = 0
            subscription.total_price = Decimal("0")
            if not reactivated:
                self.session.add(subscription)

            if employee.service_type is None:
                employee.service_type = ServiceType.LUNCH
            self.session.flush()

            if schedule is ScheduleType.CUSTOM:
                count = self.orders.create_for_custom_dates(subscription, employee, project, planned)
            else:
                count = self.orders.create_for_range(
                    subscription, employee, project, start_date, window_end
                )
            if count == 0:
                raise NoOrdersCreatedError(
                    str(employee.id), start_date.isoformat(), end_date.isoformat()
                )

            self.ledger.debit(
                project.id,
                price * count,
                f"Lunch subscription {combo_type}: {count} days "
                f"{start_date.isoformat()}..{window_end.isoformat()}",
                transaction_type=TransactionType.LUNCH_DEDUCTION,
                subscription_id=subscription.id,
                employee_id=employee.id,
            )
            self.reconciler.apply(subscription, today)

        info = SubscriptionInfo.from_model(subscription)
        action = "subscription.reactivated" if reactivated else "subscription.created"
        self._audit.record(
            action, "LunchSubscription", subscription.id, self._actor_id, new_value=info
        )
        logger.info(
            "subscription_reactivated" if reactivated else "subscription_created",
            extra={
                "subscription_id": str(subscription.id),
                "employee_id": str(employee.id),
                "combo_type": combo_type,
                "orders_created": count,
                "total_price": str(info.total_price),
                "start_date": start_date,
                "end_date": window_end,
            },
        )
        return info

    # ==================================================================
    # Combo change / pause / resume / deactivate
    # ==================================================================

    def change_combo(self, employee_id: UUID, new_combo_type: str) -> ComboChangeOutcome:
        """Re-price every open order from the first modifiable date on."""
        employee = self._lock_employee(employee_id)
        subscription = self._require_open(employee.id, "change combo of")
        project = self._project(subscription.project_id)
        new_price = self._pricing.price_of(new_combo_type)
        policy = self._policy(project)
        now = self._clock.now_utc()
        old_combo = subscription.combo_type

        with self.session.begin_nested():
            updated, delta = self.orders.reprice_future(
                employee.id, new_combo_type, new_price, policy.first_modifiable_date(now)
            )
            subscription.combo_type = new_combo_type

            posting = None
            description = f"Combo change {old_combo} -> {new_combo_type}: {updated} orders"
            if delta > 0:
                posting = self.ledger.debit(
                    project.id, delta, description,
                    transaction_type=TransactionType.LUNCH_DEDUCTION,
                    subscription_id=subscription.id,
                    employee_id=employee.id,
                )
            elif delta < 0:
                posting = self.ledger.credit(
                    project.id, -delta, description,
                    transaction_type=TransactionType.REFUND,
                    subscription_id=subscription.id,
                    employee_id=employee.id,
                )
            self.reconciler.apply(subscription, policy.today(now))

        info = SubscriptionInfo.from_model(subscription)
        self._audit.record(
            "subscription.combo_changed", "LunchSubscription", subscription.id,
            self._actor_id,
            old_value={"combo_type": old_combo},
            new_value={"combo_type": new_combo_type, "price_delta": delta},
        )
        logger.info(
            "subscription_combo_changed",
            extra={
                "subscription_id": str(subscription.id),
                "old_combo": old_combo,
                "new_combo": new_combo_type,
                "updated_orders": updated,
                "price_delta": str(delta),
            },
        )
        return ComboChangeOutcome(
            subscription=info,
            updated_orders=updated,
            price_delta=delta,
            transaction=posting.transaction if posting else None,
        )

    def pause(self, employee_id: UUID) -> SubscriptionInfo:
        """ACTIVE -> PAUSED.  Open orders become Paused; no money moves."""
        employee = self._lock_employee(employee_id)
        subscription = self._require_subscription(employee.id)
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise InvalidSubscriptionTransitionError(
                str(subscription.id), subscription.status.value, "pause"
            )
        project = self._project(subscription.project_id)
        policy = self._policy(project)
        now = self._clock.now_utc()

        with self.session.begin_nested():
            subscription.status = SubscriptionStatus.PAUSED
            subscription.paused_at = now
            paused = self.orders.pause_future(employee.id, policy.first_modifiable_date(now))
            self.reconciler.apply(subscription, policy.today(now))

        info = SubscriptionInfo.from_model(subscription)
        self._audit.record(
            "subscription.paused", "LunchSubscription", subscription.id,
            self._actor_id, new_value={"paused_orders": paused},
        )
        logger.info(
            "subscription_paused",
            extra={"subscription_id": str(subscription.id), "paused_orders": paused},
        )
        return info

    def resume(self, employee_id: UUID) -> SubscriptionInfo:
        """
        PAUSED -> ACTIVE.

        end_date grows by the calendar days spent paused.  Paused orders
        whose date can no longer be served are moved to the working days
        following the old end date; the rest simply become Active again.
        """
        employee = self._lock_employee(employee_id)
        subscription = self._require_subscription(employee.id)
        if subscription.status != SubscriptionStatus.PAUSED:
            raise InvalidSubscriptionTransitionError(
                str(subscription.id), subscription.status.value, "resume"
            )
        project = self._project(subscription.project_id)
        policy = self._policy(project)
        now = self._clock.now_utc()
        today = policy.today(now)
        first_open = policy.first_modifiable_date(now)
        mask = employee.working_days

        paused_since = (
            local_date(subscription.paused_at, project.timezone)
            if subscription.paused_at is not None else today
        )
        paused_days = max(0, (today - paused_since).days)
        old_end = subscription.end_date

        with self.session.begin_nested():
            paused_orders = self.orders.paused_orders(employee.id)
            cursor = old_end
            relocated = 0
            for order in paused_orders:
                if order.order_date >= first_open:
                    continue
                cursor = next_working_day(mask, cursor)
                while self.orders.order_on(employee.id, cursor) is not None:
                    cursor = next_working_day(mask, cursor)
                order.order_date = cursor
                relocated += 1
                self.session.flush()

            stretched = old_end + timedelta(days=paused_days)
            if not is_working_day(mask, stretched):
                stretched = previous_working_day(mask, stretched)
            subscription.end_date = max(stretched, cursor, old_end)
            subscription.paused_days_count += paused_days
            subscription.paused_at = None
            subscription.status = SubscriptionStatus.ACTIVE
            for order in paused_orders:
                order.status = OrderStatus.ACTIVE
            self.reconciler.apply(subscription, today)

        info = SubscriptionInfo.from_model(subscription)
        self._audit.record(
            "subscription.resumed", "LunchSubscription", subscription.id,
            self._actor_id,
            old_value={"end_date": old_end},
            new_value={"end_date": info.end_date, "paused_days": paused_days},
        )
        logger.info(
            "subscription_resumed",
            extra={
                "subscription_id": str(subscription.id),
                "paused_days": paused_days,
                "relocated_orders": relocated,
                "end_date": info.end_date,
            },
        )
        return info

    def deactivate(self, employee_id: UUID) -> DeactivationOutcome:
        """
        ACTIVE | PAUSED -> COMPLETED.

        Cancels every open order from the first modifiable date on, credits
        what they cost back to the project and frees the employee's service
        type.
        """
        employee = self._lock_employee(employee_id)
        subscription = self._require_open(employee.id, "deactivate")
        project = self._project(subscription.project_id)
        policy = self._policy(project)
        now = self._clock.now_utc()

        with self.session.begin_nested():
            cancelled, refund = self.orders.cancel_future_active(
                employee.id, policy.first_modifiable_date(now)
            )
            posting = None
            if refund > 0:
                posting = self.ledger.credit(
                    project.id,
                    refund,
                    f"Refund for {len(cancelled)} cancelled lunch orders",
                    transaction_type=TransactionType.REFUND,
                    subscription_id=subscription.id,
                    employee_id=employee.id,
                )
            employee.service_type = None
            subscription.status = SubscriptionStatus.COMPLETED
            subscription.is_active = False
            subscription.paused_at = None
            self.reconciler.apply(subscription, policy.today(now))

        counted = sum(1 for o in cancelled if o.frozen_at is None)
        info = SubscriptionInfo.from_model(subscription)
        self._audit.record(
            "subscription.deactivated", "LunchSubscription", subscription.id,
            self._actor_id,
            new_value={"cancelled_orders": len(cancelled), "refund_total": refund},
        )
        logger.info(
            "subscription_deactivated",
            extra={
                "subscription_id": str(subscription.id),
                "cancelled_orders": len(cancelled),
                "refund_total": str(refund),
            },
        )
        return DeactivationOutcome(
            subscription=info,
            cancelled_count=counted,
            refund_total=refund,
            transaction=posting.transaction if posting else None,
        )

    # ==================================================================
    # Freeze / unfreeze
    # ==================================================================

    def freeze(self, order_id: UUID, reason: str | None = None) -> FreezeOutcome:
        """
        Skip one order and append a replacement at the end of the window.

        Preconditions: non-guest Active order dated today or later, today's
        cutoff not passed if it is dated today, an Active subscription, and
        weekly allowance left.
        """
        order, employee = self._lock_order(order_id, "frozen")
        subscription = self._subscription_for(employee.id)
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
            raise NoActiveSubscriptionError(str(employee.id))
        project = self._project(order.project_id)
        policy = self._policy(project)
        now = self._clock.now_utc()
        today = policy.today(now)

        if order.status != OrderStatus.ACTIVE or order.order_date < today:
            raise OrderNotFreezableError(
                str(order.id), order.status.value, order.order_date.isoformat()
            )
        self._check_cutoff(order, policy, now)
        self.limiter.ensure_can_freeze(employee.id, today, project.timezone)

        with self.session.begin_nested():
            outcome = self._freeze_one(order, employee, subscription, project, reason)

        self._audit.record(
            "order.frozen", "Order", order.id, self._actor_id,
            new_value={
                "reason": reason,
                "replacement_order_id": outcome.replacement_order.id,
                "end_date": outcome.subscription.end_date,
            },
        )
        return outcome

    def freeze_period(
        self,
        employee_id: UUID,
        start_date: date,
        end_date: date,
        reason: str | None = None,
    ) -> FreezePeriodOutcome:
        """
        Freeze every Active order in [start_date, end_date], oldest first.

        Stops once the weekly cap is reached; the rest are reported as
        skipped.  Raises FreezeLimitExceededError only if nothing at all
        could be frozen.
        """
        if start_date > end_date:
            raise InvalidDateRangeError(start_date.isoformat(), end_date.isoformat())
        employee = self._lock_employee(employee_id)
        subscription = self._subscription_for(employee.id)
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
            raise NoActiveSubscriptionError(str(employee.id))
        project = self._project(subscription.project_id)
        policy = self._policy(project)
        now = self._clock.now_utc()
        today = policy.today(now)

        candidates = list(
            self.session.execute(
                select(Order)
                .where(
                    Order.employee_id == employee.id,
                    Order.is_guest_order.is_(False),
                    Order.status == OrderStatus.ACTIVE,
                    Order.order_date >= max(start_date, policy.first_modifiable_date(now)),
                    Order.order_date <= end_date,
                )
                .order_by(Order.order_date)
            ).scalars().all()
        )
        if not candidates:
            raise NoOrdersInPeriodError(
                str(employee.id), start_date.isoformat(), end_date.isoformat()
            )

        frozen: list[FreezeOutcome] = []
        skipped: list[OrderInfo] = []
        with self.session.begin_nested():
            for index, order in enumerate(candidates):
                if not self.limiter.can_freeze(employee.id, today, project.timezone):
                    if not frozen:
                        self.limiter.ensure_can_freeze(employee.id, today, project.timezone)
                    skipped = [OrderInfo.from_model(o) for o in candidates[index:]]
                    logger.warning(
                        "freeze_period_limit_reached",
                        extra={"employee_id": str(employee.id), "skipped": len(skipped)},
                    )
                    break
                frozen.append(self._freeze_one(order, employee, subscription, project, reason))

        info = SubscriptionInfo.from_model(subscription)
        self._audit.record(
            "order.period_frozen", "LunchSubscription", subscription.id, self._actor_id,
            new_value={
                "start_date": start_date,
                "end_date": end_date,
                "frozen": len(frozen),
                "skipped": len(skipped),
            },
        )
        return FreezePeriodOutcome(
            frozen=tuple(frozen), skipped_orders=tuple(skipped), subscription=info
        )

    def _freeze_one(
        self,
        order: Order,
        employee: Employee,
        subscription: LunchSubscription,
        project: Project,
        reason: str | None,
    ) -> FreezeOutcome:
        now = self._clock.now_utc()
        today = self._clock.today(project.timezone)

        new_end = next_working_day(employee.working_days, subscription.end_date)
        while self.orders.order_on(employee.id, new_end) is not None:
            new_end = next_working_day(employee.working_days, new_end)

        order.status = OrderStatus.FROZEN
        order.frozen_at = now
        order.frozen_reason = reason
        subscription.end_date = new_end
        subscription.frozen_days_count += 1

        replacement = self.orders.create_replacement(subscription, order, new_end)
        order.replacement_order_id = replacement.id
        self.reconciler.apply(subscription, today)

        remaining = self.limiter.remaining(employee.id, today, project.timezone)
        logger.info(
            "order_frozen",
            extra={
                "order_id": str(order.id),
                "order_date": order.order_date,
                "replacement_order_id": str(replacement.id),
                "end_date": new_end,
                "remaining_freezes": remaining,
            },
        )
        return FreezeOutcome(
            frozen_order=OrderInfo.from_model(order),
            replacement_order=OrderInfo.from_model(replacement),
            subscription=SubscriptionInfo.from_model(subscription),
            remaining_freezes=remaining,
        )

    def unfreeze(self, order_id: UUID) -> UnfreezeOutcome:
        """
        Frozen -> Active, removing the replacement and shrinking the window.

        If the replacement was not the last order of the window, the order on
        the old end date moves into the date the replacement vacated.
        """
        order, employee = self._lock_order(order_id, "unfrozen")
        subscription = self._subscription_for(employee.id)
        if subscription is None or subscription.status not in _OPEN_STATUSES:
            raise NoActiveSubscriptionError(str(employee.id))
        project = self._project(order.project_id)
        policy = self._policy(project)
        now = self._clock.now_utc()
        today = policy.today(now)

        if order.status != OrderStatus.FROZEN or order.order_date < today:
            raise OrderNotUnfreezableError(
                str(order.id), order.status.value, order.order_date.isoformat()
            )
        self._check_cutoff(order, policy, now)

        replacement = (
            self.session.get(Order, order.replacement_order_id)
            if order.replacement_order_id is not None else None
        )
        if replacement is not None and replacement.status == OrderStatus.FROZEN:
            # Its own replacement sits further out; unfreeze that one first
            raise OrderNotUnfreezableError(
                str(order.id), order.status.value, order.order_date.isoformat()
            )

        old_end = subscription.end_date
        removed_id = None
        with self.session.begin_nested():
            order.status = (
                OrderStatus.PAUSED
                if subscription.status == SubscriptionStatus.PAUSED
                else OrderStatus.ACTIVE
            )
            order.frozen_at = None
            order.frozen_reason = None
            order.replacement_order_id = None
            self.session.flush()

            vacated = None
            if replacement is not None and not replacement.is_terminal:
                vacated = replacement.order_date
                removed_id = replacement.id
                self.session.delete(replacement)
                self.session.flush()

            if vacated is not None and vacated != old_end:
                last = self.orders.order_on(employee.id, old_end)
                if last is not None and last.subscription_id == subscription.id:
                    last.order_date = vacated
                    self.session.flush()

            shrunk = previous_working_day(employee.working_days, old_end)
            latest = self.orders.latest_counted_date(subscription)
            subscription.end_date = max(shrunk, latest or subscription.start_date)
            subscription.frozen_days_count = max(0, subscription.frozen_days_count - 1)
            self.reconciler.apply(subscription, today)

        info = SubscriptionInfo.from_model(subscription)
        self._audit.record(
            "order.unfrozen", "Order", order.id, self._actor_id,
            old_value={"replacement_order_id": removed_id, "end_date": old_end},
            new_value={"end_date": info.end_date},
        )
        logger.info(
            "order_unfrozen",
            extra={
                "order_id": str(order.id),
                "removed_replacement_id": str(removed_id) if removed_id else None,
                "end_date": info.end_date,
            },
        )
        return UnfreezeOutcome(
            order=OrderInfo.from_model(order),
            subscription=info,
            removed_replacement_id=removed_id,
        )

    # ==================================================================
    # Helpers
    # ==================================================================

    def _lock_employee(self, employee_id: UUID) -> Employee:
        employee = self.session.execute(
            select(Employee)
            .where(Employee.id == employee_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    def _lock_order(self, order_id: UUID, action: str) -> tuple[Order, Employee]:
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        if order.is_guest_order or order.employee_id is None:
            raise GuestOrderNotAllowedError(str(order_id), action)
        employee = self._lock_employee(order.employee_id)
        # Re-read under the employee lock
        order = self.session.get(Order, order_id, populate_existing=True)
        return order, employee

    def _project(self, project_id: UUID | None) -> Project:
        project = self.session.get(Project, project_id) if project_id is not None else None
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project

    def _subscription_for(self, employee_id: UUID) -> LunchSubscription | None:
        return self.session.execute(
            select(LunchSubscription).where(LunchSubscription.employee_id == employee_id)
        ).scalar_one_or_none()

    def _require_subscription(self, employee_id: UUID) -> LunchSubscription:
        subscription = self._subscription_for(employee_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"employee {employee_id}")
        return subscription

    def _require_open(self, employee_id: UUID, action: str) -> LunchSubscription:
        subscription = self._require_subscription(employee_id)
        if subscription.status not in _OPEN_STATUSES:
            raise InvalidSubscriptionTransitionError(
                str(subscription.id), subscription.status.value, action
            )
        return subscription

    @staticmethod
    def _policy(project: Project) -> CutoffPolicy:
        return CutoffPolicy(project.cutoff_time, project.timezone)

    @staticmethod
    def _check_cutoff(order: Order, policy: CutoffPolicy, now) -> None:
        if policy.is_locked(order.order_date, now):
            raise CutoffPassedError(
                order.order_date.isoformat(), policy.cutoff_label, policy.timezone
            )

    @staticmethod
    def _check_can_subscribe(employee: Employee) -> None:
        if employee.is_deleted:
            raise EmployeeDeletedError(str(employee.id))
        if not employee.is_active:
            raise EmployeeInactiveError(str(employee.id))
        if employee.service_type == ServiceType.COMPENSATION:
            raise WrongServiceTypeError(str(employee.id), employee.service_type.value)
        if employee.project_id is None:
            raise EmployeeWithoutProjectError(str(employee.id))
