"""
Typed Exception Hierarchy for the Lunch Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected subscription operation must tell the caller which rule was
violated ("freeze limit is 2 per week, 2 already used"), not just that
something failed. Callers therefore catch by type, read a machine-readable
``code``, and render the structured attributes.

    try:
        lifecycle.freeze(order_id, reason="sick")
    except FreezeLimitExceededError as e:
        api_response(code=e.code, used=e.used, limit=e.limit)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LunchKernelError (base)
    |
    +-- NotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- ProjectNotFoundError
    |   +-- SubscriptionNotFoundError
    |   +-- OrderNotFoundError
    |
    +-- ConflictError
    |   +-- AlreadySubscribedError
    |
    +-- BusinessRuleError
    |   +-- InvalidAmountError
    |   +-- InsufficientBudgetError
    |   +-- InsufficientFundsError
    |   +-- UnknownComboError
    |   +-- InvalidDateRangeError
    |   +-- PastDateError
    |   +-- EmployeeDeletedError
    |   +-- EmployeeInactiveError
    |   +-- WrongServiceTypeError
    |   +-- EmployeeWithoutProjectError
    |   +-- NoOrdersCreatedError
    |   +-- NoOrdersInPeriodError
    |   +-- InvalidSubscriptionTransitionError
    |   +-- NoActiveSubscriptionError
    |   +-- GuestOrderNotAllowedError
    |   +-- OrderNotFreezableError
    |   +-- OrderNotUnfreezableError
    |   +-- OrderNotCancellableError
    |   +-- FreezeLimitExceededError
    |   +-- CutoffPassedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                            | When Raised
----------------|---------------------------------|-------------------------------------
not_found       | EMPLOYEE_NOT_FOUND              | Employee ID doesn't exist
                | PROJECT_NOT_FOUND               | Project ID doesn't exist
                | SUBSCRIPTION_NOT_FOUND          | Subscription ID doesn't exist
                | ORDER_NOT_FOUND                 | Order ID doesn't exist
----------------|---------------------------------|-------------------------------------
conflict        | ALREADY_SUBSCRIBED              | Employee has a non-completed sub
----------------|---------------------------------|-------------------------------------
business_rule   | INVALID_AMOUNT                  | Ledger amount <= 0
                | INSUFFICIENT_BUDGET             | Pre-check: price x days > available
                | INSUFFICIENT_FUNDS              | Atomic debit lost / no headroom
                | UNKNOWN_COMBO                   | Combo not in the pricing table
                | INVALID_DATE_RANGE              | start > end
                | PAST_DATE                       | Subscription starts in the past
                | EMPLOYEE_DELETED                | Soft-deleted employee
                | EMPLOYEE_INACTIVE               | Employee is_active = False
                | WRONG_SERVICE_TYPE              | Employee uses Compensation
                | EMPLOYEE_WITHOUT_PROJECT        | Employee has no project
                | NO_ORDERS_CREATED               | Range produced zero orders
                | NO_ORDERS_IN_PERIOD             | Freeze period has no Active orders
                | INVALID_SUBSCRIPTION_TRANSITION | e.g. pause a paused subscription
                | NO_ACTIVE_SUBSCRIPTION          | Freeze without an Active sub
                | GUEST_ORDER_NOT_ALLOWED         | Freeze/unfreeze a guest order
                | ORDER_NOT_FREEZABLE             | Not Active, or dated in the past
                | ORDER_NOT_UNFREEZABLE           | Not Frozen, or dated in the past
                | ORDER_NOT_CANCELLABLE           | Terminal, or dated in the past
                | FREEZE_LIMIT_EXCEEDED           | Weekly freeze cap reached
                | CUTOFF_PASSED                   | Today's cutoff time has passed
----------------|---------------------------------|-------------------------------------
immutability    | IMMUTABILITY_VIOLATION          | Ledger / audit row modified

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError: domain errors are caught as a
   group and never mixed with programming errors.
2. ``code`` and ``kind`` are class attributes so API layers can document
   them without instantiation.
3. Every piece of context is an attribute; the message is for humans only.

===============================================================================
"""

from decimal import Decimal


class LunchKernelError(Exception):
    """
    Base exception for all lunch kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification and a ``kind`` naming the
    error category.
    """

    code: str = "LUNCH_KERNEL_ERROR"
    kind: str = "unexpected"


# Not found


class NotFoundError(LunchKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"


class EmployeeNotFoundError(NotFoundError):
    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class ProjectNotFoundError(NotFoundError):
    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class SubscriptionNotFoundError(NotFoundError):
    code: str = "SUBSCRIPTION_NOT_FOUND"

    def __init__(self, subscription_ref: str):
        self.subscription_ref = subscription_ref
        super().__init__(f"Subscription not found: {subscription_ref}")


class OrderNotFoundError(NotFoundError):
    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


# Conflicts


class ConflictError(LunchKernelError):
    """Base exception for uniqueness conflicts."""

    code: str = "CONFLICT"
    kind: str = "conflict"


class AlreadySubscribedError(ConflictError):
    """Employee already holds a non-completed lunch subscription."""

    code: str = "ALREADY_SUBSCRIBED"

    def __init__(self, employee_id: str, subscription_id: str, status: str):
        self.employee_id = employee_id
        self.subscription_id = subscription_id
        self.status = status
        super().__init__(
            f"Employee {employee_id} already has a {status} lunch subscription "
            f"({subscription_id})"
        )


# Business rules


class BusinessRuleError(LunchKernelError):
    """Base exception for rejected requests; retry only with a changed request."""

    code: str = "BUSINESS_RULE_VIOLATION"
    kind: str = "business_rule"


class InvalidAmountError(BusinessRuleError):
    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Decimal):
        self.amount = str(amount)
        super().__init__(f"Amount must be positive, got {amount}")


class InsufficientBudgetError(BusinessRuleError):
    """Required subscription cost exceeds the project's available budget."""

    code: str = "INSUFFICIENT_BUDGET"

    def __init__(self, project_id: str, required: Decimal, available: Decimal, currency: str):
        self.project_id = project_id
        self.required = str(required)
        self.available = str(available)
        self.currency = currency
        super().__init__(
            f"Insufficient project budget: required {required} {currency}, "
            f"available {available} {currency}"
        )


class InsufficientFundsError(BusinessRuleError):
    """
    Atomic debit was refused.

    Raised when the conditional UPDATE matched no row because the project
    lacks headroom (including losing a concurrent race for it).
    ``available`` comes from a read made after the refused update.
    """

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, project_id: str, amount: Decimal, available: Decimal, currency: str):
        self.project_id = project_id
        self.amount = str(amount)
        self.available = str(available)
        self.currency = currency
        super().__init__(
            f"Insufficient funds: available {available} {currency}, "
            f"required {amount} {currency}"
        )


class UnknownComboError(BusinessRuleError):
    code: str = "UNKNOWN_COMBO"

    def __init__(self, combo_type: str, known: list[str]):
        self.combo_type = combo_type
        self.known = known
        super().__init__(
            f"Unknown combo '{combo_type}'. Known combos: {', '.join(known)}"
        )


class InvalidDateRangeError(BusinessRuleError):
    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"Start date {start_date} is after end date {end_date}")


class PastDateError(BusinessRuleError):
    code: str = "PAST_DATE"

    def __init__(self, start_date: str, today: str):
        self.start_date = start_date
        self.today = today
        super().__init__(
            f"Subscription cannot start in the past: {start_date} is before {today}"
        )


class EmployeeDeletedError(BusinessRuleError):
    code: str = "EMPLOYEE_DELETED"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} is deleted")


class EmployeeInactiveError(BusinessRuleError):
    code: str = "EMPLOYEE_INACTIVE"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} is inactive; activate the employee first")


class WrongServiceTypeError(BusinessRuleError):
    code: str = "WRONG_SERVICE_TYPE"

    def __init__(self, employee_id: str, service_type: str):
        self.employee_id = employee_id
        self.service_type = service_type
        super().__init__(
            f"Employee {employee_id} has service type '{service_type}'; "
            f"switch to lunch before subscribing"
        )


class EmployeeWithoutProjectError(BusinessRuleError):
    code: str = "EMPLOYEE_WITHOUT_PROJECT"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} is not assigned to a project")


class NoOrdersCreatedError(BusinessRuleError):
    """The requested range produced no orders, so the subscription is useless."""

    code: str = "NO_ORDERS_CREATED"

    def __init__(self, employee_id: str, start_date: str, end_date: str):
        self.employee_id = employee_id
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"No orders could be created for employee {employee_id} between "
            f"{start_date} and {end_date}; check the working days"
        )


class NoOrdersInPeriodError(BusinessRuleError):
    code: str = "NO_ORDERS_IN_PERIOD"

    def __init__(self, employee_id: str, start_date: str, end_date: str):
        self.employee_id = employee_id
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"No active orders between {start_date} and {end_date} "
            f"for employee {employee_id}"
        )


class InvalidSubscriptionTransitionError(BusinessRuleError):
    code: str = "INVALID_SUBSCRIPTION_TRANSITION"

    def __init__(self, subscription_id: str, current_status: str, action: str):
        self.subscription_id = subscription_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} subscription {subscription_id} in status {current_status}"
        )


class NoActiveSubscriptionError(BusinessRuleError):
    code: str = "NO_ACTIVE_SUBSCRIPTION"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} has no active lunch subscription")


class GuestOrderNotAllowedError(BusinessRuleError):
    code: str = "GUEST_ORDER_NOT_ALLOWED"

    def __init__(self, order_id: str, action: str):
        self.order_id = order_id
        self.action = action
        super().__init__(f"Guest orders cannot be {action}: {order_id}")


class OrderNotFreezableError(BusinessRuleError):
    code: str = "ORDER_NOT_FREEZABLE"

    def __init__(self, order_id: str, status: str, order_date: str):
        self.order_id = order_id
        self.status = status
        self.order_date = order_date
        super().__init__(
            f"Order {order_id} ({status}, {order_date}) cannot be frozen; only "
            f"active orders for today or later can be frozen"
        )


class OrderNotUnfreezableError(BusinessRuleError):
    code: str = "ORDER_NOT_UNFREEZABLE"

    def __init__(self, order_id: str, status: str, order_date: str):
        self.order_id = order_id
        self.status = status
        self.order_date = order_date
        super().__init__(
            f"Order {order_id} ({status}, {order_date}) cannot be unfrozen; only "
            f"frozen orders for today or later can be unfrozen"
        )


class OrderNotCancellableError(BusinessRuleError):
    code: str = "ORDER_NOT_CANCELLABLE"

    def __init__(self, order_id: str, status: str, order_date: str):
        self.order_id = order_id
        self.status = status
        self.order_date = order_date
        super().__init__(
            f"Order {order_id} ({status}, {order_date}) cannot be cancelled"
        )


class FreezeLimitExceededError(BusinessRuleError):
    code: str = "FREEZE_LIMIT_EXCEEDED"

    def __init__(self, employee_id: str, used: int, limit: int, week_start: str, week_end: str):
        self.employee_id = employee_id
        self.used = used
        self.limit = limit
        self.week_start = week_start
        self.week_end = week_end
        super().__init__(
            f"Freeze limit is {limit} per week, {used} already used "
            f"({week_start}..{week_end}); try again next week"
        )


class CutoffPassedError(BusinessRuleError):
    code: str = "CUTOFF_PASSED"

    def __init__(self, order_date: str, cutoff_time: str, timezone: str):
        self.order_date = order_date
        self.cutoff_time = cutoff_time
        self.timezone = timezone
        super().__init__(
            f"Orders for today ({order_date}) can no longer be changed: "
            f"cutoff {cutoff_time} {timezone} has passed"
        )


# Immutability


class ImmutabilityError(LunchKernelError):
    """Base exception for append-only violations."""

    code: str = "IMMUTABILITY_ERROR"
    kind: str = "immutability"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    CompanyTransaction and AuditLogEntry rows are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
