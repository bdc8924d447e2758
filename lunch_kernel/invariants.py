"""
Kernel Invariants Contract.

These rules hold no matter what configuration is loaded.  Configuration may
change prices, the weekly freeze cap or a project's cutoff time, never
whether the rules below apply.

This module only declares them.  Enforcement lives in BudgetLedger,
SubscriptionLifecycle, SubscriptionReconciler, FreezeRateLimiter and the
immutability listeners.
"""

from enum import Enum, unique


@unique
class SubscriptionInvariant(str, Enum):
    """Non-configurable guarantees of the lunch kernel."""

    OVERDRAFT_FLOOR = "overdraft_floor"
    """A project's budget never drops below -overdraft_limit.  Enforced by
    the conditional UPDATE in BudgetLedger.debit."""

    LEDGER_TRAIL = "ledger_trail"
    """Every budget change appends one CompanyTransaction; the sum of a
    project's amounts equals its budget movement.  Enforced by
    BudgetLedger."""

    LEDGER_IMMUTABILITY = "ledger_immutability"
    """Transaction and audit rows are never updated or deleted.  Enforced
    by lunch_kernel.db.immutability."""

    DERIVED_TOTALS = "derived_totals"
    """TotalDays / TotalPrice equal the counted orders inside
    [start_date, end_date].  Enforced by SubscriptionReconciler after every
    transition."""

    FREEZE_CAP = "freeze_cap"
    """At most max_per_week freezes per employee per ISO week of the freeze
    action.  Enforced by FreezeRateLimiter."""

    SINGLE_SUBSCRIPTION = "single_subscription"
    """One subscription row per employee.  Enforced by the
    uq_subscription_employee constraint and the AlreadySubscribed check."""

    EMPLOYEE_SERIALIZATION = "employee_serialization"
    """Transitions on one employee's subscription are serialized by a
    SELECT ... FOR UPDATE on the employee row."""


ALL_SUBSCRIPTION_INVARIANTS: frozenset[SubscriptionInvariant] = frozenset(SubscriptionInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "lunch_services",
    "lunch_config",
)
