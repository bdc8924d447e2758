"""Services for the lunch kernel (write side)."""

from lunch_kernel.services.audit_sink import AuditSink, NullAuditSink, SqlAuditSink
from lunch_kernel.services.budget_ledger import BudgetLedger
from lunch_kernel.services.freeze_rate_limiter import (
    DEFAULT_MAX_FREEZES_PER_WEEK,
    FreezeRateLimiter,
)
from lunch_kernel.services.guest_orders import GuestOrders
from lunch_kernel.services.idempotency_store import (
    DEFAULT_TTL,
    IdempotencyStore,
    SqlIdempotencyStore,
)
from lunch_kernel.services.order_set import OrderSet
from lunch_kernel.services.reconciler import SubscriptionReconciler
from lunch_kernel.services.subscription_lifecycle import SubscriptionLifecycle

__all__ = [
    "AuditSink",
    "BudgetLedger",
    "DEFAULT_MAX_FREEZES_PER_WEEK",
    "DEFAULT_TTL",
    "FreezeRateLimiter",
    "GuestOrders",
    "IdempotencyStore",
    "NullAuditSink",
    "OrderSet",
    "SqlAuditSink",
    "SqlIdempotencyStore",
    "SubscriptionLifecycle",
    "SubscriptionReconciler",
]
