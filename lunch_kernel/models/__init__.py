"""ORM models for the lunch kernel."""

from lunch_kernel.models.audit_log import AuditLogEntry
from lunch_kernel.models.employee import Employee, ServiceType
from lunch_kernel.models.idempotency import IdempotencyRecord
from lunch_kernel.models.order import TERMINAL_ORDER_STATUSES, Order, OrderStatus
from lunch_kernel.models.project import Project
from lunch_kernel.models.subscription import LunchSubscription, SubscriptionStatus
from lunch_kernel.models.transaction import CompanyTransaction, TransactionType

__all__ = [
    "AuditLogEntry",
    "CompanyTransaction",
    "Employee",
    "IdempotencyRecord",
    "LunchSubscription",
    "Order",
    "OrderStatus",
    "Project",
    "ServiceType",
    "SubscriptionStatus",
    "TERMINAL_ORDER_STATUSES",
    "TransactionType",
]
