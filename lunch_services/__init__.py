"""
lunch_services -- caller-facing facade of the lunch subscription system.

Owns transaction boundaries and turns kernel errors into LifecycleResult
values.  Nothing in lunch_kernel imports this package.
"""

from lunch_services.financial_operations import FinancialOperations
from lunch_services.results import LifecycleResult, LifecycleStatus
from lunch_services.subscription_service import SubscriptionService

__all__ = [
    "FinancialOperations",
    "LifecycleResult",
    "LifecycleStatus",
    "SubscriptionService",
]
