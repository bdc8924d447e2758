"""Selectors for the lunch kernel (read side)."""

from lunch_kernel.selectors.subscription_selector import SubscriptionSelector
from lunch_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "SubscriptionSelector",
    "TransactionSelector",
]
