"""Utility functions for the lunch kernel."""

from lunch_kernel.utils.idempotency import financial_operation_key
from lunch_kernel.utils.serialization import json_safe

__all__ = ["financial_operation_key", "json_safe"]
