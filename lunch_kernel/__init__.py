"""
Lunch Kernel - subscription lifecycle engine

A per-employee lunch subscription core with:
- Daily order generation against employee working days
- Atomic project budget debits and credits with overdraft
- Rate-limited freeze / unfreeze with replacement orders
- Pause / resume and soft deactivation with refunds
- Derived totals reconciled from the order set
"""

__version__ = "0.1.0"
