"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable records returned by every lunch kernel service and selector.
    Callers never receive ORM entities, so nothing outside the kernel can
    mutate a subscription, order or ledger row behind the lifecycle's back.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters invoked only from
    the service and selector layers.

Status fields hold the plain string value of the corresponding model enum,
so ``info.status == OrderStatus.FROZEN`` holds for str Enums.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from lunch_kernel.models.order import Order as OrderModel
    from lunch_kernel.models.project import Project as ProjectModel
    from lunch_kernel.models.subscription import LunchSubscription as SubscriptionModel
    from lunch_kernel.models.transaction import CompanyTransaction as TransactionModel


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


@dataclass(frozen=True)
class SubscriptionInfo:
    """Snapshot of a lunch subscription."""

    id: UUID
    employee_id: UUID
    project_id: UUID
    combo_type: str
    status: str
    is_active: bool
    start_date: date
    end_date: date
    original_end_date: date
    total_days: int
    total_price: Decimal
    schedule_type: str
    custom_days: tuple[date, ...]
    frozen_days_count: int
    paused_at: datetime | None
    paused_days_count: int

    @classmethod
    def from_model(cls, model: SubscriptionModel) -> SubscriptionInfo:
        return cls(
            id=model.id,
            employee_id=model.employee_id,
            project_id=model.project_id,
            combo_type=model.combo_type,
            status=_value(model.status),
            is_active=model.is_active,
            start_date=model.start_date,
            end_date=model.end_date,
            original_end_date=model.original_end_date,
            total_days=model.total_days,
            total_price=Decimal(model.total_price),
            schedule_type=model.schedule_type,
            custom_days=tuple(date.fromisoformat(d) for d in (model.custom_days or [])),
            frozen_days_count=model.frozen_days_count,
            paused_at=model.paused_at,
            paused_days_count=model.paused_days_count,
        )


@dataclass(frozen=True)
class OrderInfo:
    """Snapshot of one order."""

    id: UUID
    employee_id: UUID | None
    project_id: UUID
    subscription_id: UUID | None
    combo_type: str
    price: Decimal
    currency_code: str
    status: str
    order_date: date
    is_guest_order: bool
    guest_name: str | None
    frozen_at: datetime | None
    frozen_reason: str | None
    replacement_order_id: UUID | None

    @classmethod
    def from_model(cls, model: OrderModel) -> OrderInfo:
        return cls(
            id=model.id,
            employee_id=model.employee_id,
            project_id=model.project_id,
            subscription_id=model.subscription_id,
            combo_type=model.combo_type,
            price=Decimal(model.price),
            currency_code=model.currency_code,
            status=_value(model.status),
            order_date=model.order_date,
            is_guest_order=model.is_guest_order,
            guest_name=model.guest_name,
            frozen_at=model.frozen_at,
            frozen_reason=model.frozen_reason,
            replacement_order_id=model.replacement_order_id,
        )


@dataclass(frozen=True)
class TransactionInfo:
    """Snapshot of one ledger row.  amount is signed (debits negative)."""

    id: UUID
    project_id: UUID
    type: str
    amount: Decimal
    balance_after: Decimal
    currency_code: str
    description: str
    order_id: UUID | None
    subscription_id: UUID | None
    employee_id: UUID | None
    created_at: datetime

    @classmethod
    def from_model(cls, model: TransactionModel) -> TransactionInfo:
        return cls(
            id=model.id,
            project_id=model.project_id,
            type=_value(model.type),
            amount=Decimal(model.amount),
            balance_after=Decimal(model.balance_after),
            currency_code=model.currency_code,
            description=model.description,
            order_id=model.order_id,
            subscription_id=model.subscription_id,
            employee_id=model.employee_id,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class BudgetInfo:
    """A project's balance, overdraft limit and spendable headroom."""

    project_id: UUID
    balance: Decimal
    overdraft_limit: Decimal
    available: Decimal
    currency_code: str

    @classmethod
    def from_model(cls, model: ProjectModel) -> BudgetInfo:
        balance = Decimal(model.budget)
        overdraft = Decimal(model.overdraft_limit)
        return cls(
            project_id=model.id,
            balance=balance,
            overdraft_limit=overdraft,
            available=balance + overdraft,
            currency_code=model.currency_code,
        )


@dataclass(frozen=True)
class LedgerPosting:
    """Result of one BudgetLedger debit or credit."""

    new_balance: Decimal
    transaction: TransactionInfo


@dataclass(frozen=True)
class ReconciledTotals:
    """Summary fields derived from a subscription's order set."""

    total_days: int
    total_price: Decimal
    remaining_days: int


@dataclass(frozen=True)
class FreezeInfo:
    """Weekly freeze allowance for one employee."""

    employee_id: UUID
    used: int
    limit: int
    remaining: int
    week_start: date
    week_end: date
    frozen_orders: tuple[OrderInfo, ...] = ()

    @property
    def can_freeze(self) -> bool:
        return self.remaining > 0


@dataclass(frozen=True)
class PricePreview:
    """Effect of switching a subscription to another combo."""

    subscription_id: UUID
    current_combo: str
    new_combo: str
    current_price: Decimal
    new_price: Decimal
    price_difference: Decimal
    affected_orders: int
    total_impact: Decimal


@dataclass(frozen=True)
class ComboChangeOutcome:
    subscription: SubscriptionInfo
    updated_orders: int
    price_delta: Decimal
    transaction: TransactionInfo | None = None


@dataclass(frozen=True)
class FreezeOutcome:
    """A frozen order, the replacement appended for it, and the new window."""

    frozen_order: OrderInfo
    replacement_order: OrderInfo
    subscription: SubscriptionInfo
    remaining_freezes: int


@dataclass(frozen=True)
class UnfreezeOutcome:
    order: OrderInfo
    subscription: SubscriptionInfo
    removed_replacement_id: UUID | None


@dataclass(frozen=True)
class FreezePeriodOutcome:
    """
    Result of freezing a date range.

    Freezing stops once the weekly cap is reached; ``skipped_orders`` are the
    Active orders in the range that were left untouched.
    """

    frozen: tuple[FreezeOutcome, ...]
    skipped_orders: tuple[OrderInfo, ...]
    subscription: SubscriptionInfo

    @property
    def limit_reached(self) -> bool:
        return bool(self.skipped_orders)


@dataclass(frozen=True)
class DeactivationOutcome:
    subscription: SubscriptionInfo
    cancelled_count: int
    refund_total: Decimal
    transaction: TransactionInfo | None = None


@dataclass(frozen=True)
class BulkCreateFailure:
    employee_id: UUID
    error_code: str
    message: str


@dataclass(frozen=True)
class BulkCreateOutcome:
    created: tuple[SubscriptionInfo, ...] = ()
    failures: tuple[BulkCreateFailure, ...] = field(default_factory=tuple)

    @property
    def success_count(self) -> int:
        return len(self.created)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class GuestOrderOutcome:
    """Guest orders placed in one request and the ledger rows that paid for them."""

    orders: tuple[OrderInfo, ...]
    transactions: tuple[TransactionInfo, ...]
    total_cost: Decimal
