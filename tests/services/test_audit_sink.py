"""Tests for the audit sinks."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from lunch_kernel.models import AuditLogEntry
from lunch_kernel.services.audit_sink import AuditSink, NullAuditSink, SqlAuditSink


class _BrokenSession:
    def begin_nested(self):
        raise SQLAlchemyError("disk full")


class TestSqlAuditSink:
    def test_record_serializes_values(self, session, deterministic_clock):
        sink = SqlAuditSink(session, deterministic_clock)
        entity_id = uuid4()
        actor_id = uuid4()

        sink.record(
            "subscription.paused", "LunchSubscription", entity_id, actor_id,
            old_value={"end_date": date(2026, 1, 16)},
            new_value={"refund": Decimal("25.00")},
        )

        entry = session.execute(
            select(AuditLogEntry).where(AuditLogEntry.entity_id == str(entity_id))
        ).scalar_one()
        assert entry.action == "subscription.paused"
        assert entry.actor_id == actor_id
        assert entry.old_value == {"end_date": "2026-01-16"}
        assert entry.new_value == {"refund": "25.00"}
        assert entry.created_at is not None

    def test_failed_insert_is_logged_not_raised(self, deterministic_clock, captured_logs):
        sink = SqlAuditSink(_BrokenSession(), deterministic_clock)

        sink.record("order.frozen", "Order", uuid4())

        assert any(r["message"] == "audit_record_failed" for r in captured_logs())

    def test_lifecycle_records_transitions(self, lifecycle, employee, subscribed, session):
        lifecycle.pause(employee.id)
        lifecycle.resume(employee.id)
        lifecycle.deactivate(employee.id)

        actions = session.execute(
            select(AuditLogEntry.action)
            .where(AuditLogEntry.entity_id == str(subscribed.id))
            .order_by(AuditLogEntry.created_at)
        ).scalars().all()
        assert set(actions) == {
            "subscription.created",
            "subscription.paused",
            "subscription.resumed",
            "subscription.deactivated",
        }


class TestNullAuditSink:
    def test_satisfies_protocol(self):
        assert isinstance(NullAuditSink(), AuditSink)

    def test_record_is_a_no_op(self):
        assert NullAuditSink().record("anything", "Order") is None
