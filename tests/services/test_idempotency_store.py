"""Tests for SqlIdempotencyStore."""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from lunch_kernel.models import IdempotencyRecord
from lunch_kernel.services.idempotency_store import DEFAULT_TTL, SqlIdempotencyStore


@pytest.fixture
def store(session, deterministic_clock):
    return SqlIdempotencyStore(session, deterministic_clock)


class TestExecuteOnce:
    def test_second_call_replays_stored_result(self, store):
        calls = []

        def _op():
            calls.append(1)
            return {"amount": Decimal("25.00")}

        first = store.execute_once("fin:abc", DEFAULT_TTL, _op)
        second = store.execute_once("fin:abc", DEFAULT_TTL, _op)

        assert first == {"amount": Decimal("25.00")}
        assert second == {"amount": "25.00"}
        assert len(calls) == 1

    def test_expired_record_runs_again(self, store, deterministic_clock, session):
        calls = []
        store.execute_once("fin:abc", timedelta(minutes=5), lambda: calls.append(1) or "x")
        deterministic_clock.advance(6 * 60)
        store.execute_once("fin:abc", timedelta(minutes=5), lambda: calls.append(1) or "y")

        assert len(calls) == 2
        assert session.execute(select(func.count(IdempotencyRecord.id))).scalar_one() == 1

    def test_failure_stores_nothing(self, store, session):
        def _boom():
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            store.execute_once("fin:boom", DEFAULT_TTL, _boom)

        assert session.execute(select(func.count(IdempotencyRecord.id))).scalar_one() == 0

    def test_purge_expired(self, store, deterministic_clock):
        store.execute_once("fin:a", timedelta(minutes=1), lambda: 1)
        store.execute_once("fin:b", timedelta(hours=1), lambda: 2)
        deterministic_clock.advance(120)

        assert store.purge_expired() == 1
        assert store.execute_once("fin:b", timedelta(hours=1), lambda: 3) == 2
