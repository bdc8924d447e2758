"""
Tests for ComboPricingTable, CutoffPolicy, ScheduleType and the clocks.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from lunch_kernel.domain.clock import DeterministicClock, SystemClock, ensure_utc, local_date
from lunch_kernel.domain.cutoff import CutoffPolicy, parse_cutoff_time
from lunch_kernel.domain.pricing import ComboPricingTable
from lunch_kernel.domain.schedule import ScheduleType
from lunch_kernel.exceptions import UnknownComboError

TZ = "Asia/Dushanbe"  # UTC+5


class TestComboPricingTable:
    def test_price_lookup(self, pricing):
        assert pricing.price_of("Combo25") == Decimal("25.00")
        assert "Combo35" in pricing
        assert set(pricing.combos) == {"Combo25", "Combo35"}

    def test_unknown_combo_is_rejected(self, pricing):
        with pytest.raises(UnknownComboError) as exc_info:
            pricing.price_of("Combo99")
        assert exc_info.value.combo_type == "Combo99"
        assert exc_info.value.code == "UNKNOWN_COMBO"

    def test_non_positive_price_rejected(self):
        with pytest.raises(ValueError):
            ComboPricingTable({"Free": "0"})

    def test_empty_table_rejected(self):
        with pytest.raises(ValueError):
            ComboPricingTable({})

    def test_table_is_read_only(self, pricing):
        prices = pricing.as_dict()
        prices["Combo25"] = Decimal("1")
        assert pricing.price_of("Combo25") == Decimal("25.00")


class TestCutoffPolicy:
    policy = CutoffPolicy(time(10, 30), TZ)

    def test_before_cutoff_today_is_modifiable(self):
        now = datetime(2026, 1, 5, 5, 29, tzinfo=timezone.utc)  # 10:29 local
        assert not self.policy.is_cutoff_passed(now)
        assert self.policy.first_modifiable_date(now) == date(2026, 1, 5)
        assert not self.policy.is_locked(date(2026, 1, 5), now)

    def test_at_cutoff_today_is_locked(self):
        now = datetime(2026, 1, 5, 5, 30, tzinfo=timezone.utc)  # 10:30 local
        assert self.policy.is_cutoff_passed(now)
        assert self.policy.first_modifiable_date(now) == date(2026, 1, 6)
        assert self.policy.is_locked(date(2026, 1, 5), now)
        assert not self.policy.is_locked(date(2026, 1, 6), now)

    def test_local_date_differs_from_utc_date(self):
        now = datetime(2026, 1, 4, 20, 0, tzinfo=timezone.utc)  # 01:00 on the 5th locally
        assert self.policy.today(now) == date(2026, 1, 5)

    def test_parse_cutoff_time(self):
        assert parse_cutoff_time("10:30") == time(10, 30)
        assert parse_cutoff_time("9") == time(9, 0)
        assert self.policy.cutoff_label == "10:30"


class TestScheduleType:
    def test_legacy_every_other_day_normalizes(self):
        assert ScheduleType.normalize("every_other_day") is ScheduleType.EVERY_DAY

    def test_none_is_every_day(self):
        assert ScheduleType.normalize(None) is ScheduleType.EVERY_DAY

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            ScheduleType.normalize("weekly")


class TestClock:
    def test_deterministic_clock_local_setters(self):
        clock = DeterministicClock()
        clock.set_local(date(2026, 1, 10), 9, 0, TZ)
        assert clock.today(TZ) == date(2026, 1, 10)
        assert clock.now_utc() == datetime(2026, 1, 10, 4, 0, tzinfo=timezone.utc)

    def test_advance_days(self):
        clock = DeterministicClock()
        start = clock.today(TZ)
        clock.advance_days(3)
        assert (clock.today(TZ) - start).days == 3

    def test_tick(self):
        clock = DeterministicClock()
        before = clock.now()
        assert (clock.tick() - before).total_seconds() == 1

    def test_system_clock_is_utc(self):
        assert SystemClock().now_utc().tzinfo is not None

    def test_naive_values_are_utc(self):
        naive = datetime(2026, 1, 5, 3, 0)
        assert ensure_utc(naive) == datetime(2026, 1, 5, 3, 0, tzinfo=timezone.utc)
        assert local_date(naive, TZ) == date(2026, 1, 5)
