"""Unit tests for BillingCycleCalculator.

Test categories:
- Period boundaries (start, end, grace)
- Local-day rollover across the KST date line
- Renewal schedule window and jitter
"""

import datetime as dt
import random

import pytest

from magazine_shared.services.billing_cycle import (
    LOCAL_TZ,
    SCHEDULE_WINDOW_MINUTES,
    SUBSCRIPTION_DAYS,
    BillingCycleCalculator,
)


# === Test Configuration ===

# 2026-01-15 12:00 UTC is 21:00 KST the same day
CHARGED_AT = dt.datetime(2026, 1, 15, 12, 0, tzinfo=dt.UTC)
# 2026-01-15 16:00 UTC is already 01:00 KST on the 16th
CHARGED_AT_LATE = dt.datetime(2026, 1, 15, 16, 0, tzinfo=dt.UTC)


@pytest.fixture
def calculator() -> BillingCycleCalculator:
    return BillingCycleCalculator(rng=random.Random(42))


class TestPeriodBoundaries:
    """start_at, end_at and end_grace_at."""

    def test_start_is_charge_time(self, calculator: BillingCycleCalculator):
        cycle = calculator.compute(CHARGED_AT)
        assert cycle.start_at == CHARGED_AT

    def test_end_is_thirty_days_later(self, calculator: BillingCycleCalculator):
        cycle = calculator.compute(CHARGED_AT)
        assert cycle.end_at == CHARGED_AT + dt.timedelta(days=SUBSCRIPTION_DAYS)

    def test_grace_ends_at_close_of_following_local_day(
        self, calculator: BillingCycleCalculator
    ):
        """end_at is 2026-02-14 21:00 KST, so grace runs to 2026-02-15 23:59:59.999 KST."""
        cycle = calculator.compute(CHARGED_AT)

        expected = dt.datetime(2026, 2, 15, 14, 59, 59, 999000, tzinfo=dt.UTC)
        assert cycle.end_grace_at == expected

    def test_grace_follows_local_date_not_utc_date(
        self, calculator: BillingCycleCalculator
    ):
        """end_at falls on 2026-02-15 in KST while still 2026-02-14 in UTC."""
        cycle = calculator.compute(CHARGED_AT_LATE)

        assert cycle.end_at.astimezone(LOCAL_TZ).date() == dt.date(2026, 2, 15)
        expected = dt.datetime(2026, 2, 16, 14, 59, 59, 999000, tzinfo=dt.UTC)
        assert cycle.end_grace_at == expected

    def test_ordering_invariant(self, calculator: BillingCycleCalculator):
        for hour in range(24):
            cycle = calculator.compute(CHARGED_AT.replace(hour=hour))
            assert cycle.start_at < cycle.end_at < cycle.end_grace_at
            assert cycle.end_at < cycle.next_schedule_at <= cycle.end_grace_at

    def test_naive_input_is_treated_as_utc(self, calculator: BillingCycleCalculator):
        cycle = calculator.compute(CHARGED_AT.replace(tzinfo=None))
        assert cycle.start_at == CHARGED_AT

    def test_results_are_utc(self, calculator: BillingCycleCalculator):
        kst_input = CHARGED_AT.astimezone(LOCAL_TZ)
        cycle = calculator.compute(kst_input)

        assert cycle.start_at == CHARGED_AT
        assert cycle.start_at.utcoffset() == dt.timedelta(0)
        assert cycle.end_grace_at.utcoffset() == dt.timedelta(0)


class TestRenewalSchedule:
    """next_schedule_at lands between 10:00 and 11:00 KST on the renewal day."""

    def test_schedule_within_window(self):
        for seed in range(50):
            cycle = BillingCycleCalculator(rng=random.Random(seed)).compute(CHARGED_AT)
            local = cycle.next_schedule_at.astimezone(LOCAL_TZ)

            assert local.date() == dt.date(2026, 2, 15)
            assert local.hour == 10
            assert 0 <= local.minute < SCHEDULE_WINDOW_MINUTES
            assert local.second == 0

    def test_seeded_rng_is_reproducible(self):
        first = BillingCycleCalculator(rng=random.Random(7)).compute(CHARGED_AT)
        second = BillingCycleCalculator(rng=random.Random(7)).compute(CHARGED_AT)
        assert first.next_schedule_at == second.next_schedule_at

    def test_jitter_comes_from_rng(self):
        expected_minutes = random.Random(7).randrange(SCHEDULE_WINDOW_MINUTES)

        cycle = BillingCycleCalculator(rng=random.Random(7)).compute(CHARGED_AT)

        local = cycle.next_schedule_at.astimezone(LOCAL_TZ)
        assert local.minute == expected_minutes

    def test_jitter_only_affects_schedule(self):
        first = BillingCycleCalculator(rng=random.Random(1)).compute(CHARGED_AT)
        second = BillingCycleCalculator(rng=random.Random(2)).compute(CHARGED_AT)

        assert first.start_at == second.start_at
        assert first.end_at == second.end_at
        assert first.end_grace_at == second.end_grace_at
