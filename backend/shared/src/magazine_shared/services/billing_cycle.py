"""Subscription period arithmetic.

A monthly subscription runs 30 days from the charge. Access is kept until
the end of the following local day (KST, UTC+9), and the next charge is
scheduled for a random minute between 10:00 and 11:00 local time on that
same day so recurring charges do not all fire at once.
"""

import datetime as dt
import random

from magazine_shared.models import SubscriptionCycle

SUBSCRIPTION_DAYS = 30
LOCAL_TZ = dt.timezone(dt.timedelta(hours=9), name="KST")
SCHEDULE_WINDOW_START = dt.time(10, 0)
SCHEDULE_WINDOW_MINUTES = 60


class BillingCycleCalculator:
    """Computes period boundaries from a charge timestamp.

    The random source only affects ``next_schedule_at``. Pass a seeded
    ``random.Random`` to make that value reproducible in tests.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def compute(self, charged_at: dt.datetime) -> SubscriptionCycle:
        """Compute the subscription cycle for a charge.

        Args:
            charged_at: Charge instant (timezone-aware; naive values are taken as UTC)

        Returns:
            SubscriptionCycle with UTC instants
        """
        if charged_at.tzinfo is None:
            charged_at = charged_at.replace(tzinfo=dt.UTC)
        start_at = charged_at.astimezone(dt.UTC)
        end_at = start_at + dt.timedelta(days=SUBSCRIPTION_DAYS)

        # Local calendar day after the nominal end
        renewal_day = end_at.astimezone(LOCAL_TZ).date() + dt.timedelta(days=1)

        end_grace_at = dt.datetime.combine(
            renewal_day, dt.time(23, 59, 59, 999000), tzinfo=LOCAL_TZ
        ).astimezone(dt.UTC)

        jitter = dt.timedelta(minutes=self._rng.randrange(SCHEDULE_WINDOW_MINUTES))
        next_schedule_at = (
            dt.datetime.combine(renewal_day, SCHEDULE_WINDOW_START, tzinfo=LOCAL_TZ)
            + jitter
        ).astimezone(dt.UTC)

        return SubscriptionCycle(
            start_at=start_at,
            end_at=end_at,
            end_grace_at=end_grace_at,
            next_schedule_at=next_schedule_at,
        )
