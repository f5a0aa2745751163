"""
Calendar-aware billing date arithmetic.

Month addition clamps to the last day of shorter months, so a subscription
started on the 31st bills on Feb 28 (Feb 29 in leap years) and returns to the
31st in March when the original billing day is carried along.
"""
import calendar
import datetime
import math
from typing import Optional

from django.conf import settings
from django.utils import timezone


SECONDS_PER_DAY = 24 * 60 * 60


def _clamp_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def add_months(value, months: int):
    """
    Add calendar months to a date or datetime.

    Jan 31 + 1 month → Feb 28 (Feb 29 in a leap year). Time of day and
    tzinfo are preserved.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return value.replace(year=year, month=month, day=_clamp_day(year, month, value.day))


def get_billing_day_of_month(subscription_start) -> int:
    return subscription_start.day


def calculate_next_billing_date(current_date=None, billing_day: Optional[int] = None):
    """
    Next billing date one month after ``current_date``.

    ``billing_day`` is the day of month the subscription was started on. It
    lets a chain of billing dates recover from a short month:
    Dec 31 → Jan 31 → Feb 28 → Mar 31.
    """
    current_date = current_date or timezone.now()
    next_date = add_months(current_date, 1)
    if billing_day is not None and billing_day != next_date.day:
        next_date = next_date.replace(day=_clamp_day(next_date.year, next_date.month, billing_day))
    return next_date


def calculate_anniversary_date(subscription_start, years: int = 1):
    return add_months(subscription_start, years * 12)


def get_days_until_billing(billing_date, now=None) -> int:
    """Whole days left until ``billing_date`` (rounded up, never negative)"""
    now = now or timezone.now()
    seconds = (billing_date - now).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


def is_billing_date_past(billing_date, now=None) -> bool:
    now = now or timezone.now()
    return now > billing_date


def get_billing_period(subscription_ends_at, now=None, cancelled_at=None):
    """
    Current billing period ending at ``subscription_ends_at``.

    Returns ``None`` when there is no end date. The period is assumed to be
    ``BILLING_PERIOD_DAYS`` long.
    """
    if not subscription_ends_at:
        return None

    now = now or timezone.now()
    start = subscription_ends_at - datetime.timedelta(days=settings.BILLING_PERIOD_DAYS)
    return {
        'start': start,
        'end': subscription_ends_at,
        'days_remaining': get_days_until_billing(subscription_ends_at, now),
        'is_active': now < subscription_ends_at,
        'is_cancelled': cancelled_at is not None,
    }
