"""
Tests for calendar-aware billing date arithmetic.
"""
import datetime

from django.test import SimpleTestCase, override_settings

from core.services.billing_dates import (
    add_months,
    calculate_anniversary_date,
    calculate_next_billing_date,
    get_billing_period,
    get_days_until_billing,
    is_billing_date_past,
)

UTC = datetime.timezone.utc


def at(year, month, day, hour=12):
    return datetime.datetime(year, month, day, hour, tzinfo=UTC)


class BillingDatesTestCase(SimpleTestCase):

    # ========== MONTH ARITHMETIC ==========

    def test_add_month_clamps_to_short_month(self):
        self.assertEqual(add_months(at(2025, 1, 31), 1), at(2025, 2, 28))

    def test_add_month_clamps_to_leap_day(self):
        self.assertEqual(add_months(at(2024, 1, 31), 1), at(2024, 2, 29))

    def test_add_month_rolls_over_year(self):
        self.assertEqual(add_months(at(2025, 12, 15), 1), at(2026, 1, 15))

    def test_add_month_preserves_time_of_day(self):
        result = add_months(datetime.datetime(2025, 3, 10, 8, 45, tzinfo=UTC), 2)
        self.assertEqual((result.hour, result.minute, result.tzinfo), (8, 45, UTC))

    def test_next_billing_date_recovers_original_day(self):
        """Dec 31 → Jan 31 → Feb 28 → Mar 31"""
        billing_day = 31
        jan = calculate_next_billing_date(at(2024, 12, 31), billing_day)
        feb = calculate_next_billing_date(jan, billing_day)
        mar = calculate_next_billing_date(feb, billing_day)
        self.assertEqual([jan, feb, mar], [at(2025, 1, 31), at(2025, 2, 28), at(2025, 3, 31)])

    def test_next_billing_date_without_billing_day(self):
        self.assertEqual(calculate_next_billing_date(at(2025, 2, 28)), at(2025, 3, 28))

    def test_anniversary_of_leap_day(self):
        self.assertEqual(calculate_anniversary_date(at(2024, 2, 29)), at(2025, 2, 28))

    # ========== PERIODS ==========

    def test_days_until_billing_rounds_up(self):
        now = at(2025, 5, 1)
        self.assertEqual(get_days_until_billing(now + datetime.timedelta(hours=25), now), 2)

    def test_days_until_billing_never_negative(self):
        now = at(2025, 5, 10)
        self.assertEqual(get_days_until_billing(at(2025, 5, 1), now), 0)

    def test_is_billing_date_past(self):
        now = at(2025, 5, 10)
        self.assertTrue(is_billing_date_past(at(2025, 5, 9), now))
        self.assertFalse(is_billing_date_past(at(2025, 5, 11), now))

    @override_settings(BILLING_PERIOD_DAYS=30)
    def test_billing_period(self):
        now = at(2025, 5, 10)
        period = get_billing_period(at(2025, 5, 20), now, cancelled_at=now)
        self.assertEqual(period['start'], at(2025, 4, 20))
        self.assertEqual(period['days_remaining'], 10)
        self.assertTrue(period['is_active'])
        self.assertTrue(period['is_cancelled'])

    def test_billing_period_without_end(self):
        self.assertIsNone(get_billing_period(None))
