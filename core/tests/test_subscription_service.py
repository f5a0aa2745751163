"""
Tests for subscription tiers, trials and status transitions.
"""
import datetime
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from core.models import AdminLog, User
from core.services import subscription
from core.services.exceptions import ValidationFailed


class SubscriptionServiceTestCase(TestCase):

    def setUp(self):
        self.now = timezone.now()
        self.admin = User.objects.create_user(email='admin@test.com', password='x', is_admin=True)

    def make_user(self, **kwargs):
        return User.objects.create_user(email=kwargs.pop('email', 'user@test.com'), password='x', **kwargs)

    # ========== EFFECTIVE STATUS ==========

    def test_ended_trial_is_effectively_free(self):
        user = self.make_user(subscription_status='trial', trial_ends_at=self.now - datetime.timedelta(minutes=1))
        self.assertEqual(subscription.effective_status(user, self.now), 'free')

    def test_running_trial_stays_trial(self):
        user = self.make_user(subscription_status='trial', trial_ends_at=self.now + datetime.timedelta(hours=1))
        self.assertEqual(subscription.effective_status(user, self.now), 'trial')

    def test_ended_premium_is_effectively_free(self):
        user = self.make_user(subscription_status='premium', subscription_ends_at=self.now)
        self.assertEqual(subscription.effective_status(user, self.now), 'free')
        self.assertFalse(subscription.has_paid_access(user, self.now))

    def test_open_ended_enterprise_keeps_access(self):
        user = self.make_user(subscription_status='enterprise')
        self.assertTrue(subscription.has_paid_access(user, self.now))

    def test_tier_features(self):
        self.assertEqual(
            subscription.get_tier_features('trial'),
            {'can_analyze': True, 'can_view_saved': False, 'can_export_pdf': False}
        )
        self.assertFalse(subscription.get_tier_features('unknown')['can_analyze'])

    # ========== REFRESH ==========

    def test_refresh_persists_ended_trial(self):
        user = self.make_user(subscription_status='trial', trial_ends_at=self.now - datetime.timedelta(hours=1))
        self.assertTrue(subscription.refresh_subscription_status(user, self.now))
        user.refresh_from_db()
        self.assertEqual(user.subscription_status, 'free')
        log = AdminLog.objects.get(action='subscription_auto_expired')
        self.assertEqual(log.details['previousStatus'], 'trial')

    def test_refresh_leaves_stripe_managed_premium_alone(self):
        user = self.make_user(
            subscription_status='premium',
            subscription_ends_at=self.now - datetime.timedelta(days=1),
            stripe_subscription_id='sub_123',
        )
        self.assertFalse(subscription.refresh_subscription_status(user, self.now))
        user.refresh_from_db()
        self.assertEqual(user.subscription_status, 'premium')

    # ========== TRIAL ==========

    def test_start_trial_grants_72_hours(self):
        user = self.make_user()
        subscription.start_trial(user, self.now)
        user.refresh_from_db()
        self.assertEqual(user.subscription_status, 'trial')
        self.assertTrue(user.has_used_trial)
        self.assertEqual(user.trial_ends_at, self.now + datetime.timedelta(hours=72))
        self.assertEqual(subscription.trial_hours_remaining(user, self.now), 72)

    def test_trial_hours_remaining_rounds_down(self):
        user = self.make_user(
            subscription_status='trial',
            trial_ends_at=self.now + datetime.timedelta(hours=5, minutes=59),
        )
        self.assertEqual(subscription.trial_hours_remaining(user, self.now), 5)

    def test_trial_is_one_time(self):
        user = self.make_user(has_used_trial=True)
        with self.assertRaisesMessage(ValidationFailed, "already used your free trial"):
            subscription.start_trial(user, self.now)

    def test_trial_refused_for_premium(self):
        user = self.make_user(subscription_status='premium')
        with self.assertRaises(ValidationFailed) as ctx:
            subscription.start_trial(user, self.now)
        self.assertEqual(ctx.exception.extra['currentStatus'], 'premium')

    # ========== UPGRADE / CANCEL ==========

    def test_upgrade_to_premium_for_one_month(self):
        user = self.make_user()
        subscription.upgrade(user, 'premium', datetime.datetime(2025, 1, 31, tzinfo=datetime.timezone.utc))
        user.refresh_from_db()
        self.assertEqual(user.subscription_status, 'premium')
        self.assertEqual(user.subscription_source, 'stripe')
        self.assertEqual(user.subscription_ends_at.date(), datetime.date(2025, 2, 28))

    def test_upgrade_rejects_unknown_plan(self):
        with self.assertRaises(ValidationFailed):
            subscription.upgrade(self.make_user(), 'platinum', self.now)

    def test_upgrade_rejects_existing_premium(self):
        with self.assertRaisesMessage(ValidationFailed, "Already subscribed") as ctx:
            subscription.upgrade(self.make_user(subscription_status='premium'), 'premium', self.now)
        self.assertEqual(ctx.exception.as_payload(), {
            'error': 'Already subscribed',
            'message': 'You already have a premium subscription!',
            'currentStatus': 'premium',
        })

    def test_lapsed_stripe_premium_can_upgrade_again(self):
        user = self.make_user(
            subscription_status='premium',
            subscription_ends_at=self.now - datetime.timedelta(days=2),
            stripe_subscription_id='sub_1',
        )
        payload = subscription.subscription_status_payload(user, self.now)
        self.assertTrue(payload['subscription']['canUpgrade'])

        subscription.upgrade(user, 'premium', self.now)

        user.refresh_from_db()
        self.assertGreater(user.subscription_ends_at, self.now)
        self.assertTrue(subscription.has_paid_access(user, self.now))

    def test_cancel_requires_stripe_subscription(self):
        with self.assertRaisesMessage(ValidationFailed, "No active subscription"):
            subscription.cancel(self.make_user(subscription_status='premium'), self.now)

    @mock.patch('core.services.stripe_billing.cancel_at_period_end')
    def test_cancel_keeps_access_until_period_end(self, cancel_at_period_end):
        period_end = self.now + datetime.timedelta(days=12)
        cancel_at_period_end.return_value = {'current_period_end': int(period_end.timestamp())}
        user = self.make_user(subscription_status='premium', stripe_subscription_id='sub_123')

        subscription.cancel(user, self.now)

        cancel_at_period_end.assert_called_once_with('sub_123')
        user.refresh_from_db()
        self.assertEqual(user.subscription_status, 'premium')
        self.assertEqual(user.subscription_cancelled_at, self.now)
        self.assertEqual(int(user.subscription_ends_at.timestamp()), int(period_end.timestamp()))
        self.assertTrue(AdminLog.objects.filter(action='subscription_cancelled').exists())

    @mock.patch('core.services.stripe_billing.cancel_at_period_end')
    def test_cancel_twice_is_refused(self, cancel_at_period_end):
        user = self.make_user(
            subscription_status='premium',
            stripe_subscription_id='sub_123',
            subscription_cancelled_at=self.now,
        )
        with self.assertRaisesMessage(ValidationFailed, "already cancelled"):
            subscription.cancel(user, self.now)
        cancel_at_period_end.assert_not_called()

    # ========== ADMIN OVERRIDE ==========

    def test_admin_grants_premium_for_custom_duration(self):
        user = self.make_user()
        subscription.admin_set_subscription(user, 'premium', 10, self.admin, self.now)
        user.refresh_from_db()
        self.assertEqual(user.subscription_source, 'manual')
        self.assertEqual(user.subscription_ends_at, self.now + datetime.timedelta(days=10))
        log = AdminLog.objects.get(action='subscription_updated')
        self.assertEqual(log.admin_email, 'admin@test.com')
        self.assertEqual(log.target_user_id, user.id)

    def test_admin_unlimited_premium_lasts_a_century(self):
        user = self.make_user()
        subscription.admin_set_subscription(user, 'enterprise', 9999, self.admin, self.now)
        user.refresh_from_db()
        self.assertEqual(user.subscription_ends_at.year, self.now.year + 100)

    def test_admin_downgrade_clears_dates(self):
        user = self.make_user(subscription_status='trial', trial_ends_at=self.now + datetime.timedelta(hours=3))
        subscription.admin_set_subscription(user, 'free', admin=self.admin, now=self.now)
        user.refresh_from_db()
        self.assertIsNone(user.trial_ends_at)
        self.assertIsNone(user.subscription_ends_at)

    def test_admin_rejects_invalid_status(self):
        with self.assertRaises(ValidationFailed):
            subscription.admin_set_subscription(self.make_user(), 'gold', admin=self.admin, now=self.now)

    # ========== STATUS PAYLOAD ==========

    def test_status_payload_reports_expired_trial(self):
        user = self.make_user(
            subscription_status='trial',
            has_used_trial=True,
            trial_ends_at=self.now - datetime.timedelta(hours=1),
        )
        payload = subscription.subscription_status_payload(user, self.now)['subscription']
        self.assertEqual(payload['effectiveStatus'], 'free')
        self.assertTrue(payload['trialExpired'])
        self.assertTrue(payload['isFree'])
        self.assertFalse(payload['canStartTrial'])
        self.assertTrue(payload['canUpgrade'])
        self.assertIsNone(payload['billingPeriod'])
