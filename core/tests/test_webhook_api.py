"""
Tests for the Stripe webhook and the account purge cron endpoint.
"""
import datetime
import json
from unittest import mock

import stripe
from django.db import DatabaseError
from django.test import override_settings
from django.utils import timezone
from rest_framework import status

from core.models import AdminLog, User
from core.services import accounts, audit, subscription
from core.services.exceptions import PaymentProviderError
from core.tests.base import BaseAPITestCase

LOCMEM_CACHE = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'webhook-tests',
    }
}


def stripe_event(event_type, obj, event_id='evt_test_1'):
    return {'id': event_id, 'type': event_type, 'data': {'object': obj}}


@mock.patch('core.services.stripe_billing.retrieve_subscription')
@mock.patch('core.services.stripe_billing.construct_event')
class StripeWebhookTestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.webhook_url = f"{self.base_url}/webhooks/stripe/"
        self.period_end = (timezone.now() + datetime.timedelta(days=30)).replace(microsecond=0)

    def post_event(self):
        return self.client.post(
            self.webhook_url,
            data=json.dumps({'id': 'evt_test_1'}),
            content_type='application/json',
            HTTP_STRIPE_SIGNATURE='t=1,v1=abc',
        )

    # ========== SIGNATURE ==========

    def test_invalid_signature(self, construct_event, retrieve_subscription):
        construct_event.side_effect = stripe.SignatureVerificationError('No signatures found', 't=1,v1=abc')
        response = self.post_event()
        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid signature')

    def test_invalid_payload(self, construct_event, retrieve_subscription):
        construct_event.side_effect = ValueError('Invalid JSON')
        response = self.post_event()
        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid payload')

    @override_settings(STRIPE_WEBHOOK_SECRET='')
    def test_missing_secret(self, construct_event, retrieve_subscription):
        response = self.post_event()
        self.assert_response_error(response, status.HTTP_500_INTERNAL_SERVER_ERROR)
        construct_event.assert_not_called()

    # ========== EVENTS ==========

    def test_checkout_completed_activates_premium(self, construct_event, retrieve_subscription):
        construct_event.return_value = stripe_event('checkout.session.completed', {
            'id': 'cs_test_1',
            'metadata': {'userId': str(self.regular_user.id)},
            'customer': 'cus_123',
            'subscription': 'sub_123',
        })
        retrieve_subscription.return_value = {'current_period_end': int(self.period_end.timestamp())}

        response = self.post_event()

        self.assert_response_success(response)
        self.assertEqual(response.data, {'received': True})
        self.regular_user.refresh_from_db()
        self.assertEqual(self.regular_user.subscription_status, 'premium')
        self.assertEqual(self.regular_user.subscription_source, 'stripe')
        self.assertEqual(self.regular_user.stripe_subscription_id, 'sub_123')
        self.assertEqual(self.regular_user.subscription_ends_at, self.period_end)
        log = AdminLog.objects.get(action='subscription_created')
        self.assertEqual(log.admin_email, audit.STRIPE_WEBHOOK)

    def test_checkout_falls_back_to_default_period(self, construct_event, retrieve_subscription):
        construct_event.return_value = stripe_event('checkout.session.completed', {
            'client_reference_id': str(self.regular_user.id),
            'customer': 'cus_123',
            'subscription': 'sub_123',
        })
        retrieve_subscription.side_effect = PaymentProviderError("Failed to retrieve the subscription")

        response = self.post_event()

        self.assert_response_success(response)
        self.regular_user.refresh_from_db()
        remaining = self.regular_user.subscription_ends_at - timezone.now()
        self.assertTrue(datetime.timedelta(days=29) < remaining <= datetime.timedelta(days=30))

    def test_subscription_updated_to_unpaid(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('customer.subscription.updated', {
            'id': 'sub_456',
            'status': 'unpaid',
            'current_period_end': int(self.period_end.timestamp()),
        })

        self.assert_response_success(self.post_event())

        owner.refresh_from_db()
        self.assertEqual(owner.subscription_status, 'free')
        self.assertEqual(owner.subscription_ends_at, self.period_end)

    def test_portal_cancellation_stops_renewal(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('customer.subscription.updated', {
            'id': 'sub_456',
            'status': 'active',
            'cancel_at_period_end': True,
            'current_period_end': int(self.period_end.timestamp()),
        })

        self.assert_response_success(self.post_event())

        owner.refresh_from_db()
        self.assertEqual(owner.subscription_status, 'premium')
        self.assertIsNotNone(owner.subscription_cancelled_at)
        payload = subscription.subscription_status_payload(owner)['subscription']
        self.assertFalse(payload['willAutoRenew'])
        self.assertFalse(payload['canCancel'])

    def test_resumed_subscription_renews_again(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(
            stripe_subscription_id='sub_456',
            subscription_cancelled_at=timezone.now() - datetime.timedelta(days=1),
        )
        construct_event.return_value = stripe_event('customer.subscription.updated', {
            'id': 'sub_456',
            'status': 'active',
            'cancel_at_period_end': False,
            'current_period_end': int(self.period_end.timestamp()),
        })

        self.assert_response_success(self.post_event())

        owner.refresh_from_db()
        self.assertIsNone(owner.subscription_cancelled_at)
        self.assertTrue(subscription.will_auto_renew(owner))

    def test_subscription_deleted(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('customer.subscription.deleted', {'id': 'sub_456'})

        self.assert_response_success(self.post_event())

        owner.refresh_from_db()
        self.assertEqual(owner.subscription_status, 'free')
        self.assertLessEqual(owner.subscription_ends_at, timezone.now())
        self.assertTrue(AdminLog.objects.filter(action='subscription_deleted').exists())

    def test_invoice_paid_extends_period(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('invoice.payment_succeeded', {
            'id': 'in_1', 'subscription': 'sub_456',
        })
        retrieve_subscription.return_value = {'current_period_end': int(self.period_end.timestamp())}

        self.assert_response_success(self.post_event())

        retrieve_subscription.assert_called_once_with('sub_456')
        owner.refresh_from_db()
        self.assertEqual(owner.subscription_ends_at, self.period_end)

    def test_invoice_failed_is_logged(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('invoice.payment_failed', {
            'id': 'in_2', 'subscription': 'sub_456', 'customer': 'cus_9',
        })

        self.assert_response_success(self.post_event())

        log = AdminLog.objects.get(action='invoice_payment_failed')
        self.assertEqual(log.target_user_id, owner.id)
        owner.refresh_from_db()
        self.assertEqual(owner.subscription_status, 'premium')

    def test_unhandled_event_type(self, construct_event, retrieve_subscription):
        construct_event.return_value = stripe_event('customer.created', {'id': 'cus_1'})
        response = self.post_event()
        self.assert_response_success(response)
        self.assertEqual(response.data, {'received': True})

    # ========== IDEMPOTENCY ==========

    @override_settings(CACHES=LOCMEM_CACHE)
    def test_duplicate_event_is_ignored(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('customer.subscription.deleted', {'id': 'sub_456'}, 'evt_dup')

        first = self.post_event()
        owner.subscription_status = 'premium'
        owner.save(update_fields=['subscription_status'])
        second = self.post_event()

        self.assertEqual(first.data, {'received': True})
        self.assertEqual(second.data, {'received': True, 'duplicate': True})
        owner.refresh_from_db()
        self.assertEqual(owner.subscription_status, 'premium')
        self.assertEqual(AdminLog.objects.filter(action='subscription_deleted').count(), 1)

    @override_settings(CACHES=LOCMEM_CACHE)
    def test_failed_event_can_be_retried(self, construct_event, retrieve_subscription):
        owner = self.create_premium_owner(stripe_subscription_id='sub_456')
        construct_event.return_value = stripe_event('invoice.payment_succeeded', {
            'id': 'in_1', 'subscription': 'sub_456',
        }, 'evt_retry')
        retrieve_subscription.side_effect = PaymentProviderError("Failed to retrieve the subscription")

        first = self.post_event()
        self.assert_response_error(first, status.HTTP_500_INTERNAL_SERVER_ERROR)

        retrieve_subscription.side_effect = None
        retrieve_subscription.return_value = {'current_period_end': int(self.period_end.timestamp())}
        second = self.post_event()

        self.assertEqual(second.data, {'received': True})
        owner.refresh_from_db()
        self.assertEqual(owner.subscription_ends_at, self.period_end)

    @override_settings(CACHES=LOCMEM_CACHE)
    def test_database_failure_does_not_swallow_retry(self, construct_event, retrieve_subscription):
        construct_event.return_value = stripe_event('checkout.session.completed', {
            'id': 'cs_test_1',
            'metadata': {'userId': str(self.regular_user.id)},
            'customer': 'cus_123',
            'subscription': 'sub_123',
        }, 'evt_db')
        retrieve_subscription.return_value = {'current_period_end': int(self.period_end.timestamp())}

        with mock.patch(
            'core.management_api.webhook_api.views._set_subscription',
            side_effect=DatabaseError('connection lost'),
        ):
            first = self.post_event()
        self.assert_response_error(first, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.regular_user.refresh_from_db()
        self.assertEqual(self.regular_user.subscription_status, 'free')

        second = self.post_event()

        self.assertEqual(second.data, {'received': True})
        self.regular_user.refresh_from_db()
        self.assertEqual(self.regular_user.subscription_status, 'premium')
        self.assertEqual(self.regular_user.stripe_subscription_id, 'sub_123')

    @override_settings(CACHES=LOCMEM_CACHE)
    def test_malformed_user_id_can_be_retried(self, construct_event, retrieve_subscription):
        construct_event.return_value = stripe_event('checkout.session.completed', {
            'metadata': {'userId': 'not-a-uuid'},
            'subscription': 'sub_123',
        }, 'evt_bad_user')
        retrieve_subscription.return_value = {'current_period_end': int(self.period_end.timestamp())}

        first = self.post_event()
        second = self.post_event()

        self.assert_response_error(first, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assert_response_error(second, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertNotIn('duplicate', second.data)


class CronAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.cron_url = f"{self.base_url}/cron/delete-expired-accounts/"

    def test_requires_secret(self):
        response = self.client.get(self.cron_url)
        self.assert_response_error(response, status.HTTP_401_UNAUTHORIZED)

        response = self.client.get(self.cron_url, HTTP_AUTHORIZATION='Bearer wrong')
        self.assert_response_error(response, status.HTTP_401_UNAUTHORIZED)

    def test_purges_expired_accounts(self):
        accounts.request_deletion(self.regular_user, now=timezone.now() - datetime.timedelta(days=61))

        response = self.client.get(self.cron_url, HTTP_AUTHORIZATION='Bearer test-cron-secret')

        self.assert_response_success(response)
        self.assertEqual(response.data, {'success': True, 'deleted': 1, 'failed': 0, 'emails': ['test@test.com']})
        self.assertFalse(User.objects.filter(email='test@test.com').exists())
        self.assertEqual(AdminLog.objects.get(action='user_permanently_deleted').admin_email, audit.SYSTEM_CRON)
