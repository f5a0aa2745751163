"""
Thin wrappers around the Stripe calls used for premium and seat billing.

Every function raises ``PaymentProviderError`` when Stripe fails so the API
layer answers with a single, logged 500 instead of leaking Stripe messages.
"""
import datetime
import logging

import stripe
from django.conf import settings

from core.services.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

# Initialize Stripe
stripe.api_key = getattr(settings, 'STRIPE_SECRET_KEY', '')

ADMIN_BYPASS_ITEM_ID = 'admin-bypass'


def _fail(action, error, **context):
    logger.error("Stripe %s failed: %s", action, error, extra=context)
    return PaymentProviderError(f"Payment provider error while trying to {action}")


def create_seat_item(subscription_id, quantity):
    """Attach the seat price to the customer's premium subscription"""
    try:
        stripe.Subscription.retrieve(subscription_id)
        item = stripe.SubscriptionItem.create(
            subscription=subscription_id,
            price=settings.STRIPE_SEAT_PRICE_ID,
            quantity=quantity,
        )
    except stripe.StripeError as e:
        raise _fail("purchase seats", e, subscription_id=subscription_id, quantity=quantity)
    return item.id


def update_seat_quantity(item_id, quantity):
    try:
        stripe.SubscriptionItem.modify(
            item_id,
            quantity=quantity,
            proration_behavior='create_prorations',
        )
    except stripe.StripeError as e:
        raise _fail("update seats", e, item_id=item_id, quantity=quantity)


def delete_seat_item(item_id):
    try:
        stripe.SubscriptionItem.delete(item_id, proration_behavior='create_prorations')
    except stripe.StripeError as e:
        raise _fail("remove seats", e, item_id=item_id)


def cancel_at_period_end(subscription_id):
    """Stop renewal. The subscription stays active until the period ends"""
    try:
        return stripe.Subscription.modify(subscription_id, cancel_at_period_end=True)
    except stripe.StripeError as e:
        raise _fail("cancel the subscription", e, subscription_id=subscription_id)


def ensure_customer(user):
    """Return the user's Stripe customer id, creating the customer on first use"""
    if user.stripe_customer_id:
        return user.stripe_customer_id
    try:
        customer = stripe.Customer.create(
            email=user.email,
            name=user.get_full_name() or None,
            metadata={'userId': str(user.id)},
        )
    except stripe.StripeError as e:
        raise _fail("create the customer", e, user_id=str(user.id))
    user.stripe_customer_id = customer.id
    user.save(update_fields=['stripe_customer_id'])
    return customer.id


def create_premium_checkout_session(user, success_url, cancel_url):
    customer_id = ensure_customer(user)
    try:
        return stripe.checkout.Session.create(
            customer=customer_id,
            mode='subscription',
            payment_method_types=['card'],
            line_items=[{'price': settings.STRIPE_PREMIUM_PRICE_ID, 'quantity': 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            client_reference_id=str(user.id),
            metadata={'userId': str(user.id)},
            subscription_data={'metadata': {'userId': str(user.id)}},
        )
    except stripe.StripeError as e:
        raise _fail("create the checkout session", e, user_id=str(user.id))


def construct_event(payload, signature):
    """Verify the webhook signature. Raises ValueError or stripe.SignatureVerificationError"""
    return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)


def retrieve_subscription(subscription_id):
    try:
        return stripe.Subscription.retrieve(subscription_id)
    except stripe.StripeError as e:
        raise _fail("retrieve the subscription", e, subscription_id=subscription_id)


def list_invoices(customer_id, limit=100):
    """Most recent invoices of a customer, newest first"""
    try:
        return list(stripe.Invoice.list(customer=customer_id, limit=limit).data)
    except stripe.StripeError as e:
        raise _fail("load the billing history", e, customer_id=customer_id)


def period_end_of(subscription):
    """
    ``current_period_end`` of a Stripe subscription as an aware datetime.

    Newer API versions report the period on the subscription items instead of
    the subscription itself. Returns None when neither carries it.
    """
    if not subscription:
        return None
    timestamp = subscription.get('current_period_end')
    if not timestamp:
        items = (subscription.get('items') or {}).get('data') or []
        if items:
            timestamp = items[0].get('current_period_end')
    if not timestamp:
        return None
    return datetime.datetime.fromtimestamp(int(timestamp), tz=datetime.timezone.utc)
