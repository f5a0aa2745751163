import datetime
import logging
import secrets

import stripe
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample

from core.models import User
from core.services import accounts, audit, stripe_billing
from core.services.exceptions import ServiceError

logger = logging.getLogger(__name__)

EVENT_CACHE_TIMEOUT = 7 * 24 * 3600
INACTIVE_STRIPE_STATUSES = ('canceled', 'unpaid')


def _set_subscription(user, fields):
    for field, value in fields.items():
        setattr(user, field, value)
    user.save(update_fields=list(fields))


def _handle_checkout_completed(session, now):
    metadata = session.get('metadata') or {}
    user_id = metadata.get('userId') or session.get('client_reference_id')
    customer_id = session.get('customer')
    subscription_id = session.get('subscription')

    user = User.objects.filter(pk=user_id).first() if user_id else None
    if user is None:
        logger.warning("checkout.session.completed without a known user; userId=%s", user_id)
        return

    ends_at = None
    if subscription_id:
        try:
            ends_at = stripe_billing.period_end_of(stripe_billing.retrieve_subscription(subscription_id))
        except ServiceError:
            logger.warning("Falling back to default period for subscription %s", subscription_id)
    if ends_at is None:
        ends_at = now + datetime.timedelta(days=settings.PREMIUM_DURATION_DAYS_DEFAULT)

    with transaction.atomic():
        _set_subscription(user, {
            'subscription_status': 'premium',
            'subscription_source': 'stripe',
            'stripe_customer_id': customer_id,
            'stripe_subscription_id': subscription_id,
            'subscription_ends_at': ends_at,
            'subscription_cancelled_at': None,
        })
        audit.log_admin_action(
            audit.STRIPE_WEBHOOK,
            'subscription_created',
            target_user=user,
            customerId=customer_id,
            subscriptionId=subscription_id,
            sessionId=session.get('id'),
        )
    logger.info("Premium activated for %s until %s", user.email, ends_at)


def _handle_subscription_updated(subscription, now):
    user = User.objects.filter(stripe_subscription_id=subscription.get('id')).first()
    if user is None:
        logger.warning("subscription.updated for unknown subscription %s", subscription.get('id'))
        return

    stripe_status = subscription.get('status')
    fields = {
        'subscription_status': 'free' if stripe_status in INACTIVE_STRIPE_STATUSES else 'premium',
    }
    period_end = stripe_billing.period_end_of(subscription)
    if period_end is not None:
        fields['subscription_ends_at'] = period_end

    # Cancellations made in the Stripe portal arrive only through this event
    cancel_at_period_end = bool(subscription.get('cancel_at_period_end'))
    if cancel_at_period_end and user.subscription_cancelled_at is None:
        fields['subscription_cancelled_at'] = now
    elif not cancel_at_period_end and user.subscription_cancelled_at is not None:
        fields['subscription_cancelled_at'] = None

    with transaction.atomic():
        _set_subscription(user, fields)
        audit.log_admin_action(
            audit.STRIPE_WEBHOOK,
            'subscription_updated',
            target_user=user,
            subscriptionId=subscription.get('id'),
            stripeStatus=stripe_status,
            cancelAtPeriodEnd=cancel_at_period_end,
        )


def _handle_subscription_deleted(subscription, now):
    user = User.objects.filter(stripe_subscription_id=subscription.get('id')).first()
    if user is None:
        logger.warning("subscription.deleted for unknown subscription %s", subscription.get('id'))
        return

    with transaction.atomic():
        _set_subscription(user, {
            'subscription_status': 'free',
            'subscription_ends_at': now,
        })
        audit.log_admin_action(
            audit.STRIPE_WEBHOOK,
            'subscription_deleted',
            target_user=user,
            subscriptionId=subscription.get('id'),
        )


def _handle_invoice_paid(invoice, now):
    subscription_id = invoice.get('subscription')
    if not subscription_id:
        return
    user = User.objects.filter(stripe_subscription_id=subscription_id).first()
    if user is None:
        logger.warning("invoice.payment_succeeded for unknown subscription %s", subscription_id)
        return

    fields = {'subscription_status': 'premium'}
    period_end = stripe_billing.period_end_of(stripe_billing.retrieve_subscription(subscription_id))
    if period_end is not None:
        fields['subscription_ends_at'] = period_end

    with transaction.atomic():
        _set_subscription(user, fields)
        audit.log_admin_action(
            audit.STRIPE_WEBHOOK,
            'invoice_payment_succeeded',
            target_user=user,
            invoiceId=invoice.get('id'),
            subscriptionId=subscription_id,
        )


def _handle_invoice_failed(invoice, now):
    subscription_id = invoice.get('subscription')
    user = User.objects.filter(stripe_subscription_id=subscription_id).first() if subscription_id else None
    audit.log_admin_action(
        audit.STRIPE_WEBHOOK,
        'invoice_payment_failed',
        target_user=user,
        invoiceId=invoice.get('id'),
        subscriptionId=subscription_id,
        customerId=invoice.get('customer'),
    )


EVENT_HANDLERS = {
    'checkout.session.completed': _handle_checkout_completed,
    'customer.subscription.updated': _handle_subscription_updated,
    'customer.subscription.deleted': _handle_subscription_deleted,
    'invoice.payment_succeeded': _handle_invoice_paid,
    'invoice.payment_failed': _handle_invoice_failed,
}


@extend_schema(
    summary="🔗 Stripe webhook handler",
    description="""
    Receives Stripe events. The `Stripe-Signature` header is verified against
    `STRIPE_WEBHOOK_SECRET`; each event id is processed once.

    **📨 Handled events**:
    - `checkout.session.completed`: premium activated
    - `customer.subscription.updated`: status and period end synced
    - `customer.subscription.deleted`: back to free
    - `invoice.payment_succeeded`: period extended
    - `invoice.payment_failed`: logged
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Event received",
            examples=[
                OpenApiExample('Received', value={'received': True}),
                OpenApiExample('Duplicate', value={'received': True, 'duplicate': True})
            ]
        ),
        400: OpenApiResponse(description="❌ Invalid payload or signature"),
        500: OpenApiResponse(description="❌ Webhook secret not configured or processing failed")
    },
    tags=["Webhooks"],
    auth=[]
)
@csrf_exempt
@api_view(['POST'])
@permission_classes([])
def stripe_webhook(request):
    payload = request.body
    sig_header = request.META.get('HTTP_STRIPE_SIGNATURE')

    logger.info("Stripe webhook received; payload_len=%s, has_sig=%s", len(payload), bool(sig_header))

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Webhook secret not configured")
        return Response(
            {"error": "Webhook secret not configured"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    try:
        event = stripe_billing.construct_event(payload, sig_header)
    except ValueError as e:
        logger.warning("Invalid payload: %s", e)
        return Response({"error": "Invalid payload"}, status=status.HTTP_400_BAD_REQUEST)
    except stripe.SignatureVerificationError as e:
        logger.warning("Invalid signature: %s", e)
        return Response({"error": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)

    event_type = event['type']
    event_data = event['data']['object']
    event_id = event.get('id', 'unknown')

    cache_key = f"stripe_event:{event_id}"
    if cache.get(cache_key):
        logger.info("Duplicate webhook event ignored; id=%s type=%s", event_id, event_type)
        return Response({"received": True, "duplicate": True}, status=status.HTTP_200_OK)
    cache.set(cache_key, True, timeout=EVENT_CACHE_TIMEOUT)

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled webhook event type %s", event_type)
        return Response({"received": True})

    logger.info("Processing webhook; id=%s type=%s", event_id, event_type)
    try:
        handler(event_data, timezone.now())
    except Exception as e:
        # Forget the event so the Stripe retry is processed
        cache.delete(cache_key)
        if isinstance(e, ServiceError):
            logger.error("Webhook %s (%s) failed: %s", event_id, event_type, e)
        else:
            logger.exception("Webhook %s (%s) crashed: %s", event_id, event_type, e)
        return Response(
            {"error": "Webhook processing failed"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response({"received": True})


@extend_schema(
    summary="🧹 Purge expired accounts (cron)",
    description="""
    Permanently deletes accounts whose 60 day deletion grace period has ended.

    **🔐 Authentication**: `Authorization: Bearer <CRON_SECRET>`.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Purge finished",
            examples=[
                OpenApiExample(
                    'Purged',
                    value={
                        'success': True,
                        'deleted': 2,
                        'failed': 0,
                        'emails': ['old@example.com', 'gone@example.com']
                    }
                )
            ]
        ),
        401: OpenApiResponse(description="🚫 Missing or wrong cron secret")
    },
    tags=["Webhooks"],
    auth=[]
)
@api_view(['GET'])
@permission_classes([])
def cron_delete_expired_accounts(request):
    expected = settings.CRON_SECRET
    provided = request.META.get('HTTP_AUTHORIZATION', '')
    if not expected or not secrets.compare_digest(provided, f"Bearer {expected}"):
        logger.warning("Rejected cron call from %s", request.META.get('REMOTE_ADDR'))
        return Response({"error": "Unauthorized"}, status=status.HTTP_401_UNAUTHORIZED)

    result = accounts.purge_deleted_accounts(limit=settings.ACCOUNT_PURGE_BATCH_SIZE, actor=audit.SYSTEM_CRON)
    return Response({'success': True, **result})
