"""
Subscription tiers, trial handling and status transitions.

Stored ``subscription_status`` can lag behind reality (an ended trial stays
``trial`` until something persists the downgrade). ``effective_status`` is
the source of truth for access decisions. ``refresh_subscription_status``
writes it back.
"""
import datetime
import logging
import math

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.models import SUBSCRIPTION_STATUS_CHOICES
from core.services import audit, stripe_billing
from core.services.billing_dates import add_months, get_billing_period
from core.services.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

TIERS = {
    'free': {
        'can_analyze': False,
        'can_view_saved': False,
        'can_export_pdf': False,
    },
    'trial': {
        'can_analyze': True,
        'can_view_saved': False,
        'can_export_pdf': False,
    },
    'premium': {
        'can_analyze': True,
        'can_view_saved': True,
        'can_export_pdf': True,
    },
    'enterprise': {
        'can_analyze': True,
        'can_view_saved': True,
        'can_export_pdf': True,
    },
}

PAID_STATUSES = ('premium', 'enterprise')
VALID_STATUSES = tuple(value for value, _ in SUBSCRIPTION_STATUS_CHOICES)


def get_tier_features(status):
    return dict(TIERS.get(status, TIERS['free']))


def is_premium_active(status, ends_at, now=None):
    """Premium with no end date, or an end date still in the future"""
    now = now or timezone.now()
    return status == 'premium' and (ends_at is None or now < ends_at)


def has_paid_access(user, now=None):
    """Premium or enterprise whose access period has not ended"""
    return effective_status(user, now) in PAID_STATUSES


def effective_status(user, now=None):
    now = now or timezone.now()
    status = user.subscription_status

    if status == 'trial' and user.trial_ends_at and user.trial_ends_at <= now:
        return 'free'
    if status in PAID_STATUSES and user.subscription_ends_at and user.subscription_ends_at <= now:
        return 'free'
    return status


def is_stripe_managed(user):
    return bool(user.stripe_subscription_id)


def refresh_subscription_status(user, now=None, actor=audit.SYSTEM_MIDDLEWARE):
    """
    Persist the downgrade of an ended trial or paid period.

    Stripe-managed paid subscriptions are left alone; the Stripe webhooks
    own their lifecycle. Returns True when the user was downgraded.
    """
    now = now or timezone.now()
    effective = effective_status(user, now)
    previous = user.subscription_status
    if effective == previous:
        return False
    if previous in PAID_STATUSES and is_stripe_managed(user):
        return False

    user.subscription_status = effective
    user.save(update_fields=['subscription_status'])

    audit.log_admin_action(
        actor,
        'subscription_auto_expired',
        target_user=user,
        userId=str(user.id),
        previousStatus=previous,
        newStatus=effective,
        trialEndsAt=user.trial_ends_at,
        subscriptionEndsAt=user.subscription_ends_at,
    )
    logger.info("Subscription of %s expired: %s → %s", user.email, previous, effective)
    return True


def trial_hours_remaining(user, now=None):
    """Whole hours left in the trial, or None when the user is not on trial"""
    if user.subscription_status != 'trial' or not user.trial_ends_at:
        return None
    now = now or timezone.now()
    seconds = (user.trial_ends_at - now).total_seconds()
    return max(0, math.floor(seconds / 3600))


def will_auto_renew(user):
    return (
        user.subscription_status == 'premium'
        and is_stripe_managed(user)
        and user.subscription_cancelled_at is None
    )


def can_start_trial(user):
    return not user.has_used_trial and user.subscription_status == 'free'


def start_trial(user, now=None):
    """Grant the one-time trial"""
    now = now or timezone.now()
    if user.has_used_trial:
        raise ValidationFailed("You have already used your free trial")
    if user.subscription_status in ('trial',) + PAID_STATUSES:
        raise ValidationFailed(
            "You already have an active subscription",
            currentStatus=user.subscription_status,
        )

    user.subscription_status = 'trial'
    user.trial_ends_at = now + datetime.timedelta(hours=settings.TRIAL_DURATION_HOURS)
    user.has_used_trial = True
    user.save(update_fields=['subscription_status', 'trial_ends_at', 'has_used_trial'])
    logger.info("Trial started for %s until %s", user.email, user.trial_ends_at)
    return user


def upgrade(user, plan, now=None):
    now = now or timezone.now()
    if plan != 'premium':
        raise ValidationFailed('Invalid plan. Only "premium" is supported.')
    if has_paid_access(user, now):
        raise ValidationFailed(
            "Already subscribed",
            message="You already have a premium subscription!",
            currentStatus=user.subscription_status,
        )

    user.subscription_status = 'premium'
    user.subscription_source = 'stripe'
    user.subscription_ends_at = add_months(now, 1)
    user.subscription_cancelled_at = None
    user.save(update_fields=[
        'subscription_status', 'subscription_source',
        'subscription_ends_at', 'subscription_cancelled_at',
    ])
    logger.info("User %s upgraded to premium until %s", user.email, user.subscription_ends_at)
    return user


def cancel(user, now=None):
    """
    Stop renewal of the Stripe subscription.

    The stored status stays ``premium``; access ends at
    ``subscription_ends_at`` through ``effective_status`` and the expiry task.
    """
    now = now or timezone.now()
    if not user.stripe_subscription_id:
        raise ValidationFailed("No active subscription")
    if user.subscription_cancelled_at:
        raise ValidationFailed(
            "Subscription is already cancelled",
            accessUntil=user.subscription_ends_at,
        )

    stripe_subscription = stripe_billing.cancel_at_period_end(user.stripe_subscription_id)

    update_fields = ['subscription_cancelled_at']
    user.subscription_cancelled_at = now
    if user.subscription_ends_at is None:
        period_end = stripe_billing.period_end_of(stripe_subscription)
        if period_end:
            user.subscription_ends_at = period_end
            update_fields.append('subscription_ends_at')
    user.save(update_fields=update_fields)

    audit.log_admin_action(
        user,
        'subscription_cancelled',
        target_user=user,
        userId=str(user.id),
        subscriptionId=user.stripe_subscription_id,
        cancelledAt=now,
        accessUntil=user.subscription_ends_at.isoformat() if user.subscription_ends_at else 'unknown',
    )
    return user


def admin_set_subscription(user, status, premium_duration_days=None, admin=None, now=None):
    """Manual override from the admin panel. Always marks the source as manual"""
    now = now or timezone.now()
    if status not in VALID_STATUSES:
        raise ValidationFailed(f"Invalid subscription status: {status}")

    updated = {'subscription_status': status, 'subscription_source': 'manual'}
    if status == 'trial':
        updated['trial_ends_at'] = now + datetime.timedelta(hours=settings.TRIAL_DURATION_HOURS)
        updated['has_used_trial'] = True
    elif status in PAID_STATUSES:
        duration = premium_duration_days or settings.PREMIUM_DURATION_DAYS_DEFAULT
        if duration == settings.PREMIUM_DURATION_UNLIMITED:
            updated['subscription_ends_at'] = add_months(now, 100 * 12)
        else:
            updated['subscription_ends_at'] = now + datetime.timedelta(days=duration)
        updated['subscription_cancelled_at'] = None
    else:
        updated['trial_ends_at'] = None
        updated['subscription_ends_at'] = None

    with transaction.atomic():
        for field, value in updated.items():
            setattr(user, field, value)
        user.save(update_fields=list(updated))

        audit.log_admin_action(
            admin or 'unknown-admin',
            'subscription_updated',
            target_user=user,
            userId=str(user.id),
            newStatus=status,
            updatedFields=updated,
        )
    return user


def subscription_status_payload(user, now=None):
    """Response body of the subscription status endpoint"""
    now = now or timezone.now()
    effective = effective_status(user, now)
    is_paid = effective in PAID_STATUSES
    trial_expired = bool(
        user.subscription_status == 'trial'
        and user.trial_ends_at
        and user.trial_ends_at <= now
    )
    period = get_billing_period(user.subscription_ends_at, now, user.subscription_cancelled_at) if is_paid else None

    return {
        'subscription': {
            'status': user.subscription_status,
            'effectiveStatus': effective,
            'source': user.subscription_source,
            'trialEndsAt': user.trial_ends_at,
            'trialHoursRemaining': trial_hours_remaining(user, now),
            'trialExpired': trial_expired,
            'hasUsedTrial': user.has_used_trial,
            'subscriptionEndsAt': user.subscription_ends_at,
            'cancelledAt': user.subscription_cancelled_at,
            'willAutoRenew': will_auto_renew(user),
            'billingPeriod': _serialize_period(period),
            'canUpgrade': not is_paid,
            'canCancel': is_paid and is_stripe_managed(user) and user.subscription_cancelled_at is None,
            'canStartTrial': can_start_trial(user),
            'isPremium': is_paid,
            'isTrial': effective == 'trial',
            'isFree': effective == 'free',
            'features': get_tier_features(effective),
        },
        'stripe': {
            'hasCustomer': bool(user.stripe_customer_id),
            'hasSubscription': bool(user.stripe_subscription_id),
        },
    }


def _serialize_period(period):
    if period is None:
        return None
    return {
        'start': period['start'],
        'end': period['end'],
        'daysRemaining': period['days_remaining'],
        'isActive': period['is_active'],
        'isCancelled': period['is_cancelled'],
    }


# ========== BILLING HISTORY ==========

INVOICE_STATUSES = {'paid': 'paid', 'open': 'pending'}


def _invoice_entry(invoice):
    created = datetime.datetime.fromtimestamp(int(invoice['created']), tz=datetime.timezone.utc)
    return {
        'id': invoice['id'],
        'date': created,
        'amount': (invoice.get('amount_paid') or 0) / 100,
        'currency': invoice.get('currency') or settings.SEAT_CURRENCY,
        'status': INVOICE_STATUSES.get(invoice.get('status'), 'failed'),
        'description': invoice.get('description') or f"Premium Subscription - {created:%b %Y}",
        'invoiceUrl': invoice.get('hosted_invoice_url'),
        'pdfUrl': invoice.get('invoice_pdf'),
        'isManual': False,
    }


def billing_history(user):
    """
    Past charges, newest first.

    Stripe customers get their invoices. Manually granted paid access shows a
    single zero-amount entry dated at sign-up.
    """
    history = []
    if user.stripe_customer_id and user.subscription_source == 'stripe':
        history.extend(_invoice_entry(invoice) for invoice in stripe_billing.list_invoices(user.stripe_customer_id))

    if user.subscription_source == 'manual' and user.subscription_status in PAID_STATUSES:
        history.append({
            'id': f"manual-{int(user.date_joined.timestamp() * 1000)}",
            'date': user.date_joined,
            'amount': 0,
            'currency': settings.SEAT_CURRENCY,
            'status': 'paid',
            'description': f"{user.get_subscription_status_display()} Access - Admin Granted",
            'invoiceUrl': None,
            'pdfUrl': None,
            'isManual': True,
        })

    history.sort(key=lambda entry: entry['date'], reverse=True)
    return {
        'billingHistory': history,
        'hasStripeIntegration': bool(user.stripe_customer_id),
        'subscriptionSource': user.subscription_source,
    }
