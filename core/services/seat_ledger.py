"""
Team seat bookkeeping.

Every operation keeps ``purchased_seats == used_seats + available_seats``
(also enforced by a database check constraint). Admin accounts get seats
for free and are never charged or limited by reservations.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from rest_framework import status

from core.models import User
from core.services import stripe_billing
from core.services.exceptions import Forbidden, ServiceError, ValidationFailed
from core.services.subscription import has_paid_access
from core.services.system_settings import is_feature_enabled

logger = logging.getLogger(__name__)

SEAT_FIELDS = ['purchased_seats', 'used_seats', 'available_seats', 'seat_subscription_item_id']


def calculate_monthly_cost(quantity, is_admin=False):
    if is_admin:
        return Decimal('0.00')
    return (Decimal(settings.SEAT_PRICE) * quantity).quantize(Decimal('0.01'))


def validate_quantity(quantity, bounded=True):
    """Return ``quantity`` when it is a whole number in [1, MAX_SEATS]"""
    maximum = settings.MAX_SEATS if bounded else None
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationFailed("Valid quantity is required")
    if maximum and quantity > maximum:
        raise ValidationFailed(
            f"Cannot exceed {maximum} seats",
            maxSeats=maximum,
        )
    return quantity


def can_purchase_seats(user):
    """(allowed, reason) for a first seat purchase"""
    if user.is_admin:
        return True, None
    if not has_paid_access(user):
        return False, "Premium subscription required to purchase seats"
    return True, None


def _lock(user):
    """Re-read the seat counters under a row lock and copy them onto ``user``"""
    locked = User.objects.select_for_update().get(pk=user.pk)
    for field in SEAT_FIELDS:
        setattr(user, field, getattr(locked, field))
    return user


def _uses_stripe(user):
    return not user.is_admin and user.seat_subscription_item_id != stripe_billing.ADMIN_BYPASS_ITEM_ID


def _ensure_payments_enabled(user):
    if not user.is_admin and not is_feature_enabled('stripe_enabled'):
        raise ServiceError(
            "Payments are temporarily unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


def seat_counts(user):
    return {
        'purchased': user.purchased_seats,
        'used': user.used_seats,
        'available': user.available_seats,
    }


def purchase(user, quantity):
    """First seat purchase. Creates the Stripe seat item (or the admin bypass)"""
    validate_quantity(quantity)
    _ensure_payments_enabled(user)

    with transaction.atomic():
        _lock(user)
        if user.purchased_seats > 0:
            raise ValidationFailed(
                'You have already purchased seats. Use the "Add More Seats" option instead.',
                currentSeats=user.purchased_seats,
            )

        allowed, reason = can_purchase_seats(user)
        if not allowed:
            raise Forbidden(reason)

        if user.is_admin:
            item_id = stripe_billing.ADMIN_BYPASS_ITEM_ID
        else:
            if not (user.stripe_customer_id and user.stripe_subscription_id):
                raise ValidationFailed("An active Stripe subscription is required to purchase seats")
            item_id = stripe_billing.create_seat_item(user.stripe_subscription_id, quantity)

        user.purchased_seats = quantity
        user.used_seats = 0
        user.available_seats = quantity
        user.seat_subscription_item_id = item_id
        user.save(update_fields=SEAT_FIELDS)

    logger.info("User %s purchased %s seats", user.email, quantity, extra={'admin': user.is_admin})
    return user


def add(user, quantity):
    validate_quantity(quantity)
    _ensure_payments_enabled(user)

    with transaction.atomic():
        _lock(user)
        if user.purchased_seats == 0 or not user.seat_subscription_item_id:
            raise ValidationFailed('No seats purchased yet. Use "Purchase Seats" first.')

        new_total = user.purchased_seats + quantity
        if new_total > settings.MAX_SEATS:
            raise ValidationFailed(
                f"Cannot exceed {settings.MAX_SEATS} seats. You currently have {user.purchased_seats} seats.",
                currentSeats=user.purchased_seats,
                maxSeats=settings.MAX_SEATS,
            )

        if _uses_stripe(user):
            stripe_billing.update_seat_quantity(user.seat_subscription_item_id, new_total)

        user.purchased_seats = new_total
        user.available_seats += quantity
        user.save(update_fields=SEAT_FIELDS)

    logger.info("User %s added %s seats (now %s)", user.email, quantity, user.purchased_seats)
    return user


def remove(user, quantity):
    """Give back unused seats. Seats occupied by team members cannot be removed"""
    validate_quantity(quantity, bounded=False)

    with transaction.atomic():
        _lock(user)
        if user.purchased_seats == 0 or not user.seat_subscription_item_id:
            raise ValidationFailed("No seat subscription found.")

        if quantity > user.purchased_seats:
            raise ValidationFailed(
                f"Cannot remove {quantity} seats. You only have {user.purchased_seats} total seats.",
                currentSeats=user.purchased_seats,
            )

        new_total = user.purchased_seats - quantity
        if new_total < user.used_seats:
            raise ValidationFailed(
                f"Cannot remove {quantity} seats. You have {user.used_seats} team members using seats. "
                "Remove team members first.",
                purchasedSeats=user.purchased_seats,
                usedSeats=user.used_seats,
                availableSeats=user.available_seats,
            )

        if _uses_stripe(user):
            if new_total == 0:
                stripe_billing.delete_seat_item(user.seat_subscription_item_id)
            else:
                stripe_billing.update_seat_quantity(user.seat_subscription_item_id, new_total)

        user.purchased_seats = new_total
        user.available_seats -= quantity
        if new_total == 0:
            user.seat_subscription_item_id = None
        user.save(update_fields=SEAT_FIELDS)

    logger.info("User %s removed %s seats (now %s)", user.email, quantity, user.purchased_seats)
    return user


def reserve(owner):
    """Take one available seat for a new invitation. No-op for admins"""
    if owner.is_admin:
        return owner
    with transaction.atomic():
        _lock(owner)
        if owner.available_seats < 1:
            raise ValidationFailed(
                "No available seats. Purchase more seats to invite team members.",
                purchasedSeats=owner.purchased_seats,
                usedSeats=owner.used_seats,
                availableSeats=owner.available_seats,
            )
        owner.used_seats += 1
        owner.available_seats -= 1
        owner.save(update_fields=['used_seats', 'available_seats'])
    return owner


def release(owner):
    """Give one seat back to the owner's pool. No-op for admins"""
    if owner is None or owner.is_admin:
        return owner
    with transaction.atomic():
        _lock(owner)
        if owner.used_seats == 0:
            logger.warning("Seat release for %s skipped: no seats in use", owner.email)
            return owner
        owner.used_seats -= 1
        owner.available_seats += 1
        owner.save(update_fields=['used_seats', 'available_seats'])
    return owner


def info(user):
    allowed, reason = can_purchase_seats(user)
    return {
        'success': True,
        'seats': {
            **seat_counts(user),
            'monthlyCost': float(calculate_monthly_cost(user.purchased_seats, user.is_admin)),
        },
        'pricing': {
            'pricePerSeat': float(settings.SEAT_PRICE),
            'maxSeats': settings.MAX_SEATS,
            'currency': settings.SEAT_CURRENCY,
        },
        'permissions': {
            'canPurchase': allowed and user.purchased_seats == 0,
            'canPurchaseReason': reason,
            'canAddSeats': 0 < user.purchased_seats < settings.MAX_SEATS,
            'canRemoveSeats': user.available_seats > 0,
        },
        'user': {
            'subscriptionStatus': user.subscription_status,
            'isAdmin': user.is_admin,
        },
    }
