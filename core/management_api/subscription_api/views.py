from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.conf import settings
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample
import logging

from core.services import audit, stripe_billing, subscription
from core.services.exceptions import ServiceError
from core.services.system_settings import is_feature_enabled
from core.management_api.utils import service_error_response
from .serializers import UpgradeSerializer, CheckoutSessionSerializer

logger = logging.getLogger(__name__)


STATUS_EXAMPLE = {
    'subscription': {
        'status': 'premium',
        'effectiveStatus': 'premium',
        'source': 'stripe',
        'trialEndsAt': '2026-03-04T10:00:00Z',
        'trialHoursRemaining': None,
        'trialExpired': False,
        'hasUsedTrial': True,
        'subscriptionEndsAt': '2026-05-01T10:00:00Z',
        'cancelledAt': None,
        'willAutoRenew': True,
        'billingPeriod': {
            'start': '2026-04-01T10:00:00Z',
            'end': '2026-05-01T10:00:00Z',
            'daysRemaining': 12,
            'isActive': True,
            'isCancelled': False
        },
        'canUpgrade': False,
        'canCancel': True,
        'canStartTrial': False,
        'isPremium': True,
        'isTrial': False,
        'isFree': False,
        'features': {'can_analyze': True, 'can_view_saved': True, 'can_export_pdf': True}
    },
    'stripe': {'hasCustomer': True, 'hasSubscription': True}
}


@extend_schema(
    summary="📊 Subscription status",
    description="""
    Current subscription of the authenticated user.

    **🧮 Effective status**:
    - `status` is the stored tier, `effectiveStatus` accounts for an ended trial or
      paid period that has not been persisted yet
    - `features` are the capabilities of the effective tier
    - `billingPeriod` is only present for premium/enterprise
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Subscription status",
            examples=[OpenApiExample('Premium', value=STATUS_EXAMPLE)]
        ),
        401: OpenApiResponse(description="🚫 Authentication required")
    },
    tags=["Subscription"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_status(request):
    return Response(subscription.subscription_status_payload(request.user))


@extend_schema(
    summary="⬆️ Upgrade to premium",
    description="""
    Switch the account to **premium** for one calendar month.

    Only `premium` is accepted as `plan`. Refused when the user is already
    premium or enterprise.
    """,
    request=UpgradeSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Upgraded",
            examples=[
                OpenApiExample(
                    'Upgraded',
                    value={
                        'success': True,
                        'subscription': {
                            'status': 'premium',
                            'source': 'stripe',
                            'subscriptionEndsAt': '2026-05-19T10:00:00Z'
                        }
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Invalid plan or already subscribed",
            examples=[
                OpenApiExample(
                    'Already Subscribed',
                    value={
                        'error': 'Already subscribed',
                        'message': 'You already have a premium subscription!',
                        'currentStatus': 'premium'
                    }
                )
            ]
        )
    },
    tags=["Subscription"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def upgrade_subscription(request):
    serializer = UpgradeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        user = subscription.upgrade(request.user, serializer.validated_data['plan'])
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'subscription': {
            'status': user.subscription_status,
            'source': user.subscription_source,
            'subscriptionEndsAt': user.subscription_ends_at,
        }
    })


@extend_schema(
    summary="🛑 Cancel subscription",
    description="""
    Stop the automatic renewal of the Stripe subscription.

    **⏳ Access is kept**: the account stays premium until `subscriptionEndsAt`.
    The downgrade to free happens when the period ends.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Renewal cancelled",
            examples=[
                OpenApiExample(
                    'Cancelled',
                    value={
                        'success': True,
                        'message': 'Your subscription has been cancelled. You will keep premium access until the end of the billing period.',
                        'accessUntil': '2026-05-01T10:00:00Z',
                        'cancelledAt': '2026-04-19T10:00:00Z'
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Nothing to cancel",
            examples=[OpenApiExample('No Subscription', value={'error': 'No active subscription'})]
        ),
        500: OpenApiResponse(description="❌ Stripe API error")
    },
    tags=["Subscription"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_subscription(request):
    try:
        user = subscription.cancel(request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'message': 'Your subscription has been cancelled. You will keep premium access until the end of the billing period.',
        'accessUntil': user.subscription_ends_at,
        'cancelledAt': user.subscription_cancelled_at,
    })


@extend_schema(
    summary="🎁 Start free trial",
    description="""
    Grant the one-time 72 hour trial.

    **🚫 Refused when**:
    - The trial was already used
    - The user is already on trial, premium or enterprise
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Trial started",
            examples=[
                OpenApiExample(
                    'Trial Started',
                    value={
                        'success': True,
                        'trialEndsAt': '2026-04-22T10:00:00Z',
                        'trialHoursRemaining': 72
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Trial not available",
            examples=[OpenApiExample('Used', value={'error': 'You have already used your free trial'})]
        )
    },
    tags=["Subscription"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def start_trial(request):
    now = timezone.now()
    try:
        user = subscription.start_trial(request.user, now)
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'trialEndsAt': user.trial_ends_at,
        'trialHoursRemaining': subscription.trial_hours_remaining(user, now),
    })


@extend_schema(
    summary="💳 Create checkout session",
    description="""
    Create a Stripe Checkout session for the premium plan.

    **📝 Process**:
    1. Creates the Stripe customer on first use
    2. Creates a subscription-mode session carrying `userId` metadata
    3. Returns the hosted checkout URL

    The upgrade itself is applied by the `checkout.session.completed` webhook.
    """,
    request=CheckoutSessionSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Session created",
            examples=[
                OpenApiExample(
                    'Session Created',
                    value={
                        'url': 'https://checkout.stripe.com/c/pay/cs_test_a1b2c3',
                        'sessionId': 'cs_test_a1b2c3'
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Already subscribed"),
        500: OpenApiResponse(description="❌ Stripe API error"),
        503: OpenApiResponse(description="🚧 Payments are temporarily unavailable")
    },
    tags=["Subscription"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_checkout_session(request):
    user = request.user
    if not is_feature_enabled('stripe_enabled'):
        return Response(
            {"error": "Payments are temporarily unavailable"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    serializer = CheckoutSessionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    if subscription.has_paid_access(user):
        return Response(
            {"error": "You already have an active subscription"},
            status=status.HTTP_400_BAD_REQUEST
        )

    success_url = serializer.validated_data.get(
        'success_url', f"{settings.FRONTEND_URL}/dashboard?checkout=success&session_id={{CHECKOUT_SESSION_ID}}"
    )
    cancel_url = serializer.validated_data.get(
        'cancel_url', f"{settings.FRONTEND_URL}/pricing?checkout=cancelled"
    )

    try:
        session = stripe_billing.create_premium_checkout_session(user, success_url, cancel_url)
    except ServiceError as e:
        return service_error_response(e)

    audit.log_admin_action(
        user,
        'checkout_session_created',
        target_user=user,
        userId=str(user.id),
        sessionId=session.id,
        customerId=user.stripe_customer_id,
    )
    logger.info("Checkout session %s created for %s", session.id, user.email)
    return Response({'url': session.url, 'sessionId': session.id})


@extend_schema(
    summary="🧾 Billing history",
    description="""
    Past charges of the current user, newest first.

    - Stripe customers: their Stripe invoices with links to the hosted receipt and PDF
    - Manually granted premium: one zero-amount entry marked `isManual`

    Amounts are in major currency units. Invoice `status` is `paid`, `pending` or `failed`.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Billing history",
            examples=[
                OpenApiExample(
                    'Stripe Customer',
                    value={
                        'billingHistory': [
                            {
                                'id': 'in_1PmX2c',
                                'date': '2026-04-01T10:00:00Z',
                                'amount': 7.0,
                                'currency': 'usd',
                                'status': 'paid',
                                'description': 'Premium Subscription - Apr 2026',
                                'invoiceUrl': 'https://invoice.stripe.com/i/acct_1/test_1',
                                'pdfUrl': 'https://pay.stripe.com/invoice/acct_1/test_1/pdf',
                                'isManual': False
                            }
                        ],
                        'hasStripeIntegration': True,
                        'subscriptionSource': 'stripe'
                    }
                )
            ]
        ),
        401: OpenApiResponse(description="🚫 Authentication required"),
        500: OpenApiResponse(description="❌ Stripe API error")
    },
    tags=["Subscription"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def billing_history(request):
    try:
        return Response(subscription.billing_history(request.user))
    except ServiceError as e:
        return service_error_response(e)
