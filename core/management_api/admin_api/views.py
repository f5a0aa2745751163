from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from django.conf import settings
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiResponse, OpenApiExample
import datetime
import logging
import secrets
import time

from core.models import AdminLog, SystemSettings, User
from core.services import accounts, admin_dashboard, audit, subscription
from core.services.exceptions import ServiceError
from core.services.system_settings import get_system_settings, update_system_settings
from core.management_api.utils import service_error_response
from .filters import AdminLogFilter, AdminUserFilter
from .permissions import IsAppAdmin
from .serializers import (
    AdminFlagSerializer,
    AdminLogSerializer,
    AdminSubscriptionSerializer,
    AdminUserSerializer,
    BulkMarkDeletionSerializer,
    PinSerializer,
    SystemSettingsSerializer,
    TriggerExpirationsSerializer,
)

logger = logging.getLogger(__name__)


def _check_pin(request, pin):
    """
    Compare ``pin`` with ADMIN_PIN after the fixed delay.

    Returns an error Response, or None when the PIN matches.
    """
    time.sleep(settings.ADMIN_PIN_DELAY_SECONDS)

    if not settings.ADMIN_PIN:
        logger.error("ADMIN_PIN is not configured")
        return Response(
            {"error": "Admin PIN is not configured"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if not secrets.compare_digest(str(pin or ''), str(settings.ADMIN_PIN)):
        audit.log_admin_action(
            request.user,
            'pin_verification_failed',
            ip=request.META.get('REMOTE_ADDR'),
            path=request.path,
        )
        logger.warning("Wrong admin PIN from %s", request.user.email)
        return Response({"error": "Invalid PIN"}, status=status.HTTP_401_UNAUTHORIZED)

    return None


def _get_user(user_id):
    return User.objects.filter(pk=user_id).first()


@extend_schema(
    summary="🔢 Verify admin PIN",
    description="""
    Second factor for sensitive admin screens.

    **⏱️ Every attempt waits a fixed delay** before the PIN is compared.
    Failed attempts are written to the admin log.
    """,
    request=PinSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ PIN correct",
            examples=[OpenApiExample('Verified', value={'success': True, 'verified': True})]
        ),
        401: OpenApiResponse(
            description="🚫 Wrong PIN",
            examples=[OpenApiExample('Wrong', value={'error': 'Invalid PIN'})]
        ),
        403: OpenApiResponse(description="🚫 Admin access required"),
        500: OpenApiResponse(description="❌ ADMIN_PIN not configured")
    },
    tags=["Admin"]
)
@api_view(['POST'])
@permission_classes([IsAppAdmin])
def verify_pin(request):
    serializer = PinSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    error = _check_pin(request, serializer.validated_data['pin'])
    if error is not None:
        return error

    audit.log_admin_action(request.user, 'pin_verified')
    return Response({'success': True, 'verified': True})


def _pin_session_active(user):
    since = timezone.now() - datetime.timedelta(hours=settings.ADMIN_PIN_SESSION_HOURS)
    return AdminLog.objects.filter(
        admin_email=user.email,
        action='pin_verified',
        created_at__gte=since,
    ).exists()


@extend_schema(
    summary="🔎 Check admin status",
    description="""
    Tells the client whether to show the admin panel and whether to ask for the PIN first.

    `needsPin` is false for **24 hours** after the last successful PIN verification.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Admin",
            examples=[
                OpenApiExample('PIN Required', value={'isAdmin': True, 'needsPin': True}),
                OpenApiExample('PIN Verified', value={'isAdmin': True, 'needsPin': False})
            ]
        ),
        401: OpenApiResponse(description="🚫 Authentication required"),
        403: OpenApiResponse(
            description="🚫 Not an admin",
            examples=[OpenApiExample('Not Admin', value={'isAdmin': False, 'error': 'Not an admin'})]
        )
    },
    tags=["Admin"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def check_status(request):
    if not request.user.is_admin:
        return Response({'isAdmin': False, 'error': 'Not an admin'}, status=status.HTTP_403_FORBIDDEN)
    return Response({'isAdmin': True, 'needsPin': not _pin_session_active(request.user)})


@extend_schema(
    summary="📊 Admin dashboard",
    description="""
    Business overview for the admin panel.

    - **users**: totals per tier, activity in the last 7 and 30 days
    - **analyses**: totals and the average per premium user
    - **revenue**: MRR and expected revenue from Stripe-billed premium users only
    - **growth**: sign-ups, trial conversion and churn (percentages)
    - **alerts**: trials about to end and accounts pending deletion
    - **system**: row counts and current feature flags
    - **recentActivity**: the 10 newest accounts
    - **growthChart**: sign-ups per day for the last 30 days
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Dashboard figures",
            examples=[
                OpenApiExample(
                    'Dashboard',
                    value={
                        'users': {
                            'total': 120, 'premium': 30, 'premiumStripe': 25, 'premiumManual': 5,
                            'enterprise': 1, 'trial': 14, 'free': 75, 'active30d': 64, 'active7d': 31,
                            'ratios': {'premium': 25.0, 'trial': 11.7, 'free': 62.5}
                        },
                        'analyses': {'total': 410, 'thisWeek': 22, 'thisMonth': 97, 'avgPerUser': 6.2},
                        'revenue': {
                            'mrr': 175.0, 'expectedWeekly': 40.42, 'expectedMonthly': 175.0,
                            'cancelledThisMonth': 2, 'stripePremiumCount': 25, 'manualPremiumCount': 5
                        },
                        'growth': {'newSignupsWeek': 9, 'newSignupsMonth': 38, 'conversionRate': 41.1, 'churnRate': 4.0},
                        'alerts': {'trialsExpiring24h': 3, 'trialsExpiring7d': 14, 'pendingDeletions': 1},
                        'growthChart': [{'date': '2026-04-19', 'users': 2}]
                    }
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Admin access required")
    },
    tags=["Admin"]
)
@api_view(['GET'])
@permission_classes([IsAppAdmin])
def dashboard(request):
    return Response(admin_dashboard.dashboard_stats())


@extend_schema(
    methods=['GET'],
    summary="⚙️ Get system settings",
    request=None,
    responses={200: OpenApiResponse(response=SystemSettingsSerializer, description="✅ Settings")},
    tags=["Admin"]
)
@extend_schema(
    methods=['PATCH'],
    summary="⚙️ Update system settings",
    description="""
    Change feature flags or maintenance mode. Only the fields sent are changed.

    The settings cache is cleared immediately and the change is written to the admin log.
    """,
    request=SystemSettingsSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Settings updated",
            examples=[
                OpenApiExample(
                    'Maintenance On',
                    value={
                        'success': True,
                        'settings': {
                            'maintenance_mode': True,
                            'maintenance_message': 'Back at 14:00 UTC',
                            'sign_in_enabled': True,
                            'sign_up_enabled': True,
                            'stripe_enabled': True,
                            'analysis_enabled': True,
                            'pdf_export_enabled': True,
                            'saved_drafts_enabled': True,
                            'account_deletion_enabled': True,
                            'updated_by': 'admin@example.com',
                            'updated_at': '2026-04-19T10:00:00Z'
                        },
                        'changes': {'maintenance_mode': True, 'maintenance_message': 'Back at 14:00 UTC'}
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Validation error")
    },
    tags=["Admin"]
)
@api_view(['GET', 'PATCH'])
@permission_classes([IsAppAdmin])
def system_settings(request):
    if request.method == 'GET':
        return Response(SystemSettingsSerializer(SystemSettings.load()).data)

    serializer = SystemSettingsSerializer(SystemSettings.load(), data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    instance, applied = update_system_settings(serializer.validated_data, updated_by=request.user.email)
    audit.log_admin_action(request.user, 'settings_updated', changes=applied)
    return Response({
        'success': True,
        'settings': SystemSettingsSerializer(instance).data,
        'changes': applied,
    })


@extend_schema_view(
    get=extend_schema(
        summary="👥 List users",
        description="""
        All accounts, newest first. Filters: `search` (email or name),
        `subscription_status`, `account_status`, `is_team_member`, `is_admin`,
        `joined_after`, `joined_before`.
        """,
        tags=["Admin"]
    )
)
class AdminUserListView(generics.ListAPIView):
    queryset = User.objects.all().order_by('-date_joined')
    serializer_class = AdminUserSerializer
    permission_classes = [IsAppAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminUserFilter


@extend_schema(
    summary="💎 Set user subscription",
    description="""
    Manual subscription override. The source becomes `manual`.

    - `trial`: 72 hours from now
    - `premium` / `enterprise`: `premiumDurationDays` from now (default 30,
      `9999` means it never expires)
    - `free`: trial and subscription end dates are cleared
    """,
    request=AdminSubscriptionSerializer,
    responses={
        200: OpenApiResponse(response=AdminUserSerializer, description="✅ Subscription updated"),
        400: OpenApiResponse(description="❌ Invalid status"),
        404: OpenApiResponse(description="🚫 User not found")
    },
    tags=["Admin"]
)
@api_view(['PATCH'])
@permission_classes([IsAppAdmin])
def update_user_subscription(request, user_id):
    user = _get_user(user_id)
    if user is None:
        return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

    serializer = AdminSubscriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        user = subscription.admin_set_subscription(
            user,
            serializer.validated_data['status'],
            premium_duration_days=serializer.validated_data.get('premiumDurationDays'),
            admin=request.user,
        )
    except ServiceError as e:
        return service_error_response(e)

    return Response({'success': True, 'user': AdminUserSerializer(user).data})


@extend_schema(
    summary="♻️ Restore account",
    description="Cancel a pending deletion. The user can log in again.",
    request=None,
    responses={
        200: OpenApiResponse(response=AdminUserSerializer, description="✅ Restored"),
        400: OpenApiResponse(description="❌ User is not marked for deletion"),
        404: OpenApiResponse(description="🚫 User not found")
    },
    tags=["Admin"]
)
@api_view(['POST'])
@permission_classes([IsAppAdmin])
def restore_user(request, user_id):
    user = _get_user(user_id)
    if user is None:
        return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

    try:
        user = accounts.restore_account(user, request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({'success': True, 'user': AdminUserSerializer(user).data})


@extend_schema(
    summary="💥 Delete user immediately",
    description="""
    **🔢 PIN protected.** Permanently delete an account right away, without the
    grace period. Meant for spam and abuse accounts.

    Premium and enterprise accounts are refused (`code: PREMIUM_ACCOUNT`);
    downgrade them to free first. Team seats held by the account are released.
    """,
    request=PinSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Deleted",
            examples=[
                OpenApiExample(
                    'Deleted',
                    value={
                        'success': True,
                        'message': 'User permanently deleted',
                        'userId': '6f1c0a52-8f7e-4c59-9d0b-3c1f1f6a2b10',
                        'email': 'spam@example.com',
                        'analysesDeleted': 0
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Paid account",
            examples=[
                OpenApiExample(
                    'Premium',
                    value={
                        'error': 'Cannot delete premium/enterprise account',
                        'code': 'PREMIUM_ACCOUNT',
                        'message': 'This user has an active premium or enterprise subscription. '
                                   'Please downgrade them to free tier first.',
                        'subscriptionStatus': 'premium'
                    }
                )
            ]
        ),
        401: OpenApiResponse(description="🚫 Wrong PIN"),
        404: OpenApiResponse(description="🚫 User not found")
    },
    tags=["Admin"]
)
@api_view(['DELETE'])
@permission_classes([IsAppAdmin])
def delete_user_now(request, user_id):
    serializer = PinSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    error = _check_pin(request, serializer.validated_data['pin'])
    if error is not None:
        return error

    user = _get_user(user_id)
    if user is None:
        return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

    try:
        result = accounts.delete_user_now(user, request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({'success': True, 'message': 'User permanently deleted', **result})


@extend_schema(
    summary="🛡️ Grant or revoke admin",
    description="""
    **🔢 PIN protected.** Set `isAdmin` on another account. Written to the admin
    log as `admin_granted` or `admin_revoked`. Admins cannot revoke themselves.
    """,
    request=AdminFlagSerializer,
    responses={
        200: OpenApiResponse(response=AdminUserSerializer, description="✅ Admin flag updated"),
        400: OpenApiResponse(description="❌ Validation error or own admin access"),
        401: OpenApiResponse(description="🚫 Wrong PIN"),
        404: OpenApiResponse(description="🚫 User not found")
    },
    tags=["Admin"]
)
@api_view(['PATCH'])
@permission_classes([IsAppAdmin])
def set_user_admin(request, user_id):
    serializer = AdminFlagSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    error = _check_pin(request, serializer.validated_data['pin'])
    if error is not None:
        return error

    user = _get_user(user_id)
    if user is None:
        return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

    try:
        user = accounts.set_admin_flag(user, serializer.validated_data['isAdmin'], request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({'success': True, 'user': AdminUserSerializer(user).data})


@extend_schema(
    summary="🗑️ Bulk mark users for deletion",
    description="""
    **🔢 PIN protected.** Schedule several accounts for deletion at once.

    Premium and enterprise accounts are refused as a whole (`code: PREMIUM_ACCOUNTS`);
    downgrade them first. Accounts already scheduled are counted but left unchanged.
    """,
    request=BulkMarkDeletionSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Marked",
            examples=[
                OpenApiExample(
                    'Marked',
                    value={'success': True, 'marked': 2, 'alreadyMarked': 1, 'total': 3}
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Paid accounts in the selection",
            examples=[
                OpenApiExample(
                    'Premium',
                    value={
                        'error': 'Cannot mark premium/enterprise accounts for deletion. Please downgrade first.',
                        'code': 'PREMIUM_ACCOUNTS',
                        'premiumUsers': [{'email': 'vip@example.com', 'status': 'premium'}]
                    }
                )
            ]
        ),
        401: OpenApiResponse(description="🚫 Wrong PIN"),
        404: OpenApiResponse(description="🚫 No users found")
    },
    tags=["Admin"]
)
@api_view(['POST'])
@permission_classes([IsAppAdmin])
def bulk_mark_deletion(request):
    serializer = BulkMarkDeletionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    error = _check_pin(request, serializer.validated_data['pin'])
    if error is not None:
        return error

    try:
        result = accounts.bulk_mark_for_deletion(serializer.validated_data['userIds'], request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({'success': True, **result})


@extend_schema(
    summary="⏰ Run expiry jobs now",
    description="""
    Run the scheduled expiry jobs immediately.

    `task`: `all` (default), `trials`, `subscriptions`, `invitations` or `accounts`.
    """,
    request=TriggerExpirationsSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Jobs finished",
            examples=[
                OpenApiExample(
                    'All',
                    value={
                        'success': True,
                        'triggeredBy': 'admin@example.com',
                        'timestamp': '2026-04-19T10:00:00+00:00',
                        'tasks': {
                            'trials': {'expired': 2},
                            'subscriptions': {'expired': 0},
                            'invitations': {'expired': 1},
                            'accounts': {'deleted': 0, 'failed': 0, 'emails': []}
                        }
                    }
                )
            ]
        ),
        400: OpenApiResponse(description="❌ Invalid task")
    },
    tags=["Admin"]
)
@api_view(['POST'])
@permission_classes([IsAppAdmin])
def trigger_expirations(request):
    serializer = TriggerExpirationsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = accounts.run_expirations(serializer.validated_data['task'], request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({'success': True, **result})


@extend_schema_view(
    get=extend_schema(
        summary="📜 Admin log",
        description="""
        Audit trail of admin actions, Stripe events and automated jobs, newest first.
        Filters: `action`, `admin_email`, `target_user_id`, `created_after`, `created_before`.
        """,
        tags=["Admin"]
    )
)
class AdminLogListView(generics.ListAPIView):
    queryset = AdminLog.objects.all().order_by('-created_at')
    serializer_class = AdminLogSerializer
    permission_classes = [IsAppAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminLogFilter


@extend_schema(
    summary="🚦 Public system settings",
    description="""
    **Public.** Feature flags the client needs before login: maintenance mode and
    which features are enabled. Reachable during maintenance.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Flags",
            examples=[
                OpenApiExample(
                    'Defaults',
                    value={
                        'maintenanceMode': False,
                        'maintenanceMessage': None,
                        'signInEnabled': True,
                        'signUpEnabled': True,
                        'stripeEnabled': True,
                        'analysisEnabled': True,
                        'pdfExportEnabled': True,
                        'savedDraftsEnabled': True,
                        'accountDeletionEnabled': True
                    }
                )
            ]
        )
    },
    tags=["Admin"]
)
@api_view(['GET'])
@permission_classes([AllowAny])
def public_system_settings(request):
    flags = get_system_settings()
    return Response({
        'maintenanceMode': flags['maintenance_mode'],
        'maintenanceMessage': flags['maintenance_message'],
        'signInEnabled': flags['sign_in_enabled'],
        'signUpEnabled': flags['sign_up_enabled'],
        'stripeEnabled': flags['stripe_enabled'],
        'analysisEnabled': flags['analysis_enabled'],
        'pdfExportEnabled': flags['pdf_export_enabled'],
        'savedDraftsEnabled': flags['saved_drafts_enabled'],
        'accountDeletionEnabled': flags['account_deletion_enabled'],
    })
