from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from django.conf import settings
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample
import datetime

from core.middleware import resolve_user
from core.services import accounts
from core.services.exceptions import ServiceError
from core.services.system_settings import is_user_admin
from core.management_api.utils import service_error_response
from .serializers import UserProfileSerializer, UserProfileUpdateSerializer


@extend_schema(
    summary="👤 Current user",
    description="""
    Profile of the authenticated user with subscription, capabilities, seats and
    team membership.
    """,
    request=None,
    responses={
        200: OpenApiResponse(response=UserProfileSerializer, description="✅ Profile"),
        401: OpenApiResponse(description="🚫 Authentication required")
    },
    tags=["User"]
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserProfileSerializer(request.user).data)


@extend_schema(
    summary="✏️ Update profile",
    description="Change your first name, last name or avatar URL.",
    request=UserProfileUpdateSerializer,
    responses={
        200: OpenApiResponse(response=UserProfileSerializer, description="✅ Profile updated"),
        400: OpenApiResponse(description="❌ Validation error")
    },
    tags=["User"]
)
@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def update_profile(request):
    serializer = UserProfileUpdateSerializer(request.user, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    user = serializer.save()
    return Response(UserProfileSerializer(user).data)


@extend_schema(
    summary="🛡️ Admin check",
    description="""
    **Public.** Whether the caller is an admin. Anonymous callers get `false`.
    Answered from a short-lived cache.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Admin flag",
            examples=[OpenApiExample('Not Admin', value={'isAdmin': False})]
        )
    },
    tags=["User"]
)
@api_view(['GET'])
@permission_classes([AllowAny])
def is_admin(request):
    user = resolve_user(request)
    return Response({'isAdmin': bool(user is not None and is_user_admin(user.pk))})


@extend_schema(
    summary="🗑️ Delete account",
    description="""
    Schedule your account for deletion. It is removed permanently after a 60 day
    grace period, during which an admin can restore it. Your API tokens are revoked.

    **🚫 Refused when**:
    - Account deletion is disabled in the system settings (403)
    - You still have an active premium/enterprise subscription
    - Purchased seats are occupied by team members

    Leaving your team (if any) happens automatically and frees the owner's seat.
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Scheduled for deletion",
            examples=[
                OpenApiExample(
                    'Scheduled',
                    value={
                        'success': True,
                        'message': 'Your account has been scheduled for deletion.',
                        'markedForDeletionAt': '2026-04-19T10:00:00Z',
                        'willDeleteAt': '2026-06-18T10:00:00Z'
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Subscription or seats still active",
            examples=[
                OpenApiExample(
                    'Premium',
                    value={'error': 'Please cancel your subscription before deleting your account.'}
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Account deletion is currently disabled")
    },
    tags=["User"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def delete_account(request):
    try:
        user = accounts.request_deletion(request.user)
    except ServiceError as e:
        return service_error_response(e)

    return Response({
        'success': True,
        'message': 'Your account has been scheduled for deletion.',
        'markedForDeletionAt': user.marked_for_deletion_at,
        'willDeleteAt': user.marked_for_deletion_at + datetime.timedelta(days=settings.ACCOUNT_DELETION_GRACE_DAYS),
    })
