from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.authtoken.models import Token
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiResponse, OpenApiExample
import logging

from core.services import accounts
from core.services.exceptions import ServiceError
from core.services.system_settings import is_feature_enabled
from core.management_api.utils import service_error_response
from .serializers import UserRegistrationSerializer, EmailLoginSerializer, AuthUserSerializer

logger = logging.getLogger(__name__)


@extend_schema(
    summary="🔐 User Registration",
    description="""
    Register a new account and receive an API token.

    **🎁 Trial or team**:
    - Users with a pending team invitation start on the **free** tier, already linked
      to the inviting workspace. The invitation still has to be accepted.
    - Everyone else gets the one-time **72 hour trial**.

    **🚫 Refused when**:
    - Sign-ups are disabled in the system settings (403)
    - The email is already registered (400)
    """,
    request=UserRegistrationSerializer,
    responses={
        201: OpenApiResponse(
            description="✅ Account created",
            examples=[
                OpenApiExample(
                    'Trial Account',
                    value={
                        'token': '9944b09199c62bcf9418ad846dd0e4bbdfc6ee4b',
                        'user': {
                            'id': 'user-uuid',
                            'email': 'investor@example.com',
                            'first_name': 'Dana',
                            'last_name': 'Lee',
                            'subscription_status': 'trial',
                            'is_admin': False,
                            'is_team_member': False
                        }
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Validation errors",
            examples=[
                OpenApiExample(
                    'Password Mismatch',
                    value={'password_confirm': ['Passwords do not match.']}
                ),
                OpenApiExample(
                    'Email Already Exists',
                    value={'error': 'A user with this email already exists'}
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Sign-ups are currently disabled")
    },
    tags=["Authentication"]
)
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    serializer = UserRegistrationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        user = accounts.register_user(
            data['email'],
            data['password'],
            data.get('first_name', ''),
            data.get('last_name', ''),
        )
    except ServiceError as e:
        return service_error_response(e)

    token, _ = Token.objects.get_or_create(user=user)
    return Response({
        'token': token.key,
        'user': AuthUserSerializer(user).data,
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    summary="🔑 Email-Based Login",
    description="""
    Exchange email and password for an API token.

    **❌ Login Blocked If**:
    - Invalid credentials
    - Account deactivated or scheduled for deletion
    - Sign-ins are disabled in the system settings (admins can still log in)

    Send the token as `Authorization: Token <token>` on every request.
    """,
    request=EmailLoginSerializer,
    responses={
        200: OpenApiResponse(
            description="✅ Login successful",
            examples=[
                OpenApiExample(
                    'Login Success',
                    value={
                        'token': '9944b09199c62bcf9418ad846dd0e4bbdfc6ee4b',
                        'user': {
                            'id': 'user-uuid',
                            'email': 'investor@example.com',
                            'first_name': 'Dana',
                            'last_name': 'Lee',
                            'subscription_status': 'premium',
                            'is_admin': False,
                            'is_team_member': False
                        }
                    }
                )
            ]
        ),
        400: OpenApiResponse(
            description="❌ Invalid credentials",
            examples=[
                OpenApiExample(
                    'Invalid Credentials',
                    value={'non_field_errors': ['Invalid email or password.']}
                )
            ]
        ),
        403: OpenApiResponse(description="🚫 Sign-ins are currently disabled")
    },
    tags=["Authentication"]
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    serializer = EmailLoginSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.validated_data['user']
    if not user.is_admin and not is_feature_enabled('sign_in_enabled'):
        return Response(
            {"error": "Sign-ins are currently disabled"},
            status=status.HTTP_403_FORBIDDEN
        )

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    token, _ = Token.objects.get_or_create(user=user)
    logger.info("User %s logged in", user.email)

    return Response({
        'token': token.key,
        'user': AuthUserSerializer(user).data,
    }, status=status.HTTP_200_OK)


@extend_schema(
    summary="🚪 Logout",
    description="""
    Invalidate the current API token.

    **🔐 Requirements**: Must be authenticated
    """,
    request=None,
    responses={
        200: OpenApiResponse(
            description="✅ Logout successful",
            examples=[
                OpenApiExample(
                    'Logout Success',
                    value={'message': 'Logout successful'}
                )
            ]
        ),
        401: OpenApiResponse(description="🚫 Authentication required")
    },
    tags=["Authentication"]
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    Token.objects.filter(user=request.user).delete()
    return Response({'message': 'Logout successful'}, status=status.HTTP_200_OK)
