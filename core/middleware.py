from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework.authentication import TokenAuthentication
from rest_framework.exceptions import AuthenticationFailed
from core.services.subscription import refresh_subscription_status
from core.services.system_settings import get_system_settings, is_user_admin
from core.services.ttl_cache import build_cache
import logging

logger = logging.getLogger(__name__)

subscription_check_cache = build_cache('SUBSCRIPTION_CHECK_INTERVAL_SECONDS')

DEFAULT_MAINTENANCE_MESSAGE = "We're performing scheduled maintenance. Please check back soon."


def resolve_user(request):
    """
    User behind the request, or None.

    DRF authenticates token requests inside the view, after middleware has
    run, so the token header is checked here as well.
    """
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    try:
        result = TokenAuthentication().authenticate(request)
    except AuthenticationFailed:
        return None
    return result[0] if result else None


class MaintenanceModeMiddleware(MiddlewareMixin):
    """
    Answer 503 to API requests while maintenance mode is on.

    • Admins keep full access
    • Public routes (settings, auth, webhooks, cron, admin check) stay reachable
    • Non-API routes (Django admin, docs, health) are never blocked
    """

    PUBLIC_PREFIXES = (
        '/api/system-settings/',
        '/api/auth/',
        '/api/webhooks/',
        '/api/cron/',
        '/api/user/is-admin/',
        '/api/team/invitations/validate/',
        '/api/schema/',
        '/api/docs/',
    )

    def process_view(self, request, view_func, view_args, view_kwargs):
        path = request.path
        if not path.startswith('/api/') or path.startswith(self.PUBLIC_PREFIXES):
            return None

        system_settings = get_system_settings()
        if not system_settings.get('maintenance_mode'):
            return None

        user = resolve_user(request)
        if user is not None and is_user_admin(user.pk):
            return None

        return JsonResponse(
            {
                "error": "maintenance",
                "maintenanceMode": True,
                "message": system_settings.get('maintenance_message') or DEFAULT_MAINTENANCE_MESSAGE,
            },
            status=503
        )


class SubscriptionExpiryMiddleware(MiddlewareMixin):
    """
    Persist ended trials and manual paid periods for the requesting user.

    Each user is checked at most once per SUBSCRIPTION_CHECK_INTERVAL_SECONDS.
    Failures are logged and never block the request.
    """

    def process_view(self, request, view_func, view_args, view_kwargs):
        if not request.path.startswith('/api/'):
            return None

        user = resolve_user(request)
        if user is None or user.pk in subscription_check_cache:
            return None

        subscription_check_cache.set(user.pk, True)
        try:
            refresh_subscription_status(user)
        except Exception as exc:
            logger.error(
                f"Subscription expiry check failed for user {user.pk}: {exc}",
                exc_info=True
            )
        return None
