"""
URL configuration for project.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)
from rest_framework.permissions import AllowAny
from core.health import health_check, readiness_check


# Create public versions of documentation views
class PublicSpectacularAPIView(SpectacularAPIView):
    permission_classes = [AllowAny]


class PublicSpectacularSwaggerView(SpectacularSwaggerView):
    permission_classes = [AllowAny]


class PublicSpectacularRedocView(SpectacularRedocView):
    permission_classes = [AllowAny]


@csrf_exempt
def api_root(request):
    """API root endpoint that lists available API endpoints"""
    return JsonResponse(
        {
            "message": "Multifamily Analyzer API v1",
            "endpoints": {
                "auth": "/api/auth/",
                "subscription": "/api/subscription/",
                "seats": "/api/seats/",
                "team": "/api/team/",
                "notifications": "/api/notifications/",
                "analyses": "/api/analyses/",
                "groups": "/api/groups/",
                "user": "/api/user/",
                "admin": "/api/admin/",
                "system-settings": "/api/system-settings/",
                "webhooks": "/api/webhooks/",
                "cron": "/api/cron/",
                "docs": "/api/docs/",
                "schema": "/api/schema/",
            },
        }
    )


urlpatterns = [
    path("django-admin/", admin.site.urls),
    # Liveness and readiness checks
    path("health/", health_check, name="health_check"),
    path("health/readiness/", readiness_check, name="readiness_check"),
    path("api/", api_root, name="api-root"),
    path("api/schema/", PublicSpectacularAPIView.as_view(), name="schema"),
    path(
        "api/docs/",
        PublicSpectacularSwaggerView.as_view(url_name="schema"),
        name="swagger-ui",
    ),
    path(
        "api/redoc/",
        PublicSpectacularRedocView.as_view(url_name="schema"),
        name="redoc",
    ),
    path(
        "api/auth/",
        include(
            ("core.management_api.auth_api.urls", "auth_api"),
            namespace="auth_api",
        ),
    ),
    path(
        "api/subscription/",
        include(
            ("core.management_api.subscription_api.urls", "subscription_api"),
            namespace="subscription_api",
        ),
    ),
    path(
        "api/seats/",
        include(
            ("core.management_api.seat_api.urls", "seat_api"),
            namespace="seat_api",
        ),
    ),
    path(
        "api/team/",
        include(
            ("core.management_api.team_api.urls", "team_api"),
            namespace="team_api",
        ),
    ),
    path(
        "api/notifications/",
        include(
            ("core.management_api.notification_api.urls", "notification_api"),
            namespace="notification_api",
        ),
    ),
    path(
        "api/user/",
        include(
            ("core.management_api.user_api.urls", "user_api"),
            namespace="user_api",
        ),
    ),
    path(
        "api/admin/",
        include(
            ("core.management_api.admin_api.urls", "admin_api"),
            namespace="admin_api",
        ),
    ),
    path(
        "api/system-settings/",
        include(
            ("core.management_api.admin_api.public_urls", "system_settings_api"),
            namespace="system_settings_api",
        ),
    ),
    path(
        "api/webhooks/",
        include(
            ("core.management_api.webhook_api.urls", "webhook_api"),
            namespace="webhook_api",
        ),
    ),
    path(
        "api/cron/",
        include(
            ("core.management_api.webhook_api.cron_urls", "cron_api"),
            namespace="cron_api",
        ),
    ),
    # Router resources: /api/analyses/ and /api/groups/
    path(
        "api/",
        include(
            ("core.management_api.analysis_api.urls", "analysis_api"),
            namespace="analysis_api",
        ),
    ),
]
