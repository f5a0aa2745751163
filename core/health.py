"""
Liveness and readiness checks for load balancers and container orchestration.
"""

import logging
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from django.db import connections
from django.core.cache import cache
from django.conf import settings
import redis
import time

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["GET", "HEAD"])
def health_check(request):
    """Process is up. Does not touch any dependency"""
    return JsonResponse({
        'status': 'healthy',
        'timestamp': time.time(),
        'version': getattr(settings, 'API_VERSION', '1.0.0'),
    })


def _check_database():
    try:
        connections['default'].cursor()
        return True
    except Exception as e:
        logger.error(f"Database check failed: {str(e)}")
        return False


def _check_cache():
    try:
        cache.set('health_check', 'ok', 30)
        return cache.get('health_check') == 'ok'
    except Exception as e:
        logger.error(f"Cache check failed: {str(e)}")
        return False


def _check_broker():
    try:
        redis.from_url(settings.CELERY_BROKER_URL).ping()
        return True
    except Exception as e:
        logger.error(f"Broker check failed: {str(e)}")
        return False


@csrf_exempt
@require_http_methods(["GET", "HEAD"])
def readiness_check(request):
    """
    Database, cache and Celery broker must all answer.

    A dummy cache (tests, local runs) always reports a miss, so it is not
    counted against readiness.
    """
    checks = {
        'database': _check_database(),
        'cache': _check_cache(),
        'broker': _check_broker(),
    }
    dummy_cache = settings.CACHES['default']['BACKEND'].endswith('DummyCache')
    required = [name for name in checks if not (name == 'cache' and dummy_cache)]
    healthy = all(checks[name] for name in required)

    return JsonResponse({
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': time.time(),
        'checks': checks,
        'version': getattr(settings, 'API_VERSION', '1.0.0'),
    }, status=200 if healthy else 503)
