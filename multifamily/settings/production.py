"""
Production settings for the multifamily project.

These settings are optimized for container deployment with security, performance,
and monitoring in mind.
"""

from .base import *
import os
import sys
import logging

# Setup logging
logger = logging.getLogger(__name__)
logger.info(f"Loaded {__name__} settings module")

# Production environment identifier
ENVIRONMENT = 'production'

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = False

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "").split(",")
if not ALLOWED_HOSTS or ALLOWED_HOSTS == [""]:
    raise ValueError("ALLOWED_HOSTS must be set in production")

# Security settings (strict for production)
SECURE_SSL_REDIRECT = os.environ.get("SECURE_SSL_REDIRECT", "True").lower() == "true"
SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "True").lower() == "true"
CSRF_COOKIE_SECURE = os.environ.get("CSRF_COOKIE_SECURE", "True").lower() == "true"
SECURE_BROWSER_XSS_FILTER = os.environ.get("SECURE_BROWSER_XSS_FILTER", "True").lower() == "true"
SECURE_CONTENT_TYPE_NOSNIFF = os.environ.get("SECURE_CONTENT_TYPE_NOSNIFF", "True").lower() == "true"
X_FRAME_OPTIONS = os.environ.get("X_FRAME_OPTIONS", "DENY")

# Additional security headers
SECURE_HSTS_SECONDS = 31536000  # 1 year
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
SECURE_REFERRER_POLICY = "strict-origin-when-cross-origin"

# CORS Settings (configurable for production)
CORS_ALLOW_ALL_ORIGINS = os.environ.get("CORS_ALLOW_ALL_ORIGINS", "False").lower() == "true"
cors_origins = os.environ.get("CORS_ALLOWED_ORIGINS", FRONTEND_URL)
CORS_ALLOWED_ORIGINS = [origin.strip() for origin in cors_origins.split(",") if origin.strip()] if cors_origins else []
CORS_ALLOW_CREDENTIALS = True

# Static files served by whitenoise
MIDDLEWARE.insert(1, 'whitenoise.middleware.WhiteNoiseMiddleware')
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Database configuration with SSL for production
DATABASES['default']['OPTIONS'].update({
    'sslmode': 'require',
})

# Cache configuration using Redis
CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': REDIS_URL,
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            'CONNECTION_POOL_KWARGS': {
                'max_connections': 20,
                'retry_on_timeout': True,
            },
        },
        'KEY_PREFIX': 'multifamily',
        'TIMEOUT': 300,  # 5 minutes default timeout
    }
}

# Session configuration
SESSION_ENGINE = 'django.contrib.sessions.backends.cache'
SESSION_CACHE_ALIAS = 'default'

# Email configuration for production
EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_PORT = int(EMAIL_PORT)
EMAIL_USE_TLS = EMAIL_USE_TLS.lower() == 'true'
EMAIL_USE_SSL = EMAIL_USE_SSL.lower() == 'true'

# Logging for production
LOGGING['formatters']['verbose']['format'] = (
    '{levelname} {asctime} {module} {process:d} {thread:d} {message}'
)

# Structured logging to stdout for the container runtime
LOGGING['handlers']['stdout'] = {
    'class': 'logging.StreamHandler',
    'stream': sys.stdout,
    'formatter': 'detailed',
}
LOGGING['loggers']['core']['handlers'] = ['stdout', 'core_file', 'email_admins']

LOGGING['loggers'].update({
    'gunicorn': {
        'handlers': ['console'],
        'level': 'INFO',
        'propagate': False,
    },
    'celery': {
        'handlers': ['stdout'],
        'level': 'INFO',
        'propagate': False,
    },
})

# Performance optimizations
CONN_MAX_AGE = 60  # Keep database connections alive for 60 seconds
