"""
Development settings for the multifamily project.

These settings are used for local development and testing using docker.
"""

from .base import *
import os


# App configuration
DEBUG = True
ALLOWED_HOSTS = ["*"]

# Security settings
SECURE_SSL_REDIRECT = False
SECURE_BROWSER_XSS_FILTER = False
SECURE_CONTENT_TYPE_NOSNIFF = False
X_FRAME_OPTIONS = os.environ.get("X_FRAME_OPTIONS", "DENY")

# CORS configuration
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",  # Next.js development server
    "http://127.0.0.1:3000",
    "http://localhost:5173",  # Vite development server
    "http://127.0.0.1:5173",
]
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = [
    "accept",
    "accept-encoding",
    "authorization",
    "content-type",
    "dnt",
    "origin",
    "user-agent",
    "x-csrftoken",
    "x-requested-with",
    "stripe-signature",
]

# Session Configuration
SESSION_COOKIE_AGE = 86400
SESSION_COOKIE_HTTPONLY = False
SESSION_COOKIE_SECURE = False
SESSION_COOKIE_SAMESITE = "Lax"

# CSRF Configuration
CSRF_COOKIE_HTTPONLY = False
CSRF_COOKIE_SECURE = False
CSRF_COOKIE_SAMESITE = "Lax"
CSRF_TRUSTED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

# Static configuration
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Development-specific apps
INSTALLED_APPS += [
    "django_extensions",
]

# Cache configuration
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Debug logging for development and file logging
LOGGING["handlers"]["console"]["level"] = "DEBUG"
LOGGING["handlers"]["core_file"] = {
    "level": "INFO",
    "class": "logging.FileHandler",
    "filename": "app_core_info.log",
    "formatter": "detailed",
}

LOGGING["loggers"]["multifamily"]["handlers"] = ["console", "multifamily_file"]
LOGGING["loggers"]["django"]["handlers"] = ["console", "django_file"]
LOGGING["loggers"]["core"]["handlers"] = ["console", "core_file"]

# No artificial PIN delay locally
ADMIN_PIN_DELAY_SECONDS = 0

# Django extensions configuration
SHELL_PLUS = "ipython"
SHELL_PLUS_PRINT_SQL = True

# Rest framework settings for development
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] += [
    "rest_framework.renderers.BrowsableAPIRenderer",
]
REST_FRAMEWORK["DEFAULT_AUTHENTICATION_CLASSES"] += [
    "rest_framework.authentication.SessionAuthentication",
]
