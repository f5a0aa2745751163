"""
Staging settings for the multifamily project.
"""

from .base import *
import os
import logging

logger = logging.getLogger(__name__)

# Load data from environment. Use os.environ[...] to ensure a key error is raised when 1 is missing. Key error results in RuntimeError
try:
    ALLOWED_HOSTS = [host.strip() for host in os.environ["ALLOWED_HOSTS"].split(",") if host.strip()]

    # Security configuration
    SECURE_SSL_REDIRECT = os.environ["SECURE_SSL_REDIRECT"].lower() == "true"
    SESSION_COOKIE_SECURE = os.environ["SESSION_COOKIE_SECURE"].lower() == "true"
    CSRF_COOKIE_SECURE = os.environ["CSRF_COOKIE_SECURE"].lower() == "true"
    X_FRAME_OPTIONS = os.environ["X_FRAME_OPTIONS"]
except KeyError as e:
    missing_variable = e.args[0]
    raise RuntimeError(f"Environment variable {missing_variable} is not set")

DEBUG = False

# CORS configuration
CORS_ALLOWED_ORIGINS = [FRONTEND_URL]
CORS_ALLOW_CREDENTIALS = True

# Static files served by whitenoise
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Email configuration
EMAIL_PORT = int(EMAIL_PORT)
EMAIL_USE_TLS = EMAIL_USE_TLS.lower() == "true"
EMAIL_USE_SSL = EMAIL_USE_SSL.lower() == "true"

# Verbose logging on staging
LOGGING["handlers"]["console"]["level"] = "INFO"
LOGGING["loggers"]["core"]["level"] = "DEBUG"
