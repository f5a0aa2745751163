"""
Base settings for the multifamily project.
Containing common settings across all environments.
Environment-specific settings inherit from this base configuration.
"""

import os
from decimal import Decimal
from pathlib import Path
import logging

# Setup logging for settings module
logger = logging.getLogger(__name__)

# Load data from environment. Use os.environ[...] to ensure a key error is raised when 1 is missing. Key error results in RuntimeError
try:
    ENVIRONMENT = os.environ["ENVIRONMENT"]
    SECRET_KEY = os.environ["SECRET_KEY"]

    # Base App configuration
    TIME_ZONE = os.environ["TIME_ZONE"]
    BASE_URL = os.environ["BASE_URL"]
    FRONTEND_URL = os.environ["FRONTEND_URL"]
    csrf_trusted_origins = os.environ["CSRF_TRUSTED_ORIGINS"]

    # Database configuration
    DB_ENGINE = os.environ["DB_ENGINE"]
    DB_NAME = os.environ["DB_NAME"]
    DB_USER = os.environ["DB_USER"]
    DB_PASSWORD = os.environ["DB_PASSWORD"]
    DB_HOST = os.environ["DB_HOST"]
    DB_PORT = os.environ["DB_PORT"]
    DB_SSL_MODE = os.environ["DB_SSLMODE"]

    # Redis configuration
    REDIS_URL = os.environ["REDIS_URL"]

    # Celery configuration
    CELERY_BROKER_URL = os.environ["CELERY_BROKER_URL"]
    CELERY_RESULT_BACKEND = os.environ["CELERY_RESULT_BACKEND"]

    # Email Configuration
    EMAIL_BACKEND = os.environ["EMAIL_BACKEND"]
    EMAIL_HOST = os.environ["EMAIL_HOST"]
    EMAIL_PORT = os.environ["EMAIL_PORT"]
    EMAIL_USE_TLS = os.environ["EMAIL_USE_TLS"]
    EMAIL_USE_SSL = os.environ["EMAIL_USE_SSL"]
    EMAIL_HOST_USER = os.environ["EMAIL_HOST_USER"]
    EMAIL_HOST_PASSWORD = os.environ["EMAIL_HOST_PASSWORD"]
    DEFAULT_FROM_EMAIL = os.environ["DEFAULT_FROM_EMAIL"]
    SERVER_EMAIL = os.environ["SERVER_EMAIL"]

    # Stripe configuration
    STRIPE_SECRET_KEY = os.environ["STRIPE_SECRET_KEY"]
    STRIPE_PUBLISHABLE_KEY = os.environ["STRIPE_PUBLISHABLE_KEY"]
    STRIPE_WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
    STRIPE_PREMIUM_PRICE_ID = os.environ["STRIPE_PREMIUM_PRICE_ID"]
    STRIPE_SEAT_PRICE_ID = os.environ["STRIPE_SEAT_PRICE_ID"]
except KeyError as e:
    missing_variable = e.args[0]
    raise RuntimeError(f"Environment variable {missing_variable} is not set")

# Optional secrets. Endpoints depending on them refuse to work when unset
ADMIN_PIN = os.environ.get("ADMIN_PIN")
CRON_SECRET = os.environ.get("CRON_SECRET")


# Base App setup
API_VERSION = "v1"
LANGUAGE_CODE = "en-us"
USE_I18N = True
USE_TZ = True
BASE_DIR = Path(__file__).resolve().parent.parent.parent
CSRF_TRUSTED_ORIGINS = [
    origin.strip() for origin in csrf_trusted_origins.split(",") if origin.strip()
]
ADMINS = [("Operations", SERVER_EMAIL)]

# Database configuration
DATABASES = {
    "default": {
        "ENGINE": DB_ENGINE,
        "NAME": DB_NAME,
        "USER": DB_USER,
        "PASSWORD": DB_PASSWORD,
        "HOST": DB_HOST,
        "PORT": DB_PORT,
        "OPTIONS": {
            "sslmode": DB_SSL_MODE,
        },
    }
}
# Default primary key type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Cache configuration
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": REDIS_URL,
    }
}

# Celery configuration
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"

# Subscription and billing rules
TRIAL_DURATION_HOURS = 72
BILLING_PERIOD_DAYS = 30
PREMIUM_DURATION_DAYS_DEFAULT = 30
# Admin override value meaning "never expires" (stored as +100 years)
PREMIUM_DURATION_UNLIMITED = 9999
# List price of the premium plan, used for revenue estimates on the admin dashboard
PREMIUM_MONTHLY_PRICE = Decimal("7.00")

# Seat rules
SEAT_PRICE = Decimal("9.99")
MAX_SEATS = 25
SEAT_CURRENCY = "usd"

# Team invitation rules
INVITATION_EXPIRY_DAYS = 7
INVITATION_RESEND_COOLDOWN_MINUTES = 5

# Account lifecycle
ACCOUNT_DELETION_GRACE_DAYS = 60
ACCOUNT_PURGE_BATCH_SIZE = 10

# Admin PIN throttling
ADMIN_PIN_DELAY_SECONDS = 1
# A verified PIN unlocks the admin screens for this long
ADMIN_PIN_SESSION_HOURS = 24

# In-process TTL caches
SETTINGS_CACHE_TTL_SECONDS = 5
ADMIN_CACHE_TTL_SECONDS = 5
SUBSCRIPTION_CHECK_INTERVAL_SECONDS = 60

# Notifications younger than this are flagged as new
NOTIFICATION_NEW_MINUTES = 5

# User Model
AUTH_USER_MODEL = "core.User"

# Email based authentication backend
AUTHENTICATION_BACKENDS = [
    "core.management_api.auth_api.backends.EmailBackend",
]

# Application definition
DJANGO_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

THIRD_PARTY_APPS = [
    "rest_framework",
    "rest_framework.authtoken",
    "corsheaders",
    "django_celery_beat",
    "drf_spectacular",
    "django_filters",
]

LOCAL_APPS = [
    "core",
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "core.middleware.MaintenanceModeMiddleware",
    "core.middleware.SubscriptionExpiryMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "multifamily.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "multifamily.wsgi.application"

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

# REST Framework configuration
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.TokenAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
        "rest_framework.filters.SearchFilter",
        "rest_framework.filters.OrderingFilter",
    ],
}

# Spectacular (OpenAPI/Swagger) Settings
API_DESCRIPTION = (Path(__file__).parent / "spectacular_api_description.md").read_text()

SPECTACULAR_SETTINGS = {
    "TITLE": "Multifamily Analysis API",
    "DESCRIPTION": API_DESCRIPTION,
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "SCHEMA_PATH_PREFIX": "/api/",
    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": False,
    "TAGS": [
        {
            "name": "Authentication",
            "description": "Token issuance for local accounts",
        },
        {
            "name": "Subscription",
            "description": "Trial, premium upgrade, cancellation and Stripe checkout",
        },
        {
            "name": "Seats",
            "description": "Team seat purchase and bookkeeping",
        },
        {
            "name": "Team",
            "description": "Invitations, members and the shared workspace",
        },
        {
            "name": "Analyses",
            "description": "Saved property analyses, groups and the P&L calculator",
        },
        {
            "name": "Notifications",
            "description": "In-app notifications",
        },
        {
            "name": "User",
            "description": "Current user profile and account deletion",
        },
        {
            "name": "Admin",
            "description": "Admin-only operations - Requires is_admin and sometimes the admin PIN",
        },
        {
            "name": "Webhooks",
            "description": "Inbound Stripe events and cron triggers",
        },
    ],
    "COMPONENT_SECURITY_SCHEMES": {
        "TokenAuth": {
            "type": "apiKey",
            "in": "header",
            "name": "Authorization",
            "description": "Token-based authentication. Format: `Token <your-token>`",
        }
    },
    "SECURITY": [{"TokenAuth": []}],
}

# Logging configuration
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {funcName:s} {message}",
            "style": "{",
        },
        "basic": {
            "format": "{levelname} {module} {message}",
            "style": "{",
        },
        "detailed": {
            "()": "multifamily.logging_formatters.DetailedFormatter",
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "level": "WARNING",
            "class": "logging.StreamHandler",
            "formatter": "basic",
        },
        "django_file": {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": "django_info.log",
            "formatter": "verbose",
        },
        "multifamily_file": {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": "multifamily_info.log",
            "formatter": "verbose",
        },
        "core_file": {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": "multifamily_info.log",
            "formatter": "detailed",
        },
        "email_admins": {
            "level": "ERROR",
            "class": "django.utils.log.AdminEmailHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
    },
    "loggers": {
        "multifamily": {
            "handlers": ["console", "multifamily_file", "email_admins"],
            "propagate": False,
        },
        "django": {
            "handlers": ["console", "django_file"],
            "propagate": False,
        },
        "core": {
            "handlers": ["console", "core_file", "email_admins"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
