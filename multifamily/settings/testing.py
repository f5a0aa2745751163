"""
Testing settings for the multifamily project.

These settings are optimized for fast test execution and should only be used
when running tests.
"""

import os

# base.py fails fast on missing variables; seed harmless values for the test run
for _name, _value in {
    "ENVIRONMENT": "testing",
    "SECRET_KEY": "test-secret-key-not-for-production",
    "TIME_ZONE": "UTC",
    "BASE_URL": "http://testserver",
    "FRONTEND_URL": "http://localhost:3000",
    "CSRF_TRUSTED_ORIGINS": "http://testserver",
    "DB_ENGINE": "django.db.backends.sqlite3",
    "DB_NAME": ":memory:",
    "DB_USER": "",
    "DB_PASSWORD": "",
    "DB_HOST": "",
    "DB_PORT": "",
    "DB_SSLMODE": "disable",
    "REDIS_URL": "redis://localhost:6379/0",
    "CELERY_BROKER_URL": "memory://",
    "CELERY_RESULT_BACKEND": "cache+memory://",
    "EMAIL_BACKEND": "django.core.mail.backends.locmem.EmailBackend",
    "EMAIL_HOST": "localhost",
    "EMAIL_PORT": "25",
    "EMAIL_USE_TLS": "False",
    "EMAIL_USE_SSL": "False",
    "EMAIL_HOST_USER": "",
    "EMAIL_HOST_PASSWORD": "",
    "DEFAULT_FROM_EMAIL": "noreply@test.com",
    "SERVER_EMAIL": "server@test.com",
    "STRIPE_SECRET_KEY": "sk_test_dummy",
    "STRIPE_PUBLISHABLE_KEY": "pk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_dummy",
    "STRIPE_PREMIUM_PRICE_ID": "price_premium_test",
    "STRIPE_SEAT_PRICE_ID": "price_seat_test",
}.items():
    os.environ.setdefault(_name, _value)

from .base import *

# Test-specific settings
DEBUG = False
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',  # Fast hashing for tests
]

# Use in-memory database for faster tests
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# Disable migrations for faster test setup
class DisableMigrations:
    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None

MIGRATION_MODULES = DisableMigrations()

# Use dummy cache for tests
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
    }
}

# Disable Celery for tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'

# Email backend for tests
EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'test_staticfiles'

# Security settings (relaxed for tests)
ALLOWED_HOSTS = ['testserver', 'localhost', '127.0.0.1']
SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# CORS settings for tests
CORS_ALLOW_ALL_ORIGINS = True

# Known secrets so PIN and cron checks can be exercised
ADMIN_PIN = '424242'
CRON_SECRET = 'test-cron-secret'
ADMIN_PIN_DELAY_SECONDS = 0

# Logging configuration for tests
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
    },
    'loggers': {
        'django': {
            'handlers': ['null'],
            'propagate': False,
        },
        'multifamily': {
            'handlers': ['null'],
            'propagate': False,
        },
        'core': {
            'handlers': ['null'],
            'propagate': False,
        },
    },
}

# REST Framework settings for tests
REST_FRAMEWORK['DEFAULT_AUTHENTICATION_CLASSES'] = [
    'rest_framework.authentication.TokenAuthentication',
    'rest_framework.authentication.SessionAuthentication',
]
REST_FRAMEWORK['TEST_REQUEST_DEFAULT_FORMAT'] = 'json'
