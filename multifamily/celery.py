import os
from celery import Celery
from django.conf import settings
from celery.schedules import crontab

environment = os.environ.get("ENVIRONMENT", "development")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", f"multifamily.settings.{environment}")

# Create the Celery app
app = Celery("multifamily")

# Load Celery configuration from Django Settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discover tasks from all installed apps
app.autodiscover_tasks(lambda: settings.INSTALLED_APPS)

# Set time limit for tasks. 10 minutes hard limit and 8 minutes soft limit
app.conf.task_time_limit = 600
app.conf.task_soft_time_limit = 480

# Configure worker settings to handle connection issues
app.conf.broker_connection_retry = True
app.conf.broker_connection_retry_on_startup = True
app.conf.broker_connection_max_retries = 10

# Configure worker settings for tasks
app.conf.worker_concurrency = 2
app.conf.worker_prefetch_multiplier = 1
app.conf.worker_max_tasks_per_child = 100

# Periodic task configuration
app.conf.beat_schedule = {
    # Downgrade expired trials, every 5 minutes
    "expire-trials": {
        "task": "core.tasks.expire_trials",
        "schedule": 300.0,
        "options": {
            "queue": "celery",
            "expires": 300,
        },
    },
    # Downgrade expired manual premium/enterprise grants, every 15 minutes
    "expire-manual-subscriptions": {
        "task": "core.tasks.expire_manual_subscriptions",
        "schedule": 900.0,
        "options": {
            "queue": "celery",
            "expires": 900,
        },
    },
    # Expire stale invitations and free their seats, hourly
    "expire-invitations": {
        "task": "core.tasks.expire_invitations",
        "schedule": crontab(minute=0),
        "options": {"queue": "celery"},
    },
    # Permanently delete accounts past the grace period, daily at 03:00
    "purge-deleted-accounts": {
        "task": "core.tasks.purge_deleted_accounts",
        "schedule": crontab(hour=3, minute=0),
        "options": {"queue": "celery"},
    },
}
