import logging

from core.models import AdminLog

logger = logging.getLogger(__name__)

# Actor names for entries not caused by a human admin
SYSTEM_MIDDLEWARE = 'system-middleware'
SYSTEM_SCHEDULER = 'system-scheduler'
SYSTEM_CRON = 'system-cron'
STRIPE_WEBHOOK = 'stripe-webhook'


def log_admin_action(actor, action, target_user=None, **details):
    """
    Record an audit entry.

    ``actor`` is a User (its email is stored) or a system actor string.
    """
    actor_email = getattr(actor, 'email', None) or str(actor)
    if target_user is not None:
        details.setdefault('userEmail', target_user.email)

    entry = AdminLog.objects.create(
        admin_email=actor_email,
        action=action,
        target_user_id=getattr(target_user, 'id', None),
        details=details,
    )
    logger.info(
        "Audit %s by %s", action, actor_email,
        extra={'target_user_id': str(entry.target_user_id) if entry.target_user_id else None},
    )
    return entry
