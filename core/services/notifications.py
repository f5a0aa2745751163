import datetime
import logging

from django.conf import settings
from django.utils import timezone

from core.models import Notification

logger = logging.getLogger(__name__)


def notify(user, notification_type, title, message, link=None, **metadata):
    """Create an in-app notification for ``user``"""
    notification = Notification.objects.create(
        user=user,
        type=notification_type,
        title=title,
        message=message,
        link=link,
        metadata=metadata,
    )
    logger.debug("Notification %s created for %s", notification_type, user.email)
    return notification


def is_new(notification, now=None):
    """Whether the notification was created within the 'new' window"""
    now = now or timezone.now()
    return now - notification.created_at < datetime.timedelta(minutes=settings.NOTIFICATION_NEW_MINUTES)


def mark_read(notification, now=None):
    if notification.is_read:
        return notification
    notification.is_read = True
    notification.read_at = now or timezone.now()
    notification.save(update_fields=['is_read', 'read_at'])
    return notification


def mark_all_read(user, now=None):
    """Mark every unread notification of ``user`` as read. Returns the count"""
    return Notification.objects.filter(user=user, is_read=False).update(
        is_read=True, read_at=now or timezone.now()
    )
