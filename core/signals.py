from django.db.models.signals import post_delete, post_save, pre_delete
from django.dispatch import receiver

from core.models import SystemSettings, WorkspaceTeamMember
from core.services.system_settings import admin_cache, clear_settings_cache

import logging

logger = logging.getLogger(__name__)


@receiver(post_save, sender=SystemSettings)
@receiver(post_delete, sender=SystemSettings)
def invalidate_settings_cache(sender, instance, **kwargs):
    """Drop cached feature flags whenever the settings row changes"""
    clear_settings_cache()


@receiver(post_save, sender='core.User')
def invalidate_admin_flag(sender, instance, **kwargs):
    admin_cache.invalidate(instance.pk)


@receiver(pre_delete, sender='core.User')
def release_seat_of_deleted_member(sender, instance, **kwargs):
    """
    A member deleted directly (admin site, shell) still gives the seat back.

    The regular purge detaches memberships first, so this only fires for
    deletions that bypass it.
    """
    from core.services import seat_ledger

    membership = WorkspaceTeamMember.objects.select_related('owner').filter(member=instance).first()
    if membership is None:
        return
    logger.info(f"Releasing seat of {membership.owner.email} for deleted member {instance.email}")
    seat_ledger.release(membership.owner)
