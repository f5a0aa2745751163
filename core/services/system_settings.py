"""
Cached access to global feature flags and the admin flag of users.
"""
import logging

from core.models import SystemSettings, User
from core.services.ttl_cache import build_cache

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'maintenance_mode': False,
    'maintenance_message': None,
    'sign_in_enabled': True,
    'sign_up_enabled': True,
    'stripe_enabled': True,
    'analysis_enabled': True,
    'pdf_export_enabled': True,
    'saved_drafts_enabled': True,
    'account_deletion_enabled': True,
}

SETTINGS_KEY = 'system-settings'

settings_cache = build_cache('SETTINGS_CACHE_TTL_SECONDS')
admin_cache = build_cache('ADMIN_CACHE_TTL_SECONDS')


def _load_settings():
    instance = SystemSettings.objects.order_by('id').first()
    if instance is None:
        return dict(DEFAULT_SETTINGS)
    return {field: getattr(instance, field) for field in SystemSettings.FLAG_FIELDS}


def get_system_settings():
    """Current flags as a dict. Defaults apply while no settings row exists"""
    return settings_cache.get_or_set(SETTINGS_KEY, _load_settings)


def is_feature_enabled(flag):
    return bool(get_system_settings().get(flag, DEFAULT_SETTINGS.get(flag, False)))


def clear_settings_cache():
    settings_cache.clear()


def update_system_settings(changes, updated_by):
    """Apply ``changes`` (flag → value) to the settings row and drop the cache"""
    instance = SystemSettings.load()
    applied = {}
    for field, value in changes.items():
        if field in SystemSettings.FLAG_FIELDS:
            setattr(instance, field, value)
            applied[field] = value
    instance.updated_by = updated_by
    instance.save()
    clear_settings_cache()
    logger.info("System settings updated by %s: %s", updated_by, sorted(applied))
    return instance, applied


def _load_admin_flag(user_id):
    return bool(User.objects.filter(pk=user_id, is_admin=True).exists())


def is_user_admin(user_id):
    """Admin flag of a user, cached briefly for per-request checks"""
    return admin_cache.get_or_set(user_id, lambda: _load_admin_flag(user_id))
