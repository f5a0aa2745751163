"""
Periodic maintenance tasks.

All of them are scheduled by Celery beat (see ``multifamily/celery.py``) and
are safe to run repeatedly: each one only touches rows whose deadline has
passed and leaves them in a state the next run ignores.
"""
import logging

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from core.services import accounts, audit

# ─────────────────────────────
# Logging
# ─────────────────────────────
logger = logging.getLogger(__name__)


# ─────────────────────────────
# 1) Trial expiry
# ─────────────────────────────
@shared_task(bind=True, name="core.tasks.expire_trials")
def expire_trials(self):
    """Ended trials → free"""
    now = timezone.now()
    try:
        result = accounts.expire_trials(now, actor=audit.SYSTEM_SCHEDULER)
        if result["expired"]:
            logger.info(f"⏰ Expired {result['expired']} trials")
        return {"success": True, **result, "timestamp": now.isoformat()}
    except Exception as e:
        logger.error(f"❌ Trial expiry failed: {str(e)}")
        return {"success": False, "error": str(e), "timestamp": now.isoformat()}


# ─────────────────────────────
# 2) Manual (admin-granted) subscription expiry
# ─────────────────────────────
@shared_task(bind=True, name="core.tasks.expire_manual_subscriptions")
def expire_manual_subscriptions(self):
    """
    Ended premium/enterprise periods → free.

    Stripe-managed subscriptions are skipped; their end is reported by the
    ``customer.subscription.deleted`` webhook.
    """
    now = timezone.now()
    try:
        result = accounts.expire_manual_subscriptions(now, actor=audit.SYSTEM_SCHEDULER)
        if result["expired"]:
            logger.info(f"⏰ Expired {result['expired']} manual subscriptions")
        return {"success": True, **result, "timestamp": now.isoformat()}
    except Exception as e:
        logger.error(f"❌ Subscription expiry failed: {str(e)}")
        return {"success": False, "error": str(e), "timestamp": now.isoformat()}


# ─────────────────────────────
# 3) Invitation expiry
# ─────────────────────────────
@shared_task(bind=True, name="core.tasks.expire_invitations")
def expire_invitations(self):
    now = timezone.now()
    try:
        result = accounts.expire_invitations(now)
        if result["expired"]:
            logger.info(f"✉️ Expired {result['expired']} invitations")
        return {"success": True, **result, "timestamp": now.isoformat()}
    except Exception as e:
        logger.error(f"❌ Invitation expiry failed: {str(e)}")
        return {"success": False, "error": str(e), "timestamp": now.isoformat()}


# ─────────────────────────────
# 4) Account purge after the deletion grace period
# ─────────────────────────────
@shared_task(bind=True, name="core.tasks.purge_deleted_accounts")
def purge_deleted_accounts(self):
    now = timezone.now()
    try:
        result = accounts.purge_deleted_accounts(
            now, limit=settings.ACCOUNT_PURGE_BATCH_SIZE, actor=audit.SYSTEM_SCHEDULER
        )
        if result["deleted"] or result["failed"]:
            logger.warning(f"🧹 Purged {result['deleted']} accounts, {result['failed']} failed")
        return {"success": result["failed"] == 0, **result, "timestamp": now.isoformat()}
    except Exception as e:
        logger.error(f"❌ Account purge failed: {str(e)}")
        return {"success": False, "error": str(e), "timestamp": now.isoformat()}
