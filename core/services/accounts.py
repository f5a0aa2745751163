"""
Account lifecycle: sign-up, deletion grace period and the periodic expiry jobs.
"""
import datetime
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.authtoken.models import Token

from core.models import PENDING_INVITATION_STATUSES, User, WorkspaceInvitation, WorkspaceTeamMember
from core.services import audit, invitations
from core.services.exceptions import Forbidden, NotFound, ValidationFailed
from core.services.subscription import PAID_STATUSES, has_paid_access
from core.services.system_settings import is_feature_enabled

logger = logging.getLogger(__name__)


# ========== SIGN-UP ==========

def pending_invitation_for(email):
    """Most recent pending-like invitation addressed to ``email``"""
    return (
        WorkspaceInvitation.objects.select_related('owner')
        .filter(invited_email=email.lower(), status__in=PENDING_INVITATION_STATUSES)
        .order_by('-sent_at')
        .first()
    )


def register_user(email, password, first_name='', last_name='', now=None):
    """
    Create an account.

    An invited user starts on the free tier already linked to the inviting
    workspace (the invitation still has to be accepted). Everyone else gets
    the one-time trial.
    """
    now = now or timezone.now()
    if not is_feature_enabled('sign_up_enabled'):
        raise Forbidden("Sign-ups are currently disabled")

    email = email.strip().lower()
    if User.objects.filter(email=email).exists():
        raise ValidationFailed("A user with this email already exists")

    with transaction.atomic():
        invitation = pending_invitation_for(email)
        if invitation is not None:
            user = User.objects.create_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                subscription_status='free',
                is_team_member=True,
                team_workspace_owner=invitation.owner,
            )
            invitation.invited_user = user
            invitation.save(update_fields=['invited_user', 'updated_at'])
            logger.info("User %s signed up through an invitation from %s", email, invitation.owner.email)
        else:
            user = User.objects.create_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                subscription_status='trial',
                trial_ends_at=now + datetime.timedelta(hours=settings.TRIAL_DURATION_HOURS),
                has_used_trial=True,
            )
            logger.info("User %s signed up with a trial until %s", email, user.trial_ends_at)
    return user


# ========== DELETION ==========

def request_deletion(user, now=None):
    """Self-service deletion: starts the grace period after which the account is purged"""
    now = now or timezone.now()
    if not is_feature_enabled('account_deletion_enabled'):
        raise Forbidden("Account deletion is currently disabled")
    if has_paid_access(user, now):
        raise ValidationFailed("Please cancel your subscription before deleting your account.")
    if user.purchased_seats > 0 and user.used_seats > 0:
        raise ValidationFailed("Please remove all team members before deleting your account.")

    with transaction.atomic():
        if user.is_team_member:
            invitations.leave(user)
            user.refresh_from_db()

        user.account_status = 'pending_deletion'
        user.marked_for_deletion_at = now
        user.deleted_by = 'user'
        user.save(update_fields=['account_status', 'marked_for_deletion_at', 'deleted_by'])
        Token.objects.filter(user=user).delete()

        audit.log_admin_action(
            user,
            'user_marked_for_deletion',
            target_user=user,
            userId=str(user.id),
            markedBy='user',
            willDeleteAt=now + datetime.timedelta(days=settings.ACCOUNT_DELETION_GRACE_DAYS),
        )
    return user


def restore_account(user, admin):
    if user.account_status != 'pending_deletion':
        raise ValidationFailed("User is not marked for deletion")

    previously_marked_at = user.marked_for_deletion_at
    previously_deleted_by = user.deleted_by
    user.account_status = 'active'
    user.marked_for_deletion_at = None
    user.deleted_by = None
    user.save(update_fields=['account_status', 'marked_for_deletion_at', 'deleted_by'])

    audit.log_admin_action(
        admin,
        'user_account_restored',
        target_user=user,
        userId=str(user.id),
        previouslyMarkedAt=previously_marked_at,
        previouslyDeletedBy=previously_deleted_by,
    )
    return user


def bulk_mark_for_deletion(user_ids, admin, now=None):
    """Mark several accounts for deletion. Paid accounts must be downgraded first"""
    now = now or timezone.now()
    users = list(User.objects.filter(id__in=user_ids))
    if not users:
        raise NotFound("No users found with the provided IDs")

    premium_users = [u for u in users if u.subscription_status in PAID_STATUSES]
    if premium_users:
        raise ValidationFailed(
            "Cannot mark premium/enterprise accounts for deletion. Please downgrade first.",
            code='PREMIUM_ACCOUNTS',
            premiumUsers=[{'email': u.email, 'status': u.subscription_status} for u in premium_users],
        )

    already_marked = [u for u in users if u.account_status == 'pending_deletion']
    to_mark = [u for u in users if u.account_status != 'pending_deletion']

    with transaction.atomic():
        if to_mark:
            User.objects.filter(id__in=[u.id for u in to_mark]).update(
                account_status='pending_deletion',
                marked_for_deletion_at=now,
                deleted_by=admin.email,
            )
            Token.objects.filter(user__in=to_mark).delete()

        audit.log_admin_action(
            admin,
            'bulk_users_marked_for_deletion',
            totalRequested=len(user_ids),
            found=len(users),
            marked=len(to_mark),
            alreadyMarked=len(already_marked),
            userEmails=[u.email for u in to_mark],
            markedBy=admin.email,
        )

    return {
        'marked': len(to_mark),
        'alreadyMarked': len(already_marked),
        'total': len(users),
    }


def _detach_before_purge(user):
    membership = WorkspaceTeamMember.objects.select_related('owner', 'member').filter(member=user).first()
    if membership is not None:
        invitations.detach_member(membership)
    for owned in WorkspaceTeamMember.objects.select_related('owner', 'member').filter(owner=user):
        invitations.detach_member(owned)
    User.objects.filter(team_workspace_owner=user).update(is_team_member=False)


def delete_user_now(user, admin, now=None):
    """
    Delete an account immediately, skipping the grace period.

    Meant for spam and abuse. Paid accounts are refused so a Stripe
    subscription is never left billing a deleted user.
    """
    now = now or timezone.now()
    if user.pk == admin.pk:
        raise ValidationFailed("You cannot delete your own account here")
    if user.subscription_status in PAID_STATUSES:
        raise ValidationFailed(
            "Cannot delete premium/enterprise account",
            code='PREMIUM_ACCOUNT',
            message=(
                "This user has an active premium or enterprise subscription. "
                "Please downgrade them to free tier first."
            ),
            subscriptionStatus=user.subscription_status,
        )

    user_id, email, name = user.id, user.email, user.get_full_name()
    analyses_deleted = user.analyses.count()
    with transaction.atomic():
        _detach_before_purge(user)
        user.delete()
        audit.log_admin_action(
            admin,
            'user_deleted_immediately',
            userId=str(user_id),
            userEmail=email,
            userName=name,
            analysesDeleted=analyses_deleted,
            deletedAt=now,
        )
    logger.warning("Account %s deleted immediately by %s", email, admin.email)
    return {'userId': str(user_id), 'email': email, 'analysesDeleted': analyses_deleted}


def set_admin_flag(user, is_admin, actor):
    """Grant or revoke the application admin flag"""
    if not is_admin and user.pk == getattr(actor, 'pk', None):
        raise ValidationFailed("You cannot revoke your own admin access")

    user.is_admin = is_admin
    user.save(update_fields=['is_admin'])
    audit.log_admin_action(
        actor,
        'admin_granted' if is_admin else 'admin_revoked',
        target_user=user,
        userId=str(user.id),
    )
    return user


def purge_deleted_accounts(now=None, limit=None, actor=audit.SYSTEM_SCHEDULER):
    """Permanently delete accounts whose grace period has ended"""
    now = now or timezone.now()
    cutoff = now - datetime.timedelta(days=settings.ACCOUNT_DELETION_GRACE_DAYS)
    queryset = User.objects.filter(
        account_status='pending_deletion',
        marked_for_deletion_at__lte=cutoff,
    ).order_by('marked_for_deletion_at')
    if limit:
        queryset = queryset[:limit]

    deleted, failed = [], []
    for user in queryset:
        try:
            with transaction.atomic():
                _detach_before_purge(user)
                user_id, email, marked_at = user.id, user.email, user.marked_for_deletion_at
                user.delete()
                audit.log_admin_action(
                    actor,
                    'user_permanently_deleted',
                    userId=str(user_id),
                    userEmail=email,
                    markedForDeletionAt=marked_at,
                    deletedAt=now,
                )
            deleted.append(email)
        except Exception as e:
            logger.error("Failed to purge account %s: %s", user.email, e)
            failed.append(user.email)

    if deleted or failed:
        logger.info("Purged %s accounts (%s failed)", len(deleted), len(failed))
    return {'deleted': len(deleted), 'failed': len(failed), 'emails': deleted}


# ========== EXPIRATIONS ==========

def expire_trials(now=None, actor=audit.SYSTEM_SCHEDULER, action='trial_expired'):
    """Downgrade users whose trial has ended"""
    now = now or timezone.now()
    expired = User.objects.filter(subscription_status='trial', trial_ends_at__lt=now)

    count = 0
    for user in expired:
        user.subscription_status = 'free'
        user.save(update_fields=['subscription_status'])
        audit.log_admin_action(
            actor,
            action,
            target_user=user,
            userId=str(user.id),
            trialEndsAt=user.trial_ends_at,
            expiredDays=(now - user.trial_ends_at).days,
        )
        count += 1
    return {'expired': count}


def expire_manual_subscriptions(now=None, actor=audit.SYSTEM_SCHEDULER, action='subscription_expired'):
    """Downgrade ended paid periods that Stripe does not manage"""
    now = now or timezone.now()
    expired = User.objects.filter(
        subscription_status__in=PAID_STATUSES,
        subscription_ends_at__lt=now,
        stripe_subscription_id__isnull=True,
    )

    count = 0
    for user in expired:
        previous = user.subscription_status
        user.subscription_status = 'free'
        user.save(update_fields=['subscription_status'])
        audit.log_admin_action(
            actor,
            action,
            target_user=user,
            userId=str(user.id),
            previousStatus=previous,
            subscriptionEndsAt=user.subscription_ends_at,
            source=user.subscription_source,
        )
        count += 1
    return {'expired': count}


def expire_invitations(now=None):
    """Expire overdue pending-like invitations, freeing their seats"""
    now = now or timezone.now()
    overdue = WorkspaceInvitation.objects.select_related('owner', 'invited_user').filter(
        status__in=PENDING_INVITATION_STATUSES,
        expires_at__lte=now,
    )
    count = sum(1 for invitation in overdue if invitations.expire_invitation(invitation, now))
    return {'expired': count}


EXPIRATION_TASKS = ('all', 'trials', 'subscriptions', 'invitations', 'accounts')


def run_expirations(task, admin, now=None):
    """Run the expiry jobs on demand from the admin panel"""
    now = now or timezone.now()
    if task not in EXPIRATION_TASKS:
        raise ValidationFailed(
            f"Invalid task. Use one of: {', '.join(EXPIRATION_TASKS)}",
        )

    results = {}
    if task in ('all', 'trials'):
        results['trials'] = expire_trials(now, actor=admin, action='trial_expired_manual')
    if task in ('all', 'subscriptions'):
        results['subscriptions'] = expire_manual_subscriptions(
            now, actor=admin, action='subscription_expired_manual'
        )
    if task in ('all', 'invitations'):
        results['invitations'] = expire_invitations(now)
    if task in ('all', 'accounts'):
        results['accounts'] = purge_deleted_accounts(now, actor=admin)
    return {
        'triggeredBy': admin.email,
        'timestamp': now.isoformat(),
        'tasks': results,
    }
