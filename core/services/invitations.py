"""
Team invitations and workspace membership.

An invitation holds one of the owner's seats from the moment it is sent
until it is declined, rescinded or expires. Once accepted, the seat is held
by the ``WorkspaceTeamMember`` row and is given back when the member is
removed, leaves or deletes their account. Admin owners never hold seats.
"""
import datetime
import logging
import math

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.utils import timezone

from core.models import (
    PENDING_INVITATION_STATUSES,
    User,
    WorkspaceInvitation,
    WorkspaceTeamMember,
)
from core.services import seat_ledger
from core.services.exceptions import Forbidden, NotFound, Throttled, ValidationFailed
from core.services.notifications import notify
from core.services.subscription import is_premium_active
from core.utils import send_team_invitation_email

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    'accepted': "This invitation has already been accepted",
    'declined': "This invitation has been declined",
    'rescinded': "This invitation has been cancelled by the sender",
    'expired': "This invitation has expired",
}


def _expiry(now):
    return now + datetime.timedelta(days=settings.INVITATION_EXPIRY_DAYS)


def days_remaining(invitation, now=None):
    now = now or timezone.now()
    return max(0, math.ceil((invitation.expires_at - now).total_seconds() / 86400))


def _is_for(invitation, user):
    return invitation.invited_email.lower() == user.email.lower()


def _has_conflicting_premium(user, now):
    """Active premium that has not been cancelled blocks joining a team"""
    return (
        is_premium_active(user.subscription_status, user.subscription_ends_at, now)
        and user.subscription_cancelled_at is None
    )


def _in_other_team(user, owner_id):
    membership = WorkspaceTeamMember.objects.filter(member=user).first()
    if membership is not None:
        return membership.owner_id != owner_id
    return bool(user.is_team_member and user.team_workspace_owner_id not in (None, owner_id))


def _clear_team_flags(user):
    user.is_team_member = False
    user.team_workspace_owner = None
    user.save(update_fields=['is_team_member', 'team_workspace_owner'])


def _clear_signup_link(user, owner):
    """Undo the team link set at sign-up for a user who never joined"""
    if (
        user is not None
        and user.is_team_member
        and user.team_workspace_owner_id == owner.id
        and not WorkspaceTeamMember.objects.filter(member=user).exists()
    ):
        _clear_team_flags(user)


def expire_invitation(invitation, now=None):
    """Mark a pending-like invitation as expired and free its seat"""
    if not invitation.is_pending():
        return False
    with transaction.atomic():
        invitation.status = 'expired'
        invitation.save(update_fields=['status', 'updated_at'])
        seat_ledger.release(invitation.owner)
        _clear_signup_link(invitation.invited_user, invitation.owner)
    logger.info("Invitation %s for %s expired", invitation.id, invitation.invited_email)
    return True


def _ensure_acceptable(invitation, now):
    if invitation.status in STATUS_MESSAGES:
        raise ValidationFailed(STATUS_MESSAGES[invitation.status])
    if invitation.expires_at <= now:
        expire_invitation(invitation, now)
        raise ValidationFailed(STATUS_MESSAGES['expired'])


def invite(owner, email, first_name, last_name, now=None):
    """
    Invite ``email`` to the owner's workspace.

    Returns ``(invitation, email_sent)``.
    """
    now = now or timezone.now()
    email = (email or '').strip().lower()
    first_name = (first_name or '').strip()
    last_name = (last_name or '').strip()

    if not email or not first_name or not last_name:
        raise ValidationFailed("Email, first name, and last name are required")
    try:
        validate_email(email)
    except DjangoValidationError:
        raise ValidationFailed("Invalid email format")

    if email == owner.email.lower():
        raise ValidationFailed("You cannot invite yourself")

    with transaction.atomic():
        existing = (
            WorkspaceInvitation.objects.select_for_update()
            .filter(owner=owner, invited_email=email)
            .first()
        )
        if existing is not None:
            if existing.is_pending():
                raise ValidationFailed(
                    "This user has already been invited and has a pending invitation.",
                    invitationId=str(existing.id),
                )
            if existing.status == 'accepted' and WorkspaceTeamMember.objects.filter(
                owner=owner, member__email=email
            ).exists():
                raise ValidationFailed("This user is already a team member")

        invited_user = User.objects.filter(email=email).first()
        if invited_user is None:
            invitation_status, invitation_type = 'pending_signup', 'new_user'
        else:
            if _in_other_team(invited_user, owner.id):
                raise ValidationFailed("This user is already a member of another team")
            if _has_conflicting_premium(invited_user, now):
                invitation_status, invitation_type = 'pending_premium_cancel', 'premium_conflict'
            else:
                invitation_status, invitation_type = 'pending', 'existing_user'

        seat_ledger.reserve(owner)

        invitation = existing or WorkspaceInvitation(owner=owner, invited_email=email)
        invitation.invited_user = invited_user
        invitation.first_name = first_name
        invitation.last_name = last_name
        invitation.status = invitation_status
        invitation.invitation_type = invitation_type
        invitation.token = WorkspaceInvitation.generate_token()
        invitation.sent_at = now
        invitation.expires_at = _expiry(now)
        invitation.responded_at = None
        invitation.save()

        if invited_user is not None:
            owner_name = owner.display_name
            if invitation_type == 'premium_conflict':
                notify(
                    invited_user, 'premium_conflict',
                    "Team Invitation - Action Required",
                    f"{owner_name} invited you to join their workspace. "
                    "You must cancel your Premium subscription to accept.",
                    invitationId=str(invitation.id), ownerName=owner_name, ownerEmail=owner.email,
                )
            else:
                notify(
                    invited_user, 'team_invitation',
                    "Team Invitation",
                    f"{owner_name} invited you to join their workspace.",
                    invitationId=str(invitation.id), ownerName=owner_name, ownerEmail=owner.email,
                )

    logger.info("%s invited %s (%s)", owner.email, email, invitation_type)
    email_sent = send_team_invitation_email(invitation)
    return invitation, email_sent


def accept(invitation, user, now=None):
    now = now or timezone.now()
    if not _is_for(invitation, user):
        raise Forbidden("This invitation is not for you")
    _ensure_acceptable(invitation, now)

    if _in_other_team(user, invitation.owner_id):
        raise ValidationFailed("You are already a member of another team. Leave that team first.")
    if _has_conflicting_premium(user, now):
        raise ValidationFailed(
            "You must cancel your Premium subscription before accepting this invitation.",
            requiresAction='cancel_premium',
        )

    owner = invitation.owner
    with transaction.atomic():
        locked = WorkspaceInvitation.objects.select_for_update().get(pk=invitation.pk)
        if locked.status != invitation.status:
            raise ValidationFailed(STATUS_MESSAGES.get(locked.status, "This invitation is no longer valid"))

        invitation.status = 'accepted'
        invitation.responded_at = now
        invitation.invited_user = user
        invitation.save(update_fields=['status', 'responded_at', 'invited_user', 'updated_at'])

        membership = WorkspaceTeamMember.objects.create(
            owner=owner, member=user, invitation=invitation, joined_at=now,
        )

        user.is_team_member = True
        user.team_workspace_owner = owner
        update_fields = ['is_team_member', 'team_workspace_owner']
        if user.subscription_status == 'trial':
            user.subscription_status = 'free'
            update_fields.append('subscription_status')
        user.save(update_fields=update_fields)

        notify(
            owner, 'invitation_accepted',
            "Team Invitation Accepted",
            f"{user.display_name} accepted your invitation and joined your workspace.",
            memberId=str(user.id), memberName=user.get_full_name(), memberEmail=user.email,
        )

    logger.info("%s joined the workspace of %s", user.email, owner.email)
    return membership


def accept_by_token(token, user, now=None):
    """Accept through the email link. Returns ``(invitation, already_accepted)``"""
    if not token:
        raise ValidationFailed("Invitation token is required")
    invitation = WorkspaceInvitation.objects.select_related('owner').filter(token=token).first()
    if invitation is None:
        raise NotFound("Invalid invitation token")

    if (
        invitation.status == 'accepted'
        and _is_for(invitation, user)
        and WorkspaceTeamMember.objects.filter(owner=invitation.owner, member=user).exists()
    ):
        return invitation, True

    accept(invitation, user, now)
    return invitation, False


def decline(invitation, user, now=None):
    now = now or timezone.now()
    if not _is_for(invitation, user):
        raise Forbidden("This invitation is not for you")
    if invitation.status in STATUS_MESSAGES:
        raise ValidationFailed(STATUS_MESSAGES[invitation.status])

    owner = invitation.owner
    with transaction.atomic():
        invitation.status = 'declined'
        invitation.responded_at = now
        invitation.invited_user = user
        invitation.save(update_fields=['status', 'responded_at', 'invited_user', 'updated_at'])

        seat_ledger.release(owner)
        _clear_signup_link(user, owner)

        notify(
            owner, 'invitation_declined',
            "Team Invitation Declined",
            f"{user.display_name} declined your invitation to join your workspace.",
            invitationId=str(invitation.id), memberEmail=user.email,
        )

    logger.info("%s declined the invitation from %s", user.email, owner.email)
    return invitation


def rescind(invitation, owner, now=None):
    if invitation.owner_id != owner.id:
        raise Forbidden("You can only cancel your own invitations")
    if invitation.status == 'accepted':
        raise ValidationFailed("Cannot cancel an accepted invitation. Remove the team member instead.")
    if invitation.status == 'rescinded':
        raise ValidationFailed("This invitation has already been cancelled")

    with transaction.atomic():
        held_seat = invitation.is_pending()
        invitation.status = 'rescinded'
        invitation.save(update_fields=['status', 'updated_at'])

        if held_seat:
            seat_ledger.release(owner)

        invited_user = invitation.invited_user
        if invited_user is not None:
            _clear_signup_link(invited_user, owner)
            notify(
                invited_user, 'invitation_rescinded',
                "Team Invitation Cancelled",
                f"{owner.display_name} cancelled their invitation to join their workspace.",
                invitationId=str(invitation.id), ownerEmail=owner.email,
            )

    logger.info("%s rescinded the invitation for %s", owner.email, invitation.invited_email)
    return invitation


def resend(invitation, owner, now=None):
    """
    Send the invitation again with a fresh token and expiry.

    Expired or declined invitations go back to their pending state and take a
    seat again. Returns ``(invitation, email_sent)``.
    """
    now = now or timezone.now()
    if invitation.owner_id != owner.id:
        raise Forbidden("You can only resend your own invitations")
    if invitation.status == 'accepted':
        raise ValidationFailed("Cannot resend an accepted invitation")
    if invitation.status == 'rescinded':
        raise ValidationFailed("Cannot resend a cancelled invitation")

    cooldown = datetime.timedelta(minutes=settings.INVITATION_RESEND_COOLDOWN_MINUTES)
    if now - invitation.sent_at < cooldown:
        raise Throttled(
            f"Please wait at least {settings.INVITATION_RESEND_COOLDOWN_MINUTES} minutes "
            "before resending an invitation",
            canResendAt=invitation.sent_at + cooldown,
        )

    with transaction.atomic():
        if not invitation.is_pending():
            seat_ledger.reserve(owner)
            if invitation.invitation_type == 'new_user':
                invitation.status = 'pending_signup'
            elif invitation.invitation_type == 'premium_conflict':
                invitation.status = 'pending_premium_cancel'
            else:
                invitation.status = 'pending'
            invitation.responded_at = None

        invitation.token = WorkspaceInvitation.generate_token()
        invitation.sent_at = now
        invitation.expires_at = _expiry(now)
        invitation.save()

        if invitation.invited_user is not None:
            notify(
                invitation.invited_user, 'invitation_reminder',
                "Team Invitation Reminder",
                f"{owner.display_name} resent an invitation to join their workspace.",
                invitationId=str(invitation.id), ownerName=owner.display_name, ownerEmail=owner.email,
            )

    email_sent = send_team_invitation_email(invitation, reminder=True)
    return invitation, email_sent


def validate(token, now=None):
    """Public check of an invitation link"""
    now = now or timezone.now()
    if not token:
        raise ValidationFailed("Invitation token is required")
    invitation = WorkspaceInvitation.objects.select_related('owner').filter(token=token).first()
    if invitation is None:
        raise NotFound("Invalid invitation token")
    if invitation.status == 'expired' or invitation.expires_at < now:
        raise ValidationFailed(STATUS_MESSAGES['expired'])
    if invitation.status in STATUS_MESSAGES:
        raise ValidationFailed(STATUS_MESSAGES[invitation.status])

    owner = invitation.owner
    return {
        'id': str(invitation.id),
        'email': invitation.invited_email,
        'firstName': invitation.first_name,
        'lastName': invitation.last_name,
        'ownerName': owner.get_full_name(),
        'ownerEmail': owner.email,
        'status': invitation.status,
        'type': invitation.invitation_type,
        'expiresAt': invitation.expires_at,
        'userExists': User.objects.filter(email=invitation.invited_email).exists(),
    }


def list_for_owner(owner):
    """All invitations of ``owner`` (newest first) with per-state groups and counts"""
    invitations = list(
        WorkspaceInvitation.objects.filter(owner=owner)
        .select_related('invited_user')
        .order_by('-sent_at')
    )
    categorized = {
        'pending': [inv for inv in invitations if inv.status in PENDING_INVITATION_STATUSES],
        'accepted': [inv for inv in invitations if inv.status == 'accepted'],
        'declined': [inv for inv in invitations if inv.status == 'declined'],
        'expired': [inv for inv in invitations if inv.status == 'expired'],
        'rescinded': [inv for inv in invitations if inv.status == 'rescinded'],
    }
    summary = {'total': len(invitations)}
    summary.update({state: len(items) for state, items in categorized.items()})
    return {'invitations': invitations, 'categorized': categorized, 'summary': summary}


def detach_member(membership):
    """Delete a membership, clear the member's team flags and free the owner's seat"""
    member = membership.member
    owner = membership.owner
    with transaction.atomic():
        membership.delete()
        _clear_team_flags(member)
        seat_ledger.release(owner)
    return owner


def remove_member(owner, membership_id):
    if owner.is_team_member:
        raise Forbidden("Only workspace owners can remove team members")
    membership = (
        WorkspaceTeamMember.objects.select_related('member', 'owner')
        .filter(pk=membership_id)
        .first()
    )
    if membership is None:
        raise NotFound("Team member not found")
    if membership.owner_id != owner.id:
        raise Forbidden("You can only remove members from your own workspace")

    member = membership.member
    removed = {'id': str(membership.id), 'email': member.email, 'name': member.get_full_name()}
    with transaction.atomic():
        detach_member(membership)
        owner.refresh_from_db(fields=['used_seats', 'available_seats'])
        notify(
            member, 'member_removed',
            "Removed from Workspace",
            f"You have been removed from {owner.display_name}'s workspace.",
            ownerName=owner.get_full_name(), ownerEmail=owner.email,
        )

    logger.info("%s removed %s from their workspace", owner.email, member.email)
    return removed


def leave(user):
    if not user.is_team_member or not user.team_workspace_owner_id:
        raise ValidationFailed("You are not a member of any team")

    membership = WorkspaceTeamMember.objects.select_related('owner').filter(member=user).first()
    if membership is None:
        # Linked at sign-up but never accepted: leaving declines the invitation
        owner = user.team_workspace_owner
        invitation = WorkspaceInvitation.objects.filter(
            owner=owner,
            invited_email=user.email.lower(),
            status__in=PENDING_INVITATION_STATUSES,
        ).first()
        if invitation is not None:
            decline(invitation, user)
        else:
            _clear_team_flags(user)
        return owner

    owner = membership.owner
    with transaction.atomic():
        detach_member(membership)
        notify(
            owner, 'member_left',
            "Team Member Left",
            f"{user.display_name} left your workspace.",
            memberId=str(user.id), memberEmail=user.email,
        )

    logger.info("%s left the workspace of %s", user.email, owner.email)
    return owner


def workspace_user_ids(user):
    """Ids of every user whose analyses ``user`` can see"""
    ids = {user.id}
    if user.is_team_member and user.team_workspace_owner_id:
        ids.add(user.team_workspace_owner_id)
        ids.update(
            WorkspaceTeamMember.objects.filter(owner_id=user.team_workspace_owner_id)
            .values_list('member_id', flat=True)
        )
    else:
        ids.update(
            WorkspaceTeamMember.objects.filter(owner=user).values_list('member_id', flat=True)
        )
    return ids


def _format_member(membership, current_user, now):
    member = membership.member
    return {
        'id': str(membership.id),
        'memberId': str(member.id),
        'email': member.email,
        'name': member.get_full_name(),
        'firstName': member.first_name,
        'lastName': member.last_name,
        'imageUrl': member.image_url,
        'joinedAt': membership.joined_at,
        'lastLoginAt': member.last_login,
        'daysSinceJoined': (now - membership.joined_at).days,
        'isCurrentUser': member.id == current_user.id,
    }


def list_members(owner, now=None):
    now = now or timezone.now()
    if owner.is_team_member:
        raise Forbidden("Only workspace owners can view team members")
    memberships = (
        WorkspaceTeamMember.objects.filter(owner=owner)
        .select_related('member')
        .order_by('-joined_at')
    )
    members = [_format_member(m, owner, now) for m in memberships]
    return {
        'success': True,
        'members': members,
        'workspace': {
            'owner': {'email': owner.email, 'name': owner.get_full_name()},
            'seats': seat_ledger.seat_counts(owner),
            'stats': {'totalMembers': len(members)},
        },
    }


def workspace_view(user, now=None):
    """Workspace as seen by a member (owner + teammates) or by an owner (seats + invitations)"""
    now = now or timezone.now()

    if user.is_team_member and user.team_workspace_owner_id:
        membership = (
            WorkspaceTeamMember.objects.select_related('owner')
            .filter(member=user, owner_id=user.team_workspace_owner_id)
            .first()
        )
        if membership is None:
            raise NotFound("Team member record not found")
        owner = membership.owner
        teammates = (
            WorkspaceTeamMember.objects.filter(owner=owner)
            .select_related('member')
            .order_by('-joined_at')
        )
        return {
            'success': True,
            'role': 'member',
            'workspace': {
                'owner': {
                    'id': str(owner.id),
                    'email': owner.email,
                    'name': owner.get_full_name(),
                    'imageUrl': owner.image_url,
                },
                'seats': {'purchased': owner.purchased_seats, 'used': owner.used_seats},
                'teamSize': len(teammates),
            },
            'membership': {
                'joinedAt': membership.joined_at,
                'daysSinceJoined': (now - membership.joined_at).days,
            },
            'teamMembers': [_format_member(m, user, now) for m in teammates],
        }

    memberships = (
        WorkspaceTeamMember.objects.filter(owner=user)
        .select_related('member')
        .order_by('-joined_at')
    )
    pending = WorkspaceInvitation.objects.filter(
        owner=user, status__in=PENDING_INVITATION_STATUSES
    ).order_by('-sent_at')
    return {
        'success': True,
        'role': 'owner',
        'workspace': {
            'owner': {'id': str(user.id), 'email': user.email, 'name': user.get_full_name()},
            'seats': seat_ledger.seat_counts(user),
            'teamSize': len(memberships),
        },
        'teamMembers': [_format_member(m, user, now) for m in memberships],
        'pendingInvitations': [
            {
                'id': str(inv.id),
                'email': inv.invited_email,
                'name': f"{inv.first_name} {inv.last_name}",
                'status': inv.status,
                'sentAt': inv.sent_at,
                'expiresAt': inv.expires_at,
                'daysRemaining': days_remaining(inv, now),
            }
            for inv in pending
        ],
    }
