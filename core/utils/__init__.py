from django.core.mail import send_mail
from django.conf import settings
from django.utils import timezone
from urllib.parse import quote
import logging
import math


logger = logging.getLogger(__name__)

PRODUCT_NAME = 'NumexRE'


def _invitation_urls(invitation):
    frontend_url = getattr(settings, 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')
    return {
        'signup': f"{frontend_url}/sign-up?invitation={quote(invitation.token)}",
        'login': f"{frontend_url}/sign-in",
    }


def _invitation_subject(invitation, inviter_name, reminder=False):
    if reminder:
        return f"Reminder: {inviter_name} invited you to {PRODUCT_NAME}"
    if invitation.invitation_type == 'premium_conflict':
        return "Team Invitation - Action Required"
    if invitation.invitation_type == 'new_user':
        return f"{inviter_name} invited you to {PRODUCT_NAME}"
    return f"{inviter_name} invited you to their workspace"


def send_team_invitation_email(invitation, reminder=False):
    """
    Send the team invitation (or reminder) email for ``invitation``

    The wording and link depend on the invitation type: new users get a
    sign-up link carrying the token, existing users are sent to sign in,
    and premium users are told to cancel their subscription first.

    Returns:
        bool: True if email sent successfully, False otherwise
    """
    try:
        owner = invitation.owner
        inviter_name = owner.get_full_name() or owner.email
        urls = _invitation_urls(invitation)
        days_remaining = max(
            0, math.ceil((invitation.expires_at - timezone.now()).total_seconds() / 86400)
        )

        if invitation.invitation_type == 'new_user':
            action_text = f"Create your account to join the team:\n{urls['signup']}"
            action_url = urls['signup']
        elif invitation.invitation_type == 'premium_conflict':
            action_text = (
                "You currently have an active Premium subscription. To accept this "
                "invitation, cancel your Premium subscription first, then sign in:\n"
                f"{urls['login']}"
            )
            action_url = urls['login']
        else:
            action_text = f"Sign in to view and accept the invitation:\n{urls['login']}"
            action_url = urls['login']

        subject = _invitation_subject(invitation, inviter_name, reminder=reminder)

        text_content = f"""Hi {invitation.first_name},

{inviter_name} ({owner.email}) invited you to join their workspace on {PRODUCT_NAME}.

{action_text}

This invitation expires in {days_remaining} day{'s' if days_remaining != 1 else ''} and can only be accepted by {invitation.invited_email}.

If you were not expecting this invitation, you can ignore this email.

The {PRODUCT_NAME} Team"""

        html_content = f"""
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
            <h2>Hi {invitation.first_name}!</h2>
            <p><strong>{inviter_name}</strong> invited you to join their workspace on {PRODUCT_NAME}.</p>
            <p>{action_text.splitlines()[0]}</p>
            <p><a href="{action_url}" style="display: inline-block; padding: 12px 28px; background: #3B82F6; color: white; text-decoration: none; border-radius: 6px;">Open invitation</a></p>
            <p style="color: #666; font-size: 14px;">This invitation expires in {days_remaining} days and can only be accepted by {invitation.invited_email}.</p>
        </body>
        </html>
        """

        success = send_mail(
            subject=subject,
            message=text_content,
            from_email=getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@numexre.com'),
            recipient_list=[invitation.invited_email],
            html_message=html_content,
            fail_silently=False,
        )

        if success:
            logger.info(f"Team invitation email sent to {invitation.invited_email} (type={invitation.invitation_type}, reminder={reminder})")
            return True
        else:
            logger.error(f"Failed to send team invitation email to {invitation.invited_email}")
            return False

    except Exception as e:
        logger.error(f"Error sending team invitation email to {invitation.invited_email}: {str(e)}")
        return False
