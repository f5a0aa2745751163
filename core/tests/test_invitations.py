"""
Tests for the team invitation state machine and workspace membership.
"""
import datetime

from django.core import mail
from django.utils import timezone

from core.models import Notification, WorkspaceInvitation, WorkspaceTeamMember
from core.services import invitations
from core.services.exceptions import Forbidden, NotFound, Throttled, ValidationFailed
from core.tests.base import BaseAPITestCase


class InvitationServiceTestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.create_premium_owner(email='owner@test.com', seats=3, first_name='Dana', last_name='Lee')
        self.invitee = self.create_user(email='sam@test.com')

    def invite(self, email='sam@test.com', now=None):
        return invitations.invite(self.owner, email, 'Sam', 'Ortiz', now=now)

    # ========== INVITE ==========

    def test_invite_existing_user_reserves_seat_and_notifies(self):
        invitation, email_sent = self.invite()

        self.assertTrue(email_sent)
        self.assertEqual(invitation.status, 'pending')
        self.assertEqual(invitation.invitation_type, 'existing_user')
        self.assertEqual(invitation.invited_user, self.invitee)
        self.assert_seats(self.owner, 3, 1, 2)
        self.assertTrue(Notification.objects.filter(user=self.invitee, type='team_invitation').exists())
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['sam@test.com'])

    def test_invite_unknown_email_waits_for_signup(self):
        invitation, _ = self.invite('New.Person@Test.com')
        self.assertEqual(invitation.invited_email, 'new.person@test.com')
        self.assertEqual(invitation.status, 'pending_signup')
        self.assertEqual(invitation.invitation_type, 'new_user')
        self.assertIn('sign-up?invitation=', mail.outbox[0].body)

    def test_invite_premium_user_is_a_conflict(self):
        self.create_user(email='vip@test.com', status='premium')
        invitation, _ = self.invite('vip@test.com')
        self.assertEqual(invitation.status, 'pending_premium_cancel')
        self.assertEqual(invitation.invitation_type, 'premium_conflict')
        self.assertTrue(Notification.objects.filter(type='premium_conflict').exists())

    def test_invite_cancelled_premium_user_is_not_a_conflict(self):
        self.create_user(email='leaving@test.com', status='premium', subscription_cancelled_at=timezone.now())
        invitation, _ = self.invite('leaving@test.com')
        self.assertEqual(invitation.status, 'pending')

    def test_invite_validation(self):
        with self.assertRaisesMessage(ValidationFailed, "required"):
            invitations.invite(self.owner, 'sam@test.com', '', 'Ortiz')
        with self.assertRaisesMessage(ValidationFailed, "Invalid email format"):
            invitations.invite(self.owner, 'not-an-email', 'Sam', 'Ortiz')
        with self.assertRaisesMessage(ValidationFailed, "cannot invite yourself"):
            invitations.invite(self.owner, 'OWNER@test.com', 'Dana', 'Lee')
        self.assert_seats(self.owner, 3, 0, 3)

    def test_duplicate_pending_invitation_is_refused(self):
        invitation, _ = self.invite()
        with self.assertRaises(ValidationFailed) as ctx:
            self.invite()
        self.assertEqual(ctx.exception.extra['invitationId'], str(invitation.id))
        self.assert_seats(self.owner, 3, 1, 2)

    def test_invite_without_seats_is_refused(self):
        owner = self.create_premium_owner(email='broke@test.com')
        with self.assertRaisesMessage(ValidationFailed, "No available seats"):
            invitations.invite(owner, 'sam@test.com', 'Sam', 'Ortiz')
        self.assertFalse(WorkspaceInvitation.objects.filter(owner=owner).exists())

    def test_invite_member_of_other_team_is_refused(self):
        other_owner = self.create_premium_owner(email='other@test.com', seats=1)
        self.add_team_member(other_owner, self.invitee)
        with self.assertRaisesMessage(ValidationFailed, "member of another team"):
            self.invite()

    def test_admin_owner_invites_without_seats(self):
        invitation, _ = invitations.invite(self.admin_user, 'sam@test.com', 'Sam', 'Ortiz')
        self.assertEqual(invitation.status, 'pending')
        self.assert_seats(self.admin_user, 0, 0, 0)

    # ========== ACCEPT ==========

    def test_accept_creates_membership(self):
        invitation, _ = self.invite()
        self.invitee.subscription_status = 'trial'
        self.invitee.save()

        membership = invitations.accept(invitation, self.invitee)

        self.assertEqual(membership.owner, self.owner)
        self.invitee.refresh_from_db()
        self.assertTrue(self.invitee.is_team_member)
        self.assertEqual(self.invitee.team_workspace_owner, self.owner)
        self.assertEqual(self.invitee.subscription_status, 'free')
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'accepted')
        self.assertIsNotNone(invitation.responded_at)
        # The seat moves from the invitation to the membership
        self.assert_seats(self.owner, 3, 1, 2)
        self.assertTrue(Notification.objects.filter(user=self.owner, type='invitation_accepted').exists())

    def test_accept_by_wrong_user(self):
        invitation, _ = self.invite()
        with self.assertRaises(Forbidden):
            invitations.accept(invitation, self.regular_user)

    def test_accept_expired_invitation_frees_seat(self):
        invitation, _ = self.invite()
        later = timezone.now() + datetime.timedelta(days=8)
        with self.assertRaisesMessage(ValidationFailed, "expired"):
            invitations.accept(invitation, self.invitee, now=later)
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'expired')
        self.assert_seats(self.owner, 3, 0, 3)

    def test_accept_blocked_by_active_premium(self):
        invitation, _ = self.invite()
        self.invitee.subscription_status = 'premium'
        self.invitee.subscription_ends_at = timezone.now() + datetime.timedelta(days=10)
        self.invitee.save()
        with self.assertRaises(ValidationFailed) as ctx:
            invitations.accept(invitation, self.invitee)
        self.assertEqual(ctx.exception.extra['requiresAction'], 'cancel_premium')

    def test_accept_by_token_is_idempotent(self):
        invitation, _ = self.invite()
        _, already = invitations.accept_by_token(invitation.token, self.invitee)
        self.assertFalse(already)
        _, already = invitations.accept_by_token(invitation.token, self.invitee)
        self.assertTrue(already)
        self.assertEqual(WorkspaceTeamMember.objects.filter(member=self.invitee).count(), 1)

    def test_accept_by_unknown_token(self):
        with self.assertRaises(NotFound):
            invitations.accept_by_token('nope', self.invitee)

    # ========== DECLINE / RESCIND ==========

    def test_decline_releases_seat(self):
        invitation, _ = self.invite()
        invitations.decline(invitation, self.invitee)
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'declined')
        self.assert_seats(self.owner, 3, 0, 3)
        self.assertTrue(Notification.objects.filter(user=self.owner, type='invitation_declined').exists())

    def test_decline_twice_is_refused(self):
        invitation, _ = self.invite()
        invitations.decline(invitation, self.invitee)
        with self.assertRaisesMessage(ValidationFailed, "declined"):
            invitations.decline(invitation, self.invitee)
        self.assert_seats(self.owner, 3, 0, 3)

    def test_rescind_releases_seat_and_notifies(self):
        invitation, _ = self.invite()
        invitations.rescind(invitation, self.owner)
        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'rescinded')
        self.assert_seats(self.owner, 3, 0, 3)
        self.assertTrue(Notification.objects.filter(user=self.invitee, type='invitation_rescinded').exists())

    def test_rescind_accepted_invitation_is_refused(self):
        invitation, _ = self.invite()
        invitations.accept(invitation, self.invitee)
        with self.assertRaisesMessage(ValidationFailed, "Remove the team member instead"):
            invitations.rescind(invitation, self.owner)

    def test_rescind_someone_elses_invitation(self):
        invitation, _ = self.invite()
        with self.assertRaises(Forbidden):
            invitations.rescind(invitation, self.regular_user)

    # ========== RESEND ==========

    def test_resend_is_throttled(self):
        invitation, _ = self.invite()
        with self.assertRaises(Throttled):
            invitations.resend(invitation, self.owner)

    def test_resend_refreshes_token_and_expiry(self):
        invitation, _ = self.invite()
        old_token = invitation.token
        later = timezone.now() + datetime.timedelta(minutes=10)

        invitation, email_sent = invitations.resend(invitation, self.owner, now=later)

        self.assertTrue(email_sent)
        self.assertNotEqual(invitation.token, old_token)
        self.assertEqual(invitation.expires_at, later + datetime.timedelta(days=7))
        self.assertTrue(mail.outbox[-1].subject.startswith('Reminder:'))
        self.assert_seats(self.owner, 3, 1, 2)

    def test_resend_declined_invitation_takes_seat_again(self):
        invitation, _ = self.invite()
        invitations.decline(invitation, self.invitee)
        later = timezone.now() + datetime.timedelta(minutes=10)

        invitation, _ = invitations.resend(invitation, self.owner, now=later)

        self.assertEqual(invitation.status, 'pending')
        self.assert_seats(self.owner, 3, 1, 2)

    # ========== MEMBERS ==========

    def test_remove_member_frees_seat(self):
        membership = self.add_team_member(self.owner, self.invitee)
        removed = invitations.remove_member(self.owner, membership.id)
        self.assertEqual(removed['email'], 'sam@test.com')
        self.invitee.refresh_from_db()
        self.assertFalse(self.invitee.is_team_member)
        self.assertIsNone(self.invitee.team_workspace_owner)
        self.assert_seats(self.owner, 3, 0, 3)
        self.assertTrue(Notification.objects.filter(user=self.invitee, type='member_removed').exists())

    def test_removed_member_can_be_invited_again(self):
        membership = self.add_team_member(self.owner, self.invitee)
        invitations.remove_member(self.owner, membership.id)
        invitation, _ = self.invite()
        self.assertEqual(invitation.status, 'pending')

    def test_remove_member_of_other_workspace(self):
        other_owner = self.create_premium_owner(email='other@test.com', seats=1)
        membership = self.add_team_member(other_owner, self.invitee)
        with self.assertRaises(Forbidden):
            invitations.remove_member(self.owner, membership.id)

    def test_leave_team(self):
        self.add_team_member(self.owner, self.invitee)
        invitations.leave(self.invitee)
        self.invitee.refresh_from_db()
        self.assertFalse(self.invitee.is_team_member)
        self.assert_seats(self.owner, 3, 0, 3)
        self.assertTrue(Notification.objects.filter(user=self.owner, type='member_left').exists())

    def test_leave_without_team(self):
        with self.assertRaisesMessage(ValidationFailed, "not a member of any team"):
            invitations.leave(self.invitee)

    def test_leave_after_signup_link_declines_invitation(self):
        invitation = self.create_invitation(self.owner, 'fresh@test.com', status='pending_signup')
        fresh = self.create_user(email='fresh@test.com', is_team_member=True, team_workspace_owner=self.owner)

        invitations.leave(fresh)

        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'declined')
        fresh.refresh_from_db()
        self.assertFalse(fresh.is_team_member)
        self.assert_seats(self.owner, 3, 0, 3)

    # ========== ADMIN OWNER ==========

    def admin_with_seats(self, seats=2):
        self.admin_user.purchased_seats = seats
        self.admin_user.available_seats = seats
        self.admin_user.save(update_fields=['purchased_seats', 'available_seats'])
        return self.admin_user

    def test_admin_decline_leaves_counters_alone(self):
        admin = self.admin_with_seats()
        invitation, _ = invitations.invite(admin, 'sam@test.com', 'Sam', 'Ortiz')
        self.assert_seats(admin, 2, 0, 2)

        invitations.decline(invitation, self.invitee)

        invitation.refresh_from_db()
        self.assertEqual(invitation.status, 'declined')
        self.assert_seats(admin, 2, 0, 2)

    def test_admin_rescind_leaves_counters_alone(self):
        admin = self.admin_with_seats()
        invitation, _ = invitations.invite(admin, 'sam@test.com', 'Sam', 'Ortiz')

        invitations.rescind(invitation, admin)

        self.assert_seats(admin, 2, 0, 2)

    def test_admin_remove_member_leaves_counters_alone(self):
        admin = self.admin_with_seats()
        membership = self.add_team_member(admin, self.invitee)

        invitations.remove_member(admin, membership.id)

        self.assertFalse(WorkspaceTeamMember.objects.filter(owner=admin).exists())
        self.assert_seats(admin, 2, 0, 2)

    def test_member_leaving_admin_workspace_leaves_counters_alone(self):
        admin = self.admin_with_seats()
        self.add_team_member(admin, self.invitee)

        invitations.leave(self.invitee)

        self.invitee.refresh_from_db()
        self.assertFalse(self.invitee.is_team_member)
        self.assert_seats(admin, 2, 0, 2)

    # ========== WORKSPACE ==========

    def test_workspace_user_ids(self):
        mate = self.create_user(email='mate@test.com')
        self.add_team_member(self.owner, self.invitee)
        self.add_team_member(self.owner, mate)
        expected = {self.owner.id, self.invitee.id, mate.id}
        self.assertEqual(invitations.workspace_user_ids(self.owner), expected)
        self.invitee.refresh_from_db()
        self.assertEqual(invitations.workspace_user_ids(self.invitee), expected)
        self.assertEqual(invitations.workspace_user_ids(self.regular_user), {self.regular_user.id})

    def test_workspace_view_for_member_and_owner(self):
        self.add_team_member(self.owner, self.invitee)
        self.invitee.refresh_from_db()

        member_view = invitations.workspace_view(self.invitee)
        self.assertEqual(member_view['role'], 'member')
        self.assertEqual(member_view['workspace']['owner']['email'], 'owner@test.com')
        self.assertEqual(member_view['workspace']['teamSize'], 1)

        owner_view = invitations.workspace_view(self.owner)
        self.assertEqual(owner_view['role'], 'owner')
        self.assertEqual(owner_view['workspace']['seats'], {'purchased': 3, 'used': 1, 'available': 2})

    def test_list_for_owner_groups_by_state(self):
        self.invite()
        declined, _ = self.invite('other@test.com')
        declined.status = 'declined'
        declined.save()
        result = invitations.list_for_owner(self.owner)
        self.assertEqual(result['summary']['total'], 2)
        self.assertEqual(result['summary']['pending'], 1)
        self.assertEqual(result['summary']['declined'], 1)

    def test_validate_token(self):
        invitation, _ = self.invite()
        details = invitations.validate(invitation.token)
        self.assertEqual(details['email'], 'sam@test.com')
        self.assertEqual(details['ownerEmail'], 'owner@test.com')
        self.assertTrue(details['userExists'])

        invitations.rescind(invitation, self.owner)
        with self.assertRaisesMessage(ValidationFailed, "cancelled by the sender"):
            invitations.validate(invitation.token)
