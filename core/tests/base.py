"""
Base test setup for all API tests.
Provides common utilities for authentication, user creation, and test data setup.
"""
from django.test import TestCase
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework import status
from core.middleware import subscription_check_cache
from core.models import WorkspaceInvitation, WorkspaceTeamMember, PropertyAnalysis, AnalysisGroup
from core.services.system_settings import admin_cache, settings_cache
import uuid
from datetime import timedelta

User = get_user_model()


class BaseAPITestCase(TestCase):
    """Base test case with common setup for all API tests"""

    def setUp(self):
        """Set up test data and clients"""
        super().setUp()
        self.clear_process_caches()
        self.addCleanup(self.clear_process_caches)

        # Create API clients
        self.client = APIClient()
        self.admin_client = APIClient()
        self.user_client = APIClient()

        # Create test users
        self.admin_user = self.create_admin_user()
        self.regular_user = self.create_regular_user()

        # Authenticate clients
        self.admin_client.force_authenticate(user=self.admin_user)
        self.user_client.force_authenticate(user=self.regular_user)

        # Base URLs
        self.base_url = '/api'

    @staticmethod
    def clear_process_caches():
        settings_cache.clear()
        admin_cache.clear()
        subscription_check_cache.clear()

    def create_admin_user(self):
        """Create an application admin"""
        return User.objects.create_user(
            email='admin@test.com',
            password='testpass123',
            first_name='Ada',
            last_name='Admin',
            is_admin=True,
            is_staff=True,
        )

    def create_regular_user(self):
        """Create a free-tier user for testing"""
        return User.objects.create_user(
            email='test@test.com',
            password='testpass123',
            first_name='Terry',
            last_name='Tester',
        )

    def create_user(self, email=None, status='free', **kwargs):
        """Create a user on the given subscription tier"""
        now = timezone.now()
        if not email:
            email = f"user-{uuid.uuid4().hex[:8]}@test.com"
        if status == 'trial':
            kwargs.setdefault('trial_ends_at', now + timedelta(hours=72))
            kwargs.setdefault('has_used_trial', True)
        if status in ('premium', 'enterprise'):
            kwargs.setdefault('subscription_ends_at', now + timedelta(days=30))
        kwargs.setdefault('first_name', 'Pat')
        kwargs.setdefault('last_name', 'User')
        return User.objects.create_user(
            email=email,
            password='testpass123',
            subscription_status=status,
            **kwargs
        )

    def create_premium_owner(self, email=None, seats=0, **kwargs):
        """Premium Stripe customer, optionally holding unused seats"""
        kwargs.setdefault('stripe_customer_id', f"cus_{uuid.uuid4().hex[:10]}")
        kwargs.setdefault('stripe_subscription_id', f"sub_{uuid.uuid4().hex[:10]}")
        kwargs.setdefault('subscription_source', 'stripe')
        if seats:
            kwargs.setdefault('seat_subscription_item_id', f"si_{uuid.uuid4().hex[:10]}")
        return self.create_user(
            email=email,
            status='premium',
            purchased_seats=seats,
            used_seats=0,
            available_seats=seats,
            **kwargs
        )

    def client_for(self, user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def create_invitation(self, owner, email, status='pending', invited_user=None, **kwargs):
        """Invitation row that already holds one of the owner's seats"""
        if status in ('pending', 'pending_signup', 'pending_premium_cancel') and not owner.is_admin:
            owner.used_seats += 1
            owner.available_seats -= 1
            owner.save(update_fields=['used_seats', 'available_seats'])
        kwargs.setdefault('first_name', 'Ivy')
        kwargs.setdefault('last_name', 'Invitee')
        return WorkspaceInvitation.objects.create(
            owner=owner,
            invited_email=email.lower(),
            invited_user=invited_user,
            status=status,
            **kwargs
        )

    def add_team_member(self, owner, member):
        """Accepted membership occupying one owner seat"""
        invitation = self.create_invitation(owner, member.email, invited_user=member)
        invitation.status = 'accepted'
        invitation.responded_at = timezone.now()
        invitation.save()
        member.is_team_member = True
        member.team_workspace_owner = owner
        member.save(update_fields=['is_team_member', 'team_workspace_owner'])
        return WorkspaceTeamMember.objects.create(owner=owner, member=member, invitation=invitation)

    def create_analysis(self, user, name="Maple Court", **kwargs):
        return PropertyAnalysis.objects.create(user=user, name=name, **kwargs)

    def create_group(self, user, name="Pipeline", **kwargs):
        return AnalysisGroup.objects.create(user=user, name=name, **kwargs)

    def assert_response_success(self, response, expected_status=status.HTTP_200_OK):
        """Assert that response was successful"""
        self.assertEqual(
            response.status_code,
            expected_status,
            f"Expected status {expected_status}, got {response.status_code}. "
            f"Response: {response.data if hasattr(response, 'data') else response.content}"
        )

    def assert_response_error(self, response, expected_status):
        """Assert that response was an error"""
        self.assertEqual(
            response.status_code,
            expected_status,
            f"Expected error status {expected_status}, got {response.status_code}. "
            f"Response: {response.data if hasattr(response, 'data') else response.content}"
        )

    def assert_pagination_response(self, response):
        """Assert that response has pagination structure"""
        self.assertIn('count', response.data)
        self.assertIn('next', response.data)
        self.assertIn('previous', response.data)
        self.assertIn('results', response.data)

    def assert_validation_error(self, response, field=None):
        """Assert validation error response"""
        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)
        if field:
            self.assertIn(field, response.data)

    def assert_seats(self, user, purchased, used, available):
        user.refresh_from_db()
        self.assertEqual(
            (user.purchased_seats, user.used_seats, user.available_seats),
            (purchased, used, available)
        )
