"""
Tests for registration, login and logout.
"""
from rest_framework import status
from rest_framework.authtoken.models import Token

from core.models import User
from core.services.system_settings import update_system_settings
from core.tests.base import BaseAPITestCase

PASSWORD = 'Harbor-Light-2026'


class AuthAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.auth_url = f"{self.base_url}/auth"

    # ========== REGISTRATION ==========

    def test_register_returns_token_and_trial(self):
        response = self.client.post(f"{self.auth_url}/register/", {
            'email': 'Dana@Example.com',
            'first_name': 'Dana',
            'last_name': 'Lee',
            'password': PASSWORD,
            'password_confirm': PASSWORD,
        })
        self.assert_response_success(response, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['email'], 'dana@example.com')
        self.assertEqual(response.data['user']['subscription_status'], 'trial')
        user = User.objects.get(email='dana@example.com')
        self.assertEqual(Token.objects.get(user=user).key, response.data['token'])

    def test_register_password_mismatch(self):
        response = self.client.post(f"{self.auth_url}/register/", {
            'email': 'dana@example.com',
            'password': PASSWORD,
            'password_confirm': PASSWORD + 'x',
        })
        self.assert_validation_error(response, 'password_confirm')

    def test_register_existing_email(self):
        response = self.client.post(f"{self.auth_url}/register/", {
            'email': 'test@test.com',
            'password': PASSWORD,
            'password_confirm': PASSWORD,
        })
        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'A user with this email already exists')

    def test_register_when_signups_disabled(self):
        update_system_settings({'sign_up_enabled': False}, updated_by='admin@test.com')
        response = self.client.post(f"{self.auth_url}/register/", {
            'email': 'dana@example.com',
            'password': PASSWORD,
            'password_confirm': PASSWORD,
        })
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    # ========== LOGIN ==========

    def test_login_success(self):
        response = self.client.post(f"{self.auth_url}/login/", {
            'email': 'TEST@test.com',
            'password': 'testpass123',
        })
        self.assert_response_success(response)
        self.assertTrue(Token.objects.filter(key=response.data['token'], user=self.regular_user).exists())
        self.regular_user.refresh_from_db()
        self.assertIsNotNone(self.regular_user.last_login)

    def test_login_wrong_password(self):
        response = self.client.post(f"{self.auth_url}/login/", {
            'email': 'test@test.com',
            'password': 'nope',
        })
        self.assert_validation_error(response, 'non_field_errors')

    def test_login_blocked_while_sign_in_disabled(self):
        update_system_settings({'sign_in_enabled': False}, updated_by='admin@test.com')

        response = self.client.post(f"{self.auth_url}/login/", {
            'email': 'test@test.com',
            'password': 'testpass123',
        })
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

        response = self.client.post(f"{self.auth_url}/login/", {
            'email': 'admin@test.com',
            'password': 'testpass123',
        })
        self.assert_response_success(response)

    def test_login_pending_deletion(self):
        self.regular_user.account_status = 'pending_deletion'
        self.regular_user.save()
        response = self.client.post(f"{self.auth_url}/login/", {
            'email': 'test@test.com',
            'password': 'testpass123',
        })
        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)
        self.assertIn('scheduled for deletion', str(response.data['non_field_errors']))

    # ========== LOGOUT ==========

    def test_logout_deletes_token(self):
        token = Token.objects.create(user=self.regular_user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')

        response = self.client.post(f"{self.auth_url}/logout/")

        self.assert_response_success(response)
        self.assertFalse(Token.objects.filter(user=self.regular_user).exists())

    def test_logout_requires_authentication(self):
        response = self.client.post(f"{self.auth_url}/logout/")
        self.assert_response_error(response, status.HTTP_401_UNAUTHORIZED)
