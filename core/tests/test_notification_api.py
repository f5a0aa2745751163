"""
Tests for in-app notifications.
"""
import datetime
import uuid

from django.utils import timezone
from rest_framework import status

from core.models import Notification
from core.services.notifications import notify
from core.tests.base import BaseAPITestCase


class NotificationAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.notifications_url = f"{self.base_url}/notifications"
        self.first = notify(self.regular_user, 'team_invitation', "Team Invitation", "Olive invited you.")
        self.second = notify(self.regular_user, 'member_removed', "Removed from Workspace", "Bye.")
        notify(self.admin_user, 'team_invitation', "Team Invitation", "Not yours.")

    def test_list_notifications(self):
        response = self.user_client.get(f"{self.notifications_url}/")
        self.assert_response_success(response)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['unreadCount'], 2)
        self.assertFalse(response.data['hasMore'])
        self.assertTrue(all(item['isNew'] for item in response.data['notifications']))

    def test_list_with_limit_and_status(self):
        self.user_client.post(f"{self.notifications_url}/{self.first.id}/read/")

        response = self.user_client.get(f"{self.notifications_url}/", {'status': 'unread', 'limit': 1})

        self.assert_response_success(response)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['unreadCount'], 1)
        self.assertEqual(response.data['notifications'][0]['id'], str(self.second.id))

    def test_list_invalid_status(self):
        response = self.user_client.get(f"{self.notifications_url}/", {'status': 'archived'})
        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)

    def test_old_notification_is_not_new(self):
        Notification.objects.filter(pk=self.first.pk).update(
            created_at=timezone.now() - datetime.timedelta(minutes=6)
        )
        response = self.user_client.get(f"{self.notifications_url}/")
        flags = {item['id']: item['isNew'] for item in response.data['notifications']}
        self.assertFalse(flags[str(self.first.id)])
        self.assertTrue(flags[str(self.second.id)])

    def test_mark_read(self):
        response = self.user_client.post(f"{self.notifications_url}/{self.first.id}/read/")
        self.assert_response_success(response)
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)
        self.assertIsNotNone(self.first.read_at)

    def test_mark_read_of_other_user(self):
        other = Notification.objects.get(user=self.admin_user)
        response = self.user_client.post(f"{self.notifications_url}/{other.id}/read/")
        self.assert_response_error(response, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        response = self.user_client.post(f"{self.notifications_url}/read-all/")
        self.assert_response_success(response)
        self.assertEqual(response.data['updated'], 2)
        self.assertFalse(Notification.objects.filter(user=self.regular_user, is_read=False).exists())
        self.assertTrue(Notification.objects.filter(user=self.admin_user, is_read=False).exists())

    def test_delete(self):
        response = self.user_client.delete(f"{self.notifications_url}/{self.first.id}/")
        self.assert_response_success(response)
        self.assertFalse(Notification.objects.filter(pk=self.first.pk).exists())

        response = self.user_client.delete(f"{self.notifications_url}/{uuid.uuid4()}/")
        self.assert_response_error(response, status.HTTP_404_NOT_FOUND)
