"""
Tests for the seat endpoints.
"""
from unittest import mock

from rest_framework import status

from core.services.exceptions import PaymentProviderError
from core.tests.base import BaseAPITestCase


@mock.patch('core.services.stripe_billing.delete_seat_item')
@mock.patch('core.services.stripe_billing.update_seat_quantity')
@mock.patch('core.services.stripe_billing.create_seat_item', return_value='si_new')
class SeatAPITestCase(BaseAPITestCase):

    def setUp(self):
        super().setUp()
        self.seats_url = f"{self.base_url}/seats"
        self.owner = self.create_premium_owner(email='owner@test.com')
        self.owner_client = self.client_for(self.owner)

    def test_info_for_free_user(self, create_item, update_qty, delete_item):
        response = self.user_client.get(f"{self.seats_url}/info/")
        self.assert_response_success(response)
        self.assertEqual(response.data['seats'], {'purchased': 0, 'used': 0, 'available': 0, 'monthlyCost': 0.0})
        self.assertEqual(response.data['pricing'], {'pricePerSeat': 9.99, 'maxSeats': 25, 'currency': 'usd'})
        self.assertFalse(response.data['permissions']['canPurchase'])

    def test_purchase(self, create_item, update_qty, delete_item):
        response = self.owner_client.post(f"{self.seats_url}/purchase/", {'quantity': 5}, format='json')
        self.assert_response_success(response)
        self.assertEqual(response.data['message'], 'Successfully purchased 5 seats')
        self.assertEqual(response.data['billing']['monthlyCost'], 49.95)
        self.assert_seats(self.owner, 5, 0, 5)

    def test_purchase_as_free_user(self, create_item, update_qty, delete_item):
        response = self.user_client.post(f"{self.seats_url}/purchase/", {'quantity': 1}, format='json')
        self.assert_response_error(response, status.HTTP_403_FORBIDDEN)

    def test_purchase_invalid_quantity(self, create_item, update_qty, delete_item):
        for quantity in (30, 0, -2, True, "many"):
            response = self.owner_client.post(f"{self.seats_url}/purchase/", {'quantity': quantity}, format='json')
            self.assert_validation_error(response, 'quantity')
        create_item.assert_not_called()
        self.assert_seats(self.owner, 0, 0, 0)

    def test_purchase_missing_quantity(self, create_item, update_qty, delete_item):
        response = self.owner_client.post(f"{self.seats_url}/purchase/", {}, format='json')
        self.assert_validation_error(response, 'quantity')

    def test_add_invalid_quantity(self, create_item, update_qty, delete_item):
        response = self.owner_client.post(f"{self.seats_url}/add/", {'quantity': 0}, format='json')
        self.assert_validation_error(response, 'quantity')
        update_qty.assert_not_called()

    def test_remove_requires_quantity(self, create_item, update_qty, delete_item):
        response = self.owner_client.post(f"{self.seats_url}/remove/", {}, format='json')
        self.assert_validation_error(response, 'quantity')

        response = self.owner_client.post(f"{self.seats_url}/remove/", {'seatsToRemove': -1}, format='json')
        self.assert_validation_error(response, 'seatsToRemove')

    def test_purchase_stripe_failure(self, create_item, update_qty, delete_item):
        create_item.side_effect = PaymentProviderError("Failed to purchase seats")
        response = self.owner_client.post(f"{self.seats_url}/purchase/", {'quantity': 2}, format='json')
        self.assert_response_error(response, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assert_seats(self.owner, 0, 0, 0)

    def test_add_then_remove(self, create_item, update_qty, delete_item):
        self.owner_client.post(f"{self.seats_url}/purchase/", {'quantity': 3}, format='json')

        response = self.owner_client.post(f"{self.seats_url}/add/", {'quantity': 2}, format='json')
        self.assert_response_success(response)
        self.assertEqual(response.data['seats']['purchased'], 5)

        response = self.owner_client.post(f"{self.seats_url}/remove/", {'seatsToRemove': 2}, format='json')
        self.assert_response_success(response)
        self.assertEqual(response.data['billing']['monthlySavings'], 19.98)
        self.assert_seats(self.owner, 3, 0, 3)

    def test_remove_seats_in_use(self, create_item, update_qty, delete_item):
        self.owner_client.post(f"{self.seats_url}/purchase/", {'quantity': 2}, format='json')
        self.add_team_member(self.owner, self.regular_user)

        response = self.owner_client.post(f"{self.seats_url}/remove/", {'quantity': 2}, format='json')

        self.assert_response_error(response, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['usedSeats'], 1)
        self.assert_seats(self.owner, 2, 1, 1)
