"""
API tests for stock issuance endpoints.

- POST /api/v1/orders/<id>/issue/
- POST /api/v1/issuances/<id>/return/
- POST /api/v1/issuances/<id>/damage/
- GET  /api/v1/issuances/ and /api/v1/issuances/<id>/
"""

from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from inventory.models import IssuanceRecord, Order, StaffProfile
from inventory.tests.helpers import api_client_for, make_order, make_stock_item, make_user


class IssuanceAPITestCase(TestCase):
    """Base test case with an authenticated shop staff client."""

    def setUp(self):
        self.user = make_user('wanjiru', role=StaffProfile.Role.STAFF)
        self.client = api_client_for(self.user)
        self.item = make_stock_item(quantity='5')
        self.order = make_order()

    def issue(self, quantity, order=None, item=None, **extra):
        order = order or self.order
        item = item or self.item
        return self.client.post(
            f'/api/v1/orders/{order.id}/issue/',
            {'stock_item_id': item.id, 'quantity': str(quantity), **extra},
            format='json'
        )


class IssueStockAPITest(IssuanceAPITestCase):

    def test_issue_stock(self):
        response = self.issue(3, remarks='Cut to size')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(Decimal(response.data['remaining_stock']), Decimal('2'))
        self.assertEqual(Decimal(response.data['issuance']['issued_quantity']), Decimal('3'))
        self.assertEqual(response.data['issuance']['order_number'], self.order.invoice_number)
        self.assertEqual(response.data['issuance']['remarks'], 'Cut to size')

    def test_issued_by_defaults_to_current_user(self):
        self.issue(1)
        self.assertEqual(IssuanceRecord.objects.get().issued_by, 'wanjiru')

    def test_issued_by_can_be_given(self):
        self.issue(1, issued_by='night-shift')
        self.assertEqual(IssuanceRecord.objects.get().issued_by, 'night-shift')

    def test_insufficient_stock(self):
        item = make_stock_item(quantity='2')
        response = self.issue(5, item=item)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock. Available: 2, Requested: 5')
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertEqual(response.data['available'], '2')
        self.assertEqual(response.data['requested'], '5')

    def test_cancelled_order(self):
        order = make_order(status=Order.Status.CANCELLED)
        response = self.issue(1, order=order)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_order_state')
        self.assertEqual(response.data['error'], 'Cannot issue stock for order with status: cancelled')

    def test_unknown_order(self):
        response = self.client.post(
            '/api/v1/orders/999999/issue/',
            {'stock_item_id': self.item.id, 'quantity': '1'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'order_not_found')

    def test_unknown_stock_item(self):
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/issue/',
            {'stock_item_id': 999999, 'quantity': '1'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'stock_item_not_found')

    def test_invalid_body(self):
        response = self.client.post(
            f'/api/v1/orders/{self.order.id}/issue/',
            {'quantity': '0'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid request body')
        self.assertIn('stock_item_id', response.data['details'])
        self.assertIn('quantity', response.data['details'])
        self.assertFalse(IssuanceRecord.objects.exists())


class ReturnAndDamageAPITest(IssuanceAPITestCase):

    def setUp(self):
        super().setUp()
        response = self.issue(5)
        self.issuance_id = response.data['issuance']['id']

    def test_return(self):
        response = self.client.post(
            f'/api/v1/issuances/{self.issuance_id}/return/',
            {'remarks': 'Wrong tint'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['issuance']['status'], 'returned')
        self.assertEqual(response.data['issuance']['remarks'], 'Returned: Wrong tint')
        self.assertIsNotNone(response.data['issuance']['return_date'])
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('5'))

    def test_return_without_body(self):
        response = self.client.post(f'/api/v1/issuances/{self.issuance_id}/return/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_double_return(self):
        self.client.post(f'/api/v1/issuances/{self.issuance_id}/return/')
        response = self.client.post(f'/api/v1/issuances/{self.issuance_id}/return/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_returned')
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('5'))

    def test_damage(self):
        response = self.client.post(
            f'/api/v1/issuances/{self.issuance_id}/damage/',
            {'remarks': 'Shattered'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['issuance']['status'], 'damaged')
        self.item.refresh_from_db()
        self.assertEqual(self.item.current_quantity, Decimal('0'))

    def test_double_damage(self):
        self.client.post(f'/api/v1/issuances/{self.issuance_id}/damage/')
        response = self.client.post(f'/api/v1/issuances/{self.issuance_id}/damage/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_damaged')

    def test_unknown_issuance(self):
        response = self.client.post('/api/v1/issuances/999999/return/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'issuance_not_found')


class IssuanceListAPITest(IssuanceAPITestCase):

    def setUp(self):
        super().setUp()
        self.other_order = make_order()
        self.first_id = self.issue(1).data['issuance']['id']
        self.second_id = self.issue(1, order=self.other_order).data['issuance']['id']

    def test_list_newest_first(self):
        response = self.client.get('/api/v1/issuances/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [self.second_id, self.first_id])

    def test_filter_by_order(self):
        response = self.client.get('/api/v1/issuances/', {'order': self.order.id})
        self.assertEqual([row['id'] for row in response.data], [self.first_id])

    def test_filter_by_stock_item_and_status(self):
        self.client.post(f'/api/v1/issuances/{self.first_id}/return/')

        response = self.client.get('/api/v1/issuances/', {'stock_item': self.item.id, 'status': 'issued'})
        self.assertEqual([row['id'] for row in response.data], [self.second_id])

    def test_detail(self):
        response = self.client.get(f'/api/v1/issuances/{self.first_id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['batch_number'], self.item.batch_number)

    def test_detail_not_found(self):
        response = self.client.get('/api/v1/issuances/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
