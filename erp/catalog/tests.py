"""
Test suite for the catalog app
"""
from datetime import date
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework import status

from erp.core.cache_signals import is_suspended
from erp.core.models import AuditLog
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.catalog.models import Item


class ItemAPITests(TestCase):
    """Test item endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='staff')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_item(self):
        response = self.client.post('/api/items/', {
            'name': 'Samsung Galaxy A54',
            'code': 'SM-A546',
            'selling_price_kwd': '115.000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['selling_price_kwd'], '115.000')
        self.assertTrue(response.data['tracks_imei'])

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_item(name='iPhone 15')
        response = self.client.post('/api/items/', {'name': 'iPhone 15'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_multi_word_search(self):
        TestDataFactory.create_item(name='Samsung Galaxy A54')
        TestDataFactory.create_item(name='Samsung Galaxy S24')
        TestDataFactory.create_item(name='iPhone 15')
        response = self.client.get('/api/items/', {'search': 'a54 samsung'})
        self.assertEqual([row['name'] for row in response.data], ['Samsung Galaxy A54'])
        response = self.client.get('/api/items/', {'search': 'galaxy'})
        self.assertEqual(len(response.data), 2)

    def test_bulk_update(self):
        first = TestDataFactory.create_item(name='Redmi Note 13')
        second = TestDataFactory.create_item(name='Redmi 13C')
        response = self.client.post('/api/items/bulk/', {'items': [
            {'id': first.id, 'selling_price_kwd': '65.000'},
            {'id': second.id, 'selling_price_kwd': '42.500', 'code': 'R13C'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.selling_price_kwd, Decimal('65.000'))
        self.assertEqual(second.code, 'R13C')
        self.assertTrue(AuditLog.objects.filter(model_name='Item', action='update').exists())

    def test_bulk_update_clears_report_cache_once(self):
        items = [TestDataFactory.create_item(name=f'Redmi {n}') for n in range(3)]
        with mock.patch('erp.core.cache_signals.invalidate_reports_cache') as per_save, \
                mock.patch('erp.catalog.views.invalidate_reports_cache') as once:
            response = self.client.post('/api/items/bulk/', {'items': [
                {'id': item.id, 'selling_price_kwd': '30.000'} for item in items
            ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        per_save.assert_not_called()
        once.assert_called_once_with()
        self.assertFalse(is_suspended())

    def test_bulk_update_is_all_or_nothing(self):
        item = TestDataFactory.create_item(name='Pixel 8', selling_price_kwd=Decimal('200.000'))
        response = self.client.post('/api/items/bulk/', {'items': [
            {'id': item.id, 'selling_price_kwd': '180.000'},
            {'id': item.id + 1000, 'selling_price_kwd': '1.000'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        item.refresh_from_db()
        self.assertEqual(item.selling_price_kwd, Decimal('200.000'))

        response = self.client.post('/api/items/bulk/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_last_pricing(self):
        item = TestDataFactory.create_item(name='Pixel 8')
        response = self.client.get(f'/api/items/{item.id}/last-pricing/')
        self.assertIsNone(response.data['price_kwd'])

        TestDataFactory.create_purchase_order(self.user, purchase_date=date(2026, 1, 5), lines=[
            {'item_name': 'Pixel 8', 'quantity': 1, 'price_kwd': '150.000'},
        ])
        TestDataFactory.create_purchase_order(self.user, purchase_date=date(2026, 2, 5), lines=[
            {'item_name': 'Pixel 8', 'quantity': 1, 'price_kwd': '145.000'},
        ])
        response = self.client.get(f'/api/items/{item.id}/last-pricing/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price_kwd'], '145.000')
        self.assertEqual(str(response.data['purchase_date']), '2026-02-05')

    def test_viewer_cannot_create(self):
        viewer = TestDataFactory.create_user(role='viewer')
        self.client.authenticate_user(viewer)
        response = self.client.post('/api/items/', {'name': 'Nokia 105'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Item.objects.filter(name='Nokia 105').exists())
