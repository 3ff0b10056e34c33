"""
Test suite for the purchasing app
Tests: purchase order creation with IMEIs, edits, deletes, monthly stats
and purchase order drafts
"""
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from erp.catalog.models import Item
from erp.core.models import AuditLog
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.inventory.models import ImeiInventory, ImeiEvent
from erp.purchasing.models import PurchaseOrder, PurchaseOrderDraft, PurchaseOrderLineItem
from erp.purchasing.serializers import DraftConvertSerializer


class PurchaseOrderAPITests(TestCase):
    """Test purchase order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.branch = TestDataFactory.create_branch()
        self.today = timezone.localdate().isoformat()

    def _purchase_data(self, lines, **extra):
        return {
            'purchase_date': self.today,
            'invoice_number': 'SUP-1001',
            'supplier': self.supplier.id,
            'branch': self.branch.id,
            'line_items': lines,
            **extra,
        }

    def test_create_purchase_order(self):
        """Test totals, IMEI registration and item creation"""
        imeis = [TestDataFactory.next_imei(), TestDataFactory.next_imei()]
        data = self._purchase_data([
            {'item_name': 'Galaxy A54', 'quantity': 2, 'price_kwd': '95.500', 'imei_numbers': imeis},
            {'item_name': 'USB-C Charger', 'quantity': 3, 'price_kwd': '2.125'},
        ], fx_rate='12.0000')
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_kwd'], '197.375')
        self.assertEqual(response.data['total_fx'], '2368.50')
        self.assertEqual(len(response.data['line_items']), 2)

        records = ImeiInventory.objects.filter(imei__in=imeis)
        self.assertEqual(records.count(), 2)
        for record in records:
            self.assertEqual(record.status, 'in_stock')
            self.assertEqual(record.branch, self.branch)
            self.assertEqual(record.supplier, self.supplier)
            self.assertEqual(record.purchase_price_kwd, Decimal('95.500'))
        self.assertEqual(ImeiEvent.objects.filter(event_type='purchased').count(), 2)
        self.assertTrue(Item.objects.filter(name='Galaxy A54').exists())
        self.assertTrue(Item.objects.filter(name='USB-C Charger').exists())
        self.assertTrue(AuditLog.objects.filter(model_name='PurchaseOrder', action='create').exists())

    def test_quantity_defaults_to_imei_count(self):
        imeis = [TestDataFactory.next_imei() for _ in range(3)]
        data = self._purchase_data([{'item_name': 'iPhone 15', 'price_kwd': '250.000', 'imei_numbers': imeis}])
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['line_items'][0]['quantity'], 3)
        self.assertEqual(response.data['total_kwd'], '750.000')

    def test_more_imeis_than_quantity_rejected(self):
        imeis = [TestDataFactory.next_imei(), TestDataFactory.next_imei()]
        data = self._purchase_data([{'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '250', 'imei_numbers': imeis}])
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(PurchaseOrder.objects.count(), 0)

    def test_malformed_imei_rejected(self):
        data = self._purchase_data([{'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '250', 'imei_numbers': ['12345']}])
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_imei_across_lines_rejected(self):
        imei = TestDataFactory.next_imei()
        data = self._purchase_data([
            {'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '250', 'imei_numbers': [imei]},
            {'item_name': 'iPhone 15 Pro', 'quantity': 1, 'price_kwd': '300', 'imei_numbers': [imei]},
        ])
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Duplicate IMEI', str(response.data))

    def test_imei_already_in_stock_rejected(self):
        imei = TestDataFactory.create_stock('iPhone 15')[0]
        data = self._purchase_data([{'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '250', 'imei_numbers': [imei]}])
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already in inventory', response.data['error'])
        self.assertEqual(PurchaseOrder.objects.count(), 0)

    def test_customer_cannot_be_supplier(self):
        customer = TestDataFactory.create_customer()
        data = self._purchase_data([{'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '250'}], supplier=customer.id)
        response = self.client.post('/api/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_lines_diffs_imeis(self):
        """Test removed IMEIs leave inventory and added ones are registered"""
        kept, removed, added = (TestDataFactory.next_imei() for _ in range(3))
        purchase_order = TestDataFactory.create_purchase_order(self.user, supplier=self.supplier, branch=self.branch, lines=[
            {'item_name': 'Galaxy A54', 'quantity': 2, 'price_kwd': '95.500', 'imei_numbers': [kept, removed]},
        ])
        response = self.client.patch(f'/api/purchase-orders/{purchase_order.id}/', {
            'line_items': [
                {'item_name': 'Galaxy A54 5G', 'quantity': 2, 'price_kwd': '90.000', 'imei_numbers': [kept, added]},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_kwd'], '180.000')
        self.assertFalse(ImeiInventory.objects.filter(imei=removed).exists())
        self.assertTrue(ImeiEvent.objects.filter(imei_number=removed, event_type='purchase_removed').exists())
        self.assertEqual(ImeiInventory.objects.get(imei=added).status, 'in_stock')
        kept_record = ImeiInventory.objects.get(imei=kept)
        self.assertEqual(kept_record.item_name, 'Galaxy A54 5G')
        self.assertEqual(kept_record.purchase_price_kwd, Decimal('90.000'))

    def test_update_cannot_remove_sold_imei(self):
        customer = TestDataFactory.create_customer()
        sold, other = TestDataFactory.next_imei(), TestDataFactory.next_imei()
        purchase_order = TestDataFactory.create_purchase_order(self.user, supplier=self.supplier, branch=self.branch, lines=[
            {'item_name': 'Galaxy A54', 'quantity': 2, 'price_kwd': '95.500', 'imei_numbers': [sold, other]},
        ])
        self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': customer.id,
            'line_items': [{'item_name': 'Galaxy A54', 'quantity': 1, 'price_kwd': '120', 'imei_numbers': [sold]}],
        }, format='json')

        response = self.client.patch(f'/api/purchase-orders/{purchase_order.id}/', {
            'line_items': [{'item_name': 'Galaxy A54', 'quantity': 1, 'price_kwd': '95.500', 'imei_numbers': [other]}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(ImeiInventory.objects.get(imei=sold).status, 'sold')

    def test_delete_removes_available_imeis_and_keeps_sold(self):
        customer = TestDataFactory.create_customer()
        sold, unsold = TestDataFactory.next_imei(), TestDataFactory.next_imei()
        purchase_order = TestDataFactory.create_purchase_order(self.user, supplier=self.supplier, branch=self.branch, lines=[
            {'item_name': 'Galaxy A54', 'quantity': 2, 'price_kwd': '95.500', 'imei_numbers': [sold, unsold]},
        ])
        self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': customer.id,
            'line_items': [{'item_name': 'Galaxy A54', 'quantity': 1, 'price_kwd': '120', 'imei_numbers': [sold]}],
        }, format='json')

        response = self.client.delete(f'/api/purchase-orders/{purchase_order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseOrder.objects.filter(pk=purchase_order.id).exists())
        self.assertFalse(PurchaseOrderLineItem.objects.filter(purchase_order_id=purchase_order.id).exists())
        self.assertFalse(ImeiInventory.objects.filter(imei=unsold).exists())
        sold_record = ImeiInventory.objects.get(imei=sold)
        self.assertEqual(sold_record.status, 'sold')
        self.assertIsNone(sold_record.purchase_order)

        log = AuditLog.objects.get(model_name='PurchaseOrder', action='delete')
        self.assertEqual(log.changes['imeis_removed'], [unsold])
        self.assertEqual(log.changes['imeis_kept'], [sold])

    def test_list_filters_by_supplier(self):
        TestDataFactory.create_purchase_order(self.user, supplier=self.supplier)
        TestDataFactory.create_purchase_order(self.user)
        response = self.client.get('/api/purchase-orders/', {'supplier': self.supplier.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['line_count'], 1)

    def test_monthly_stats(self):
        TestDataFactory.create_purchase_order(self.user, supplier=self.supplier)
        today = timezone.localdate()
        response = self.client.get('/api/stats/monthly/', {'year': today.year})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 12)
        self.assertEqual(response.data[today.month - 1]['total_kwd'], '191.000')


class PurchaseOrderDraftAPITests(TestCase):
    """Test purchase order drafts and conversion"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.branch = TestDataFactory.create_branch()

    def _create_draft(self, imeis=None):
        return self.client.post('/api/purchase-order-drafts/', {
            'po_date': timezone.localdate().isoformat(),
            'supplier': self.supplier.id,
            'branch': self.branch.id,
            'line_items': [
                {'item_name': 'Redmi Note 13', 'quantity': 2, 'price_kwd': '45.000', 'imei_numbers': imeis or []},
            ],
        }, format='json')

    def test_create_draft_numbers_sequentially(self):
        response = self._create_draft()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['po_number'], 'PO-0001')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['total_kwd'], '90.000')
        response = self.client.get('/api/purchase-order-drafts/next-number/')
        self.assertEqual(response.data['po_number'], 'PO-0002')

    def test_draft_does_not_touch_inventory(self):
        self._create_draft(imeis=[TestDataFactory.next_imei()])
        self.assertEqual(ImeiInventory.objects.count(), 0)

    def test_status_change(self):
        draft_id = self._create_draft().data['id']
        response = self.client.patch(f'/api/purchase-order-drafts/{draft_id}/status/', {'status': 'sent'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'sent')
        response = self.client.patch(f'/api/purchase-order-drafts/{draft_id}/status/', {'status': 'converted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_convert_creates_purchase_order(self):
        imeis = [TestDataFactory.next_imei(), TestDataFactory.next_imei()]
        draft_id = self._create_draft(imeis=imeis).data['id']
        response = self.client.post(f'/api/purchase-order-drafts/{draft_id}/convert/', {
            'invoice_number': 'SUP-7788',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['draft']['status'], 'converted')
        self.assertEqual(response.data['purchase_order']['invoice_number'], 'SUP-7788')
        self.assertEqual(response.data['purchase_order']['total_kwd'], '90.000')

        purchase_order = PurchaseOrder.objects.get(invoice_number='SUP-7788')
        draft = PurchaseOrderDraft.objects.get(pk=draft_id)
        self.assertEqual(draft.converted_to_purchase, purchase_order)
        self.assertEqual(ImeiInventory.objects.filter(imei__in=imeis, purchase_order=purchase_order).count(), 2)

        response = self.client.post(f'/api/purchase-order-drafts/{draft_id}/convert/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_converted_draft_cannot_be_edited(self):
        draft_id = self._create_draft().data['id']
        self.client.post(f'/api/purchase-order-drafts/{draft_id}/convert/', {}, format='json')
        response = self.client.patch(f'/api/purchase-order-drafts/{draft_id}/', {'notes': 'late change'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_convert_rechecks_status_inside_transaction(self):
        draft_id = self._create_draft().data['id']
        validate = DraftConvertSerializer.is_valid

        def converted_elsewhere(serializer, *args, **kwargs):
            PurchaseOrderDraft.objects.filter(pk=draft_id).update(status='converted')
            return validate(serializer, *args, **kwargs)

        with mock.patch.object(DraftConvertSerializer, 'is_valid', converted_elsewhere):
            response = self.client.post(f'/api/purchase-order-drafts/{draft_id}/convert/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PurchaseOrder.objects.exists())
