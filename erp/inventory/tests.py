"""
Test suite for the inventory app
Tests: IMEI lifecycle rules, manual events, returns, stock transfers,
opening stock adjustments and the sold IMEI export
"""
import io
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework import serializers, status

from erp.core.models import AuditLog
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.inventory.imei import IMEI_TRANSITIONS, can_transition, clean_imei_list, record_imei_event
from erp.inventory.models import ImeiInventory, ImeiEvent, Return, StockTransfer, InventoryAdjustment


class ImeiLifecycleTests(TestCase):
    """Transition table and event log"""

    def test_transition_table(self):
        self.assertTrue(can_transition('in_stock', 'sold'))
        self.assertTrue(can_transition('transferred', 'sold'))
        self.assertFalse(can_transition('sold', 'sold'))
        self.assertFalse(can_transition('warranty', 'transferred'))
        self.assertTrue(can_transition(None, 'purchased'))
        self.assertIsNone(IMEI_TRANSITIONS['purchase_removed'][1])

    def test_clean_imei_list(self):
        self.assertEqual(clean_imei_list('356938035643809, 356938035643817'),
                         ['356938035643809', '356938035643817'])
        self.assertEqual(clean_imei_list(['', None, ' 356938035643809 ']), ['356938035643809'])
        with self.assertRaises(serializers.ValidationError):
            clean_imei_list(['35693803564380'])
        with self.assertRaises(serializers.ValidationError):
            clean_imei_list(['356938035643809', '356938035643809'])

    def test_events_are_appended(self):
        imei = TestDataFactory.create_stock('Galaxy A54')[0]
        record_imei_event(imei, 'marked_defective')
        record_imei_event(imei, 'sent_to_warranty')
        record_imei_event(imei, 'warranty_received')
        events = list(ImeiEvent.objects.filter(imei_number=imei).values_list('event_type', 'to_status'))
        self.assertEqual(events, [
            ('opening_stock', 'in_stock'),
            ('marked_defective', 'defective'),
            ('sent_to_warranty', 'warranty'),
            ('warranty_received', 'in_stock'),
        ])

    def test_invalid_transition_raises(self):
        imei = TestDataFactory.create_stock('Galaxy A54')[0]
        with self.assertRaises(serializers.ValidationError):
            record_imei_event(imei, 'warranty_received')
        self.assertEqual(ImeiInventory.objects.get(imei=imei).status, 'in_stock')

    def test_removal_keeps_history(self):
        imei = TestDataFactory.create_stock('Galaxy A54')[0]
        self.assertIsNone(record_imei_event(imei, 'purchase_removed'))
        self.assertFalse(ImeiInventory.objects.filter(imei=imei).exists())
        self.assertEqual(ImeiEvent.objects.filter(imei_number=imei).count(), 2)


class ImeiAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='staff')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch()
        self.imeis = TestDataFactory.create_stock('iPhone 15', branch=self.branch, count=2)

    def test_list_filters(self):
        TestDataFactory.create_stock('Redmi Note 13')
        response = self.client.get('/api/imei/', {'item_name': 'iphone'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/imei/', {'branch': self.branch.id, 'status': 'in_stock'})
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/imei/', {'status': 'sold'})
        self.assertEqual(response.data, [])

    def test_detail_with_history(self):
        response = self.client.get(f'/api/imei/{self.imeis[0]}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in_stock')
        self.assertEqual(response.data['events'][0]['event_type'], 'opening_stock')
        response = self.client.get('/api/imei/000000000000000/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_manual_event(self):
        response = self.client.post(f'/api/imei/{self.imeis[0]}/events/', {
            'event_type': 'marked_defective',
            'notes': 'Screen flicker',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'defective')
        self.assertEqual(len(response.data['events']), 2)
        self.assertTrue(AuditLog.objects.filter(action='imei_event', object_reference=self.imeis[0]).exists())

    def test_manual_event_rejects_other_types(self):
        response = self.client.post(f'/api/imei/{self.imeis[0]}/events/', {'event_type': 'sold'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[0]).status, 'in_stock')

    def test_manual_event_invalid_transition(self):
        response = self.client.post(f'/api/imei/{self.imeis[0]}/events/', {'event_type': 'warranty_received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_event_history_survives_removal(self):
        record_imei_event(self.imeis[0], 'purchase_removed')
        response = self.client.get(f'/api/imei/{self.imeis[0]}/events/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([event['event_type'] for event in response.data], ['opening_stock', 'purchase_removed'])


class ReturnAPITests(TestCase):
    """Sale and purchase returns"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch()
        self.supplier = TestDataFactory.create_supplier()
        self.customer = TestDataFactory.create_customer()
        self.today = timezone.localdate().isoformat()
        self.imeis = [TestDataFactory.next_imei() for _ in range(3)]
        TestDataFactory.create_purchase_order(self.user, supplier=self.supplier, branch=self.branch, lines=[
            {'item_name': 'Galaxy S24', 'quantity': 3, 'price_kwd': '200.000', 'imei_numbers': self.imeis},
        ])
        self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': self.customer.id,
            'branch': self.branch.id,
            'line_items': [
                {'item_name': 'Galaxy S24', 'quantity': 2, 'price_kwd': '260.000', 'imei_numbers': self.imeis[:2]},
            ],
        }, format='json')

    def _sale_return(self, imeis, condition='good', customer=None):
        return self.client.post('/api/returns/', {
            'return_date': self.today,
            'return_type': 'sale_return',
            'customer': (customer or self.customer).id,
            'branch': self.branch.id,
            'line_items': [
                {'item_name': 'Galaxy S24', 'quantity': len(imeis), 'price_kwd': '260.000',
                 'imei_numbers': imeis, 'condition': condition},
            ],
        }, format='json')

    def test_sale_return(self):
        response = self._sale_return(self.imeis[:1])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['return_number'], 'RET-0001')
        self.assertEqual(response.data['total_kwd'], '260.000')
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[0]).status, 'returned')

        response = self.client.get('/api/returns/next-number/')
        self.assertEqual(response.data['return_number'], 'RET-0002')

    def test_defective_sale_return(self):
        response = self._sale_return(self.imeis[:1], condition='defective')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[0]).status, 'defective')

    def test_returned_unit_can_be_resold(self):
        self._sale_return(self.imeis[:1])
        response = self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': self.customer.id,
            'line_items': [{'item_name': 'Galaxy S24', 'quantity': 1, 'price_kwd': '240', 'imei_numbers': self.imeis[:1]}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[0]).status, 'sold')

    def test_sale_return_of_unsold_unit_rejected(self):
        response = self._sale_return(self.imeis[2:])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Return.objects.count(), 0)

    def test_sale_return_from_other_customer_rejected(self):
        other = TestDataFactory.create_customer()
        response = self._sale_return(self.imeis[:1], customer=other)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('not sold to this customer', response.data['error'])

    def test_sale_return_requires_customer(self):
        response = self.client.post('/api/returns/', {
            'return_date': self.today,
            'return_type': 'sale_return',
            'line_items': [{'item_name': 'Galaxy S24', 'quantity': 1, 'price_kwd': '260'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_purchase_return(self):
        response = self.client.post('/api/returns/', {
            'return_date': self.today,
            'return_type': 'purchase_return',
            'supplier': self.supplier.id,
            'line_items': [
                {'item_name': 'Galaxy S24', 'quantity': 1, 'price_kwd': '200.000', 'imei_numbers': self.imeis[2:]},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[2]).status, 'supplier_returned')

    def test_return_lines_are_locked(self):
        return_id = self._sale_return(self.imeis[:1]).data['id']
        response = self.client.patch(f'/api/returns/{return_id}/', {'notes': 'Box missing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.patch(f'/api/returns/{return_id}/', {
            'line_items': [{'item_name': 'Galaxy S24', 'quantity': 1, 'price_kwd': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_return_reverses_imeis(self):
        return_id = self._sale_return(self.imeis[:1], condition='defective').data['id']
        response = self.client.delete(f'/api/returns/{return_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[0]).status, 'sold')
        self.assertFalse(Return.objects.filter(pk=return_id).exists())

    def test_delete_return_blocked_after_resale(self):
        return_id = self._sale_return(self.imeis[:1]).data['id']
        self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': self.customer.id,
            'line_items': [{'item_name': 'Galaxy S24', 'quantity': 1, 'price_kwd': '240', 'imei_numbers': self.imeis[:1]}],
        }, format='json')
        response = self.client.delete(f'/api/returns/{return_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Return.objects.filter(pk=return_id).exists())


class StockTransferAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.main = TestDataFactory.create_branch(name='Main')
        self.salmiya = TestDataFactory.create_branch(name='Salmiya')
        self.imeis = TestDataFactory.create_stock('Galaxy A54', branch=self.main, count=2)
        self.today = timezone.localdate().isoformat()

    def _transfer(self, imeis, from_branch=None, to_branch=None):
        return self.client.post('/api/stock-transfers/', {
            'transfer_date': self.today,
            'from_branch': (from_branch or self.main).id,
            'to_branch': (to_branch or self.salmiya).id,
            'line_items': [{'item_name': 'Galaxy A54', 'imei_numbers': imeis}],
        }, format='json')

    def test_transfer_moves_units(self):
        response = self._transfer(self.imeis)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['transfer_number'], 'TR-0001')
        self.assertEqual(response.data['line_items'][0]['quantity'], 2)
        for imei in self.imeis:
            record = ImeiInventory.objects.get(imei=imei)
            self.assertEqual(record.status, 'transferred')
            self.assertEqual(record.branch, self.salmiya)
        self.assertTrue(AuditLog.objects.filter(action='stock_transfer').exists())

    def test_same_branch_rejected(self):
        response = self._transfer(self.imeis, to_branch=self.main)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unit_must_be_at_source_branch(self):
        response = self._transfer(self.imeis, from_branch=self.salmiya, to_branch=self.main)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(StockTransfer.objects.count(), 0)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[0]).status, 'in_stock')

    def test_unit_without_branch_cannot_be_transferred(self):
        unplaced = TestDataFactory.create_stock('Galaxy A54')
        response = self._transfer(unplaced)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIsNone(ImeiInventory.objects.get(imei=unplaced[0]).branch)

    def test_transferred_unit_can_be_sold(self):
        self._transfer(self.imeis[:1])
        response = self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': TestDataFactory.create_customer().id,
            'branch': self.salmiya.id,
            'line_items': [{'item_name': 'Galaxy A54', 'quantity': 1, 'price_kwd': '110', 'imei_numbers': self.imeis[:1]}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_delete_moves_units_back(self):
        transfer_id = self._transfer(self.imeis).data['id']
        response = self.client.delete(f'/api/stock-transfers/{transfer_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        for imei in self.imeis:
            self.assertEqual(ImeiInventory.objects.get(imei=imei).branch, self.main)

    def test_list_filters_by_branch(self):
        self._transfer(self.imeis[:1])
        other = TestDataFactory.create_branch()
        response = self.client.get('/api/stock-transfers/', {'branch': self.salmiya.id})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/stock-transfers/', {'branch': other.id})
        self.assertEqual(len(response.data), 0)


class InventoryAdjustmentAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch()
        self.item = TestDataFactory.create_item(name='Pixel 8')

    def _adjust(self, imeis=None, quantity=None):
        data = {
            'item': self.item.id,
            'branch': self.branch.id,
            'unit_cost_kwd': '150.000',
            'effective_date': '2026-01-01',
            'imei_numbers': imeis or [],
        }
        if quantity is not None:
            data['quantity'] = quantity
        return self.client.post('/api/inventory-adjustments/', data, format='json')

    def test_opening_stock_registers_imeis(self):
        imeis = [TestDataFactory.next_imei(), TestDataFactory.next_imei()]
        response = self._adjust(imeis=imeis)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['quantity'], 2)
        for imei in imeis:
            record = ImeiInventory.objects.get(imei=imei)
            self.assertEqual(record.item_name, 'Pixel 8')
            self.assertEqual(record.purchase_price_kwd, Decimal('150.000'))
        self.assertEqual(ImeiEvent.objects.filter(event_type='opening_stock').count(), 2)

    def test_quantity_only_adjustment(self):
        response = self._adjust(quantity=-2)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ImeiInventory.objects.count(), 0)

    def test_zero_quantity_rejected(self):
        response = self._adjust(quantity=0)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_registered_units_lock_item_quantity_and_cost(self):
        imeis = [TestDataFactory.next_imei(), TestDataFactory.next_imei()]
        adjustment_id = self._adjust(imeis=imeis).data['id']
        other = TestDataFactory.create_item(name='Galaxy S24')
        for change in ({'quantity': 7}, {'item': other.id}, {'unit_cost_kwd': '1.000'}):
            response = self.client.patch(f'/api/inventory-adjustments/{adjustment_id}/', change, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        adjustment = InventoryAdjustment.objects.get(pk=adjustment_id)
        self.assertEqual(adjustment.quantity, 2)
        self.assertEqual(adjustment.item, self.item)

        response = self.client.patch(f'/api/inventory-adjustments/{adjustment_id}/', {'notes': 'Counted twice'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(ImeiInventory.objects.get(imei=imeis[0]).purchase_price_kwd, Decimal('150.000'))

    def test_quantity_only_adjustment_edits(self):
        adjustment_id = self._adjust(quantity=3).data['id']
        response = self.client.patch(f'/api/inventory-adjustments/{adjustment_id}/', {'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/inventory-adjustments/{adjustment_id}/', {'quantity': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(InventoryAdjustment.objects.get(pk=adjustment_id).quantity, 5)

    def test_delete_removes_units(self):
        imeis = [TestDataFactory.next_imei()]
        adjustment_id = self._adjust(imeis=imeis).data['id']
        response = self.client.delete(f'/api/inventory-adjustments/{adjustment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ImeiInventory.objects.filter(imei=imeis[0]).exists())
        self.assertFalse(InventoryAdjustment.objects.filter(pk=adjustment_id).exists())

    def test_delete_blocked_when_unit_sold(self):
        imeis = [TestDataFactory.next_imei()]
        adjustment_id = self._adjust(imeis=imeis).data['id']
        record_imei_event(imeis[0], 'sold')
        response = self.client.delete(f'/api/inventory-adjustments/{adjustment_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(InventoryAdjustment.objects.filter(pk=adjustment_id).exists())


class ExportImeiTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='viewer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        admin = TestDataFactory.create_user(role='admin')
        self.customer = TestDataFactory.create_customer(name='Fatima')
        self.imeis = TestDataFactory.create_stock('iPhone 15', count=2)
        seller = AuthenticatedAPIClient()
        seller.authenticate_user(admin)
        seller.post('/api/sales-orders/', {
            'sale_date': timezone.localdate().isoformat(),
            'customer': self.customer.id,
            'line_items': [{'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '280', 'imei_numbers': self.imeis[:1]}],
        }, format='json')

    def test_export_json(self):
        response = self.client.get('/api/export-imei/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        row = response.data[0]
        self.assertEqual(row['imei'], self.imeis[0])
        self.assertEqual(row['customer_name'], 'Fatima')
        self.assertEqual(row['invoice_number'], 'INV-0001')

    def test_export_xlsx(self):
        response = self.client.get('/api/export-imei/', {'format': 'xlsx', 'customer': self.customer.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('IMEI_Export_', response['Content-Disposition'])
        sheet = load_workbook(io.BytesIO(response.content))['Sold IMEIs']
        self.assertEqual(sheet.cell(row=1, column=1).value, 'IMEI')
        self.assertEqual(sheet.cell(row=2, column=1).value, self.imeis[0])
        self.assertIsNone(sheet.cell(row=3, column=1).value)
