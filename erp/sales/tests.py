"""
Test suite for the sales app
Tests: selling IMEIs, editing and deleting invoices, discounts, invoice
lookups, printing and share links
"""
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from erp.core.models import AuditLog
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.inventory.models import ImeiInventory, ImeiEvent
from erp.sales.models import SalesOrder, Discount


class SalesOrderAPITests(TestCase):
    """Test sales order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Ahmad Ali')
        self.branch = TestDataFactory.create_branch()
        self.imeis = TestDataFactory.create_stock('Galaxy A54', branch=self.branch, count=3)
        self.today = timezone.localdate().isoformat()

    def _sell(self, imeis, price='120.000', **extra):
        data = {
            'sale_date': self.today,
            'customer': self.customer.id,
            'branch': self.branch.id,
            'line_items': [
                {'item_name': 'Galaxy A54', 'quantity': len(imeis), 'price_kwd': price, 'imei_numbers': imeis},
            ],
            **extra,
        }
        return self.client.post('/api/sales-orders/', data, format='json')

    def test_create_sales_order_sells_imeis(self):
        response = self._sell(self.imeis[:2])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice_number'], 'INV-0001')
        self.assertEqual(response.data['total_kwd'], '240.000')
        self.assertEqual(response.data['customer_name'], 'Ahmad Ali')

        sales_order = SalesOrder.objects.get(pk=response.data['id'])
        for imei in self.imeis[:2]:
            record = ImeiInventory.objects.get(imei=imei)
            self.assertEqual(record.status, 'sold')
            self.assertEqual(record.sales_order, sales_order)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[2]).status, 'in_stock')
        self.assertEqual(ImeiEvent.objects.filter(event_type='sold').count(), 2)

    def test_invoice_number_can_be_given(self):
        response = self._sell(self.imeis[:1], invoice_number='INV-0100')
        self.assertEqual(response.data['invoice_number'], 'INV-0100')
        response = self.client.get('/api/sales-orders/next-invoice-number/')
        self.assertEqual(response.data['invoice_number'], 'INV-0101')

    def test_unknown_imei_rolls_back(self):
        response = self._sell([TestDataFactory.next_imei()])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('not found', response.data['error'])
        self.assertEqual(SalesOrder.objects.count(), 0)

    def test_cannot_sell_twice(self):
        self._sell(self.imeis[:1])
        response = self._sell(self.imeis[:1])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cannot be sold', response.data['error'])
        self.assertEqual(SalesOrder.objects.count(), 1)

    def test_lines_required(self):
        response = self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': self.customer.id,
            'line_items': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_cannot_be_customer(self):
        supplier = TestDataFactory.create_supplier()
        response = self._sell(self.imeis[:1], customer=supplier.id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_line_without_imeis(self):
        response = self.client.post('/api/sales-orders/', {
            'sale_date': self.today,
            'customer': self.customer.id,
            'line_items': [{'item_name': 'Screen Guard', 'quantity': 4, 'price_kwd': '1.250'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_kwd'], '5.000')

    def test_update_swaps_imeis(self):
        sales_order_id = self._sell(self.imeis[:2]).data['id']
        response = self.client.patch(f'/api/sales-orders/{sales_order_id}/', {
            'line_items': [
                {'item_name': 'Galaxy A54', 'quantity': 2, 'price_kwd': '110.000',
                 'imei_numbers': [self.imeis[0], self.imeis[2]]},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_kwd'], '220.000')
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[1]).status, 'in_stock')
        self.assertIsNone(ImeiInventory.objects.get(imei=self.imeis[1]).sales_order)
        self.assertEqual(ImeiInventory.objects.get(imei=self.imeis[2]).status, 'sold')

    def test_update_header_only_keeps_lines(self):
        sales_order_id = self._sell(self.imeis[:1]).data['id']
        response = self.client.patch(f'/api/sales-orders/{sales_order_id}/', {'notes': 'Deliver Sunday'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['line_items']), 1)
        self.assertEqual(response.data['total_kwd'], '120.000')

    def test_delete_restores_imeis(self):
        sales_order_id = self._sell(self.imeis[:2]).data['id']
        response = self.client.delete(f'/api/sales-orders/{sales_order_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        for imei in self.imeis[:2]:
            record = ImeiInventory.objects.get(imei=imei)
            self.assertEqual(record.status, 'in_stock')
            self.assertIsNone(record.sales_order)
        self.assertEqual(ImeiEvent.objects.filter(event_type='sale_cancelled').count(), 2)
        log = AuditLog.objects.get(model_name='SalesOrder', action='delete')
        self.assertEqual(sorted(log.changes['imeis_restored']), sorted(self.imeis[:2]))

    def test_list_search_by_imei(self):
        self._sell(self.imeis[:1])
        self._sell(self.imeis[1:2])
        response = self.client.get('/api/sales-orders/', {'search': self.imeis[1]})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['invoice_number'], 'INV-0002')

    def test_monthly_stats(self):
        self._sell(self.imeis[:2])
        today = timezone.localdate()
        response = self.client.get('/api/sales-stats/monthly/')
        self.assertEqual(len(response.data), 12)
        self.assertEqual(response.data[today.month - 1]['total_kwd'], '240.000')
        self.assertEqual(response.data[today.month - 1]['order_count'], 1)

    def test_invoices_for_customer(self):
        self._sell(self.imeis[:1])
        response = self.client.get('/api/invoices-for-customer/', {'customer_id': self.customer.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['invoice_number'] for row in response.data], ['INV-0001'])
        response = self.client.get('/api/invoices-for-customer/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_print_invoice(self):
        sales_order_id = self._sell(self.imeis[:1]).data['id']
        response = self.client.get(f'/api/sales-orders/{sales_order_id}/print/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertContains(response, 'INV-0001')
        self.assertContains(response, self.imeis[0])

    def test_whatsapp_link(self):
        sales_order_id = self._sell(self.imeis[:1]).data['id']
        response = self.client.get(f'/api/sales-orders/{sales_order_id}/whatsapp-link/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['url'].startswith(f'https://wa.me/965{self.customer.phone}?text='))
        self.assertIn('INV-0001', response.data['message'])


class DiscountAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer()
        response = self.client.post('/api/sales-orders/', {
            'sale_date': timezone.localdate().isoformat(),
            'customer': self.customer.id,
            'line_items': [{'item_name': 'AirPods Pro', 'quantity': 1, 'price_kwd': '75.000'}],
        }, format='json')
        self.sales_order_id = response.data['id']

    def test_create_discount(self):
        response = self.client.post('/api/discounts/', {
            'customer': self.customer.id,
            'sales_order': self.sales_order_id,
            'discount_amount': '5.000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice_number'], 'INV-0001')

    def test_discounts_cannot_exceed_invoice(self):
        self.client.post('/api/discounts/', {
            'customer': self.customer.id,
            'sales_order': self.sales_order_id,
            'discount_amount': '70.000',
        }, format='json')
        response = self.client.post('/api/discounts/', {
            'customer': self.customer.id,
            'sales_order': self.sales_order_id,
            'discount_amount': '10.000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Discount.objects.count(), 1)

    def test_discount_must_match_invoice_customer(self):
        other = TestDataFactory.create_customer()
        response = self.client.post('/api/discounts/', {
            'customer': other.id,
            'sales_order': self.sales_order_id,
            'discount_amount': '5.000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_discount_rejected(self):
        response = self.client.post('/api/discounts/', {
            'customer': self.customer.id,
            'sales_order': self.sales_order_id,
            'discount_amount': '0',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invoice_cannot_drop_below_its_discounts(self):
        self.client.post('/api/discounts/', {
            'customer': self.customer.id,
            'sales_order': self.sales_order_id,
            'discount_amount': '60.000',
        }, format='json')
        response = self.client.patch(f'/api/sales-orders/{self.sales_order_id}/', {
            'line_items': [{'item_name': 'AirPods Pro', 'quantity': 1, 'price_kwd': '20.000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(str(SalesOrder.objects.get(pk=self.sales_order_id).total_kwd), '75.000')

        response = self.client.patch(f'/api/sales-orders/{self.sales_order_id}/', {
            'line_items': [{'item_name': 'AirPods Pro', 'quantity': 1, 'price_kwd': '60.000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_kwd'], '60.000')
