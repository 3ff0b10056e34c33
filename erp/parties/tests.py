"""
Test suite for the parties app
Tests: supplier/customer CRUD, delete protection, statements and the
balance shown on the sales screen
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.finance.models import OpeningBalance
from erp.parties.ledger import party_balance
from erp.parties.models import Party


class PartyAPITests(TestCase):
    """Test supplier and customer endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer_pins_party_type(self):
        response = self.client.post('/api/customers/', {
            'name': '  Khalid  ',
            'phone': '99001122',
            'party_type': 'supplier',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Khalid')
        self.assertEqual(response.data['party_type'], 'customer')

    def test_blank_name_rejected(self):
        response = self.client.post('/api/suppliers/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_lists_are_split_by_type(self):
        TestDataFactory.create_supplier(name='Gulf Mobiles')
        TestDataFactory.create_customer(name='Noura', phone='55123456')
        response = self.client.get('/api/suppliers/')
        self.assertEqual([row['name'] for row in response.data], ['Gulf Mobiles'])
        response = self.client.get('/api/customers/', {'search': '5512'})
        self.assertEqual([row['name'] for row in response.data], ['Noura'])
        response = self.client.get('/api/parties/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/parties/', {'party_type': 'customer'})
        self.assertEqual(len(response.data), 1)

    def test_customer_endpoint_ignores_suppliers(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.get(f'/api/customers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_customer(self):
        customer = TestDataFactory.create_customer()
        response = self.client.patch(f'/api/customers/{customer.id}/', {'credit_limit': '250.000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['credit_limit'], '250.000')

    def test_delete_unused_party(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Party.objects.filter(pk=customer.id).exists())

    def test_delete_blocked_by_linked_documents(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_payment(customer=customer)
        response = self.client.delete(f'/api/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Cannot delete customer', response.data['error'])

        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_purchase_order(self.user, supplier=supplier)
        response = self.client.delete(f'/api/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('purchase order(s)', response.data['error'])

    def test_staff_cannot_delete(self):
        staff = TestDataFactory.create_user(role='staff')
        self.client.authenticate_user(staff)
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CustomerStatementTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Salem', credit_limit=Decimal('500.000'))

    def _sale(self, sale_date, price):
        return self.client.post('/api/sales-orders/', {
            'sale_date': sale_date,
            'customer': self.customer.id,
            'line_items': [{'item_name': 'Charger', 'quantity': 1, 'price_kwd': price}],
        }, format='json')

    def test_balance_combines_all_documents(self):
        sales_order_id = self._sale('2026-01-10', '100.000').data['id']
        OpeningBalance.objects.create(party=self.customer, balance_date=date(2025, 12, 31), amount=Decimal('20.000'))
        TestDataFactory.create_payment(customer=self.customer, amount=Decimal('30.000'), payment_date=date(2026, 1, 12))
        self.client.post('/api/returns/', {
            'return_date': '2026-01-15',
            'return_type': 'sale_return',
            'customer': self.customer.id,
            'line_items': [{'item_name': 'Charger', 'quantity': 1, 'price_kwd': '15.000'}],
        }, format='json')
        self.client.post('/api/discounts/', {
            'customer': self.customer.id,
            'sales_order': sales_order_id,
            'discount_amount': '10.000',
        }, format='json')

        self.assertEqual(party_balance(self.customer), Decimal('65.000'))

        response = self.client.get('/api/customer-balance-for-sale/', {'customer_id': self.customer.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['balance'], '65.000')
        self.assertEqual(response.data['credit_limit'], '500.000')
        self.assertEqual(response.data['available_credit'], '435.000')

    def test_balance_for_sale_requires_customer(self):
        response = self.client.get('/api/customer-balance-for-sale/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_statement_period(self):
        self._sale('2026-01-10', '100.000')
        TestDataFactory.create_payment(customer=self.customer, amount=Decimal('30.000'), payment_date=date(2026, 2, 15))
        self._sale('2026-02-20', '40.000')

        response = self.client.get(f'/api/customers/{self.customer.id}/statement/', {'start_date': '2026-02-01'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['customer']['name'], 'Salem')
        self.assertEqual(response.data['opening_balance'], '100.000')
        self.assertEqual([row['type'] for row in response.data['entries']], ['payment', 'sale'])
        self.assertEqual([row['balance'] for row in response.data['entries']], ['70.000', '110.000'])
        self.assertEqual(response.data['closing_balance'], '110.000')

    def test_statement_print(self):
        self._sale('2026-01-10', '100.000')
        response = self.client.get(f'/api/customers/{self.customer.id}/statement/print/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertContains(response, 'Salem')
        self.assertContains(response, '100.000')


class SupplierStatementTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Gulf Mobiles')

    def test_supplier_balance_is_what_we_owe(self):
        TestDataFactory.create_purchase_order(self.user, supplier=self.supplier, purchase_date=date(2026, 1, 5))
        TestDataFactory.create_payment(supplier=self.supplier, amount=Decimal('50.000'), payment_date=date(2026, 1, 6))

        response = self.client.get(f'/api/suppliers/{self.supplier.id}/statement/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['supplier']['name'], 'Gulf Mobiles')
        entries = response.data['entries']
        self.assertEqual(entries[0]['credit'], '191.000')
        self.assertEqual(entries[1]['debit'], '50.000')
        self.assertEqual(response.data['closing_balance'], '141.000')
