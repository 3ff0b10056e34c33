"""
Test suite for reports
Tests: stock balance, daily cash flow, customer report, profit and loss,
stock aging, item sales, dashboard numbers and report cache invalidation
"""
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from erp.catalog.models import Item
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.finance.models import Account, Expense, ExpenseCategory
from erp.reports.queries import aging_bucket


class ReportTestCase(TestCase):
    """
    One purchase of three units in January, two of them sold in February
    and one of those returned, plus an accessory sale, payments and rent.
    """

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch(name='Main')
        self.supplier = TestDataFactory.create_supplier(name='Gulf Mobiles')
        self.customer = TestDataFactory.create_customer(name='Hessa')
        self.imeis = [TestDataFactory.next_imei() for _ in range(3)]

        TestDataFactory.create_purchase_order(
            self.user, supplier=self.supplier, branch=self.branch, purchase_date=date(2026, 1, 5),
            lines=[{'item_name': 'Galaxy A54', 'quantity': 3, 'price_kwd': '100.000', 'imei_numbers': self.imeis}]
        )
        self.client.post('/api/sales-orders/', {
            'sale_date': '2026-02-10',
            'customer': self.customer.id,
            'branch': self.branch.id,
            'line_items': [
                {'item_name': 'Galaxy A54', 'quantity': 2, 'price_kwd': '150.000', 'imei_numbers': self.imeis[:2]},
                {'item_name': 'Silicone Case', 'quantity': 3, 'price_kwd': '5.000'},
            ],
        }, format='json')
        self.client.post('/api/returns/', {
            'return_date': '2026-02-15',
            'return_type': 'sale_return',
            'customer': self.customer.id,
            'branch': self.branch.id,
            'line_items': [
                {'item_name': 'Galaxy A54', 'quantity': 1, 'price_kwd': '150.000', 'imei_numbers': self.imeis[:1]},
            ],
        }, format='json')
        TestDataFactory.create_payment(supplier=self.supplier, amount=Decimal('300.000'), payment_date=date(2026, 1, 6))
        TestDataFactory.create_payment(customer=self.customer, amount=Decimal('100.000'), payment_date=date(2026, 2, 10))
        Expense.objects.create(
            expense_date=date(2026, 2, 20),
            category=ExpenseCategory.objects.create(name='Rent'),
            account=Account.objects.get(name='Cash'),
            branch=self.branch,
            amount=Decimal('20.000'),
        )


class StockBalanceReportTests(ReportTestCase):

    def test_all_time(self):
        response = self.client.get('/api/reports/stock-balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rows = {row['item_name']: row for row in response.data}
        galaxy = rows['Galaxy A54']
        self.assertEqual(galaxy['purchased'], 3)
        self.assertEqual(galaxy['sold'], 2)
        self.assertEqual(galaxy['sale_returned'], 1)
        self.assertEqual(galaxy['balance'], 2)
        self.assertEqual(rows['Silicone Case']['balance'], -3)

    def test_earlier_activity_becomes_opening_stock(self):
        response = self.client.get('/api/reports/stock-balance/', {'start_date': '2026-02-01'})
        galaxy = {row['item_name']: row for row in response.data}['Galaxy A54']
        self.assertEqual(galaxy['opening_stock'], 3)
        self.assertEqual(galaxy['purchased'], 0)
        self.assertEqual(galaxy['balance'], 2)

    def test_branch_transfers(self):
        other = TestDataFactory.create_branch(name='Salmiya')
        self.client.post('/api/stock-transfers/', {
            'transfer_date': '2026-03-01',
            'from_branch': self.branch.id,
            'to_branch': other.id,
            'line_items': [{'item_name': 'Galaxy A54', 'imei_numbers': self.imeis[2:]}],
        }, format='json')
        response = self.client.get('/api/reports/stock-balance/', {'branch': other.id})
        galaxy = {row['item_name']: row for row in response.data}['Galaxy A54']
        self.assertEqual(galaxy['transferred_in'], 1)
        self.assertEqual(galaxy['balance'], 1)

        response = self.client.get('/api/reports/stock-balance/', {'branch': self.branch.id})
        galaxy = {row['item_name']: row for row in response.data}['Galaxy A54']
        self.assertEqual(galaxy['transferred_out'], 1)
        self.assertEqual(galaxy['balance'], 1)

    def test_cache_dropped_when_documents_change(self):
        self.client.get('/api/reports/stock-balance/')
        self.client.post('/api/inventory-adjustments/', {
            'item': TestDataFactory.create_item(name='Pixel 8').id,
            'unit_cost_kwd': '150.000',
            'effective_date': '2026-01-01',
            'imei_numbers': [TestDataFactory.next_imei()],
        }, format='json')
        response = self.client.get('/api/reports/stock-balance/')
        rows = {row['item_name']: row for row in response.data}
        self.assertEqual(rows['Pixel 8']['opening_stock'], 1)


class CashAndProfitReportTests(ReportTestCase):

    def test_daily_cash_flow(self):
        response = self.client.get('/api/reports/daily-cash-flow/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['date'] for row in response.data], ['2026-01-06', '2026-02-10', '2026-02-20'])
        self.assertEqual(response.data[0]['out_amount'], '300.000')
        self.assertEqual(response.data[1]['in_amount'], '100.000')
        self.assertEqual([row['running_balance'] for row in response.data], ['-300.000', '-200.000', '-220.000'])

    def test_daily_cash_flow_period(self):
        response = self.client.get('/api/reports/daily-cash-flow/', {'start_date': '2026-02-01'})
        self.assertEqual([row['net'] for row in response.data], ['100.000', '-20.000'])

    def test_profit_loss(self):
        response = self.client.get('/api/reports/profit-loss/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        report = response.data
        self.assertEqual(report['gross_sales'], '315.000')
        self.assertEqual(report['sale_returns'], '150.000')
        self.assertEqual(report['net_sales'], '165.000')
        # two IMEIs at their purchase price; the case has no purchase history
        self.assertEqual(report['cost_of_goods_sold'], '200.000')
        self.assertEqual(report['gross_profit'], '-35.000')
        self.assertEqual(report['total_expenses'], '20.000')
        self.assertEqual(report['net_profit'], '-55.000')
        self.assertEqual(report['expenses_by_category'], [{'category': 'Rent', 'amount': '20.000'}])

    def test_profit_loss_outside_period(self):
        response = self.client.get('/api/reports/profit-loss/', {'end_date': '2026-01-31'})
        self.assertEqual(response.data['gross_sales'], '0.000')
        self.assertEqual(response.data['expenses_by_category'], [])

    def test_customer_report(self):
        response = self.client.get('/api/reports/customer-report/')
        row = response.data[0]
        self.assertEqual(row['customer_name'], 'Hessa')
        self.assertEqual(row['total_sales'], '315.000')
        self.assertEqual(row['total_payments'], '100.000')
        self.assertEqual(row['balance'], '65.000')

    def test_item_sales(self):
        response = self.client.get('/api/reports/item-sales/')
        self.assertEqual(response.data, [
            {'item_name': 'Galaxy A54', 'quantity': 2, 'total_kwd': '300.000'},
            {'item_name': 'Silicone Case', 'quantity': 3, 'total_kwd': '15.000'},
        ])

    def test_item_sales_detail(self):
        galaxy = Item.objects.get(name='Galaxy A54')
        response = self.client.get('/api/reports/item-sales/', {'item': galaxy.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        row = response.data[0]
        self.assertEqual(row['date'], '2026-02-10')
        self.assertEqual(row['invoice_number'], 'INV-0001')
        self.assertEqual(row['customer_name'], 'Hessa')
        self.assertEqual(row['quantity'], 2)
        self.assertEqual(row['unit_price'], '150.000')
        self.assertEqual(row['total_kwd'], '300.000')

    def test_item_sales_customer_filter(self):
        other = TestDataFactory.create_customer(name='Other')
        response = self.client.get('/api/reports/item-sales/', {'customer': other.id})
        self.assertEqual(response.data, [])
        response = self.client.get('/api/reports/item-sales/', {'item': 99999})
        self.assertEqual(response.data, [])


class StockAgingReportTests(ReportTestCase):

    def test_buckets(self):
        self.assertEqual(aging_bucket(0), '0_30')
        self.assertEqual(aging_bucket(31), '31_60')
        self.assertEqual(aging_bucket(90), '61_90')
        self.assertEqual(aging_bucket(91), '90_plus')
        self.assertEqual(aging_bucket(-3), '0_30')

    def test_available_units_by_age(self):
        response = self.client.get('/api/reports/stock-aging/', {'as_of': '2026-03-01'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        galaxy = response.data['items'][0]
        self.assertEqual(galaxy['item_name'], 'Galaxy A54')
        # the unsold unit and the returned one, both received 55 days earlier
        self.assertEqual(galaxy['total_qty'], 2)
        self.assertEqual(galaxy['qty_31_60'], 2)
        self.assertEqual(galaxy['value_31_60'], '200.000')
        self.assertEqual(response.data['summary']['bucket_31_60'], '200.000')
        self.assertEqual(response.data['summary']['bucket_0_30'], '0.000')
        self.assertEqual(response.data['summary']['total'], '200.000')

        response = self.client.get('/api/reports/stock-aging/', {'as_of': '2026-06-01'})
        self.assertEqual(response.data['summary']['bucket_90_plus'], '200.000')


class DashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(role='viewer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_current_month(self):
        admin = TestDataFactory.create_user(role='admin')
        seller = AuthenticatedAPIClient()
        seller.authenticate_user(admin)
        customer = TestDataFactory.create_customer()
        imeis = TestDataFactory.create_stock('iPhone 15', count=2)
        seller.post('/api/sales-orders/', {
            'sale_date': timezone.localdate().isoformat(),
            'customer': customer.id,
            'line_items': [{'item_name': 'iPhone 15', 'quantity': 1, 'price_kwd': '300.000', 'imei_numbers': imeis[:1]}],
        }, format='json')

        response = self.client.get('/api/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sales_this_month'], '300.000')
        self.assertEqual(response.data['sales_count_this_month'], 1)
        self.assertEqual(response.data['stock_units_available'], 1)
        self.assertEqual(response.data['customers'], 1)
        self.assertEqual(response.data['month_start'], timezone.localdate().replace(day=1).isoformat())
