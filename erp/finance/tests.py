"""
Test suite for the finance app
Tests: payments and split payments, account balances and statements,
account transfers, expenses, opening balances and the transaction journal
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from erp.core.models import AuditLog
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.core.transaction_password import set_password
from erp.finance.ledger import account_balance
from erp.finance.models import Account, Payment, PaymentSplit, Expense, ExpenseCategory


class PaymentAPITests(TestCase):
    """Test payment endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Yousef')
        self.supplier = TestDataFactory.create_supplier(name='Gulf Mobiles')

    def test_create_payment_in(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'IN',
            'customer': self.customer.id,
            'payment_type': 'Knet',
            'amount': '45.500',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amount'], '45.500')
        self.assertEqual(response.data['customer_name'], 'Yousef')
        self.assertEqual(response.data['splits'], [])
        self.assertTrue(AuditLog.objects.filter(action='payment_add', model_name='Payment').exists())

    def test_split_payment(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'IN',
            'customer': self.customer.id,
            'splits': [
                {'payment_type': 'Cash', 'amount': '30.000'},
                {'payment_type': 'Knet', 'amount': '20.250'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amount'], '50.250')
        self.assertEqual(response.data['payment_type'], 'Cash')
        self.assertEqual(len(response.data['splits']), 2)

        self.assertEqual(account_balance(Account.objects.get(name='Cash')), Decimal('30.000'))
        self.assertEqual(account_balance(Account.objects.get(name='Knet')), Decimal('20.250'))

    def test_single_split_rejected(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'IN',
            'customer': self.customer.id,
            'splits': [{'payment_type': 'Cash', 'amount': '30.000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Payment.objects.count(), 0)

    def test_amount_required_without_splits(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'IN',
            'customer': self.customer.id,
            'amount': '0',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_direction_needs_matching_party(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'OUT',
            'customer': self.customer.id,
            'amount': '10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('supplier', response.data)

        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'IN',
            'customer': self.supplier.id,
            'amount': '10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_fx_amount_derived(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'OUT',
            'supplier': self.supplier.id,
            'amount': '100.000',
            'fx_rate': '12.0000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['fx_currency'], 'AED')
        self.assertEqual(response.data['fx_amount'], '1200.00')

    def test_list_filters_and_pagination(self):
        TestDataFactory.create_payment(customer=self.customer, payment_date=date(2026, 1, 5))
        TestDataFactory.create_payment(customer=self.customer, payment_date=date(2026, 2, 5), payment_type='Knet')
        TestDataFactory.create_payment(supplier=self.supplier, payment_date=date(2026, 2, 10))

        response = self.client.get('/api/payments/', {'direction': 'IN'})
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/payments/', {'payment_type': 'Knet'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/payments/', {'start_date': '2026-02-01'})
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/payments/', {'supplier': self.supplier.id})
        self.assertEqual(response.data[0]['supplier_name'], 'Gulf Mobiles')

        response = self.client.get('/api/payments/', {'limit': 2, 'offset': 1})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['limit'], 2)
        self.assertEqual(response.data['offset'], 1)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['results'][0]['payment_date'], '2026-02-05')

    def test_payments_are_not_edited(self):
        payment = TestDataFactory.create_payment(customer=self.customer)
        response = self.client.patch(f'/api/payments/{payment.id}/', {'amount': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_delete_payment_with_splits(self):
        response = self.client.post('/api/payments/', {
            'payment_date': '2026-03-01',
            'direction': 'IN',
            'customer': self.customer.id,
            'splits': [
                {'payment_type': 'Cash', 'amount': '5.000'},
                {'payment_type': 'Wamd', 'amount': '5.000'},
            ],
        }, format='json')
        payment_id = response.data['id']
        response = self.client.delete(f'/api/payments/{payment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(PaymentSplit.objects.count(), 0)
        self.assertTrue(AuditLog.objects.filter(action='delete', model_name='Payment').exists())

    def test_delete_guarded_by_transaction_password(self):
        payment = TestDataFactory.create_payment(customer=self.customer)
        set_password('1234')
        response = self.client.delete(f'/api/payments/{payment.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/payments/{payment.id}/', HTTP_X_TRANSACTION_PASSWORD='1234')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_receipt_print_and_link(self):
        payment = TestDataFactory.create_payment(customer=self.customer, amount=Decimal('12.500'))
        response = self.client.get(f'/api/payments/{payment.id}/print/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertContains(response, 'Yousef')
        self.assertContains(response, '12.500')

        response = self.client.get(f'/api/payments/{payment.id}/whatsapp-link/')
        self.assertTrue(response.data['url'].startswith(f'https://wa.me/965{self.customer.phone}?text='))
        self.assertIn('12.500', response.data['message'])


class AccountAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cash = Account.objects.get(name='Cash')
        self.bank = Account.objects.get(name='NBK Bank')
        self.customer = TestDataFactory.create_customer()
        self.supplier = TestDataFactory.create_supplier()

    def test_seeded_accounts(self):
        response = self.client.get('/api/accounts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data],
                         ['Cash', 'NBK Bank', 'CBK Bank', 'Knet', 'Wamd'])
        self.assertEqual(response.data[0]['current_balance'], '0.000')

    def test_balance_follows_payments_expenses_and_transfers(self):
        self.cash.opening_balance = Decimal('100.000')
        self.cash.save()
        TestDataFactory.create_payment(customer=self.customer, amount=Decimal('50.000'))
        TestDataFactory.create_payment(supplier=self.supplier, amount=Decimal('20.000'))
        Expense.objects.create(expense_date=date.today(), account=self.cash, amount=Decimal('7.500'))

        response = self.client.post('/api/account-transfers/', {
            'transfer_date': date.today().isoformat(),
            'from_account': self.cash.id,
            'to_account': self.bank.id,
            'amount': '40.000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.assertEqual(account_balance(self.cash), Decimal('82.500'))
        self.assertEqual(account_balance(self.bank), Decimal('40.000'))
        response = self.client.get(f'/api/accounts/{self.bank.id}/')
        self.assertEqual(response.data['current_balance'], '40.000')

    def test_transfer_needs_two_accounts(self):
        response = self.client.post('/api/account-transfers/', {
            'transfer_date': '2026-03-01',
            'from_account': self.cash.id,
            'to_account': self.cash.id,
            'amount': '10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_statement_running_balance(self):
        TestDataFactory.create_payment(customer=self.customer, amount=Decimal('10.000'), payment_date=date(2026, 1, 10))
        TestDataFactory.create_payment(customer=self.customer, amount=Decimal('25.000'), payment_date=date(2026, 2, 10))
        TestDataFactory.create_payment(supplier=self.supplier, amount=Decimal('5.000'), payment_date=date(2026, 2, 20))

        response = self.client.get(f'/api/accounts/{self.cash.id}/transactions/', {'start_date': '2026-02-01'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['account']['name'], 'Cash')
        self.assertEqual(response.data['opening_balance'], '10.000')
        self.assertEqual([row['balance'] for row in response.data['transactions']], ['35.000', '30.000'])
        self.assertEqual(response.data['transactions'][1]['type'], 'payment_out')
        self.assertEqual(response.data['closing_balance'], '30.000')

    def test_account_in_use_cannot_be_deleted(self):
        Expense.objects.create(expense_date=date.today(), account=self.bank, amount=Decimal('1.000'))
        response = self.client.delete(f'/api/accounts/{self.bank.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('still in use', response.data['error'])


class ExpenseAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cash = Account.objects.get(name='Cash')
        self.category = ExpenseCategory.objects.create(name='Rent')

    def _expense(self, amount='250.000'):
        return self.client.post('/api/expenses/', {
            'expense_date': '2026-03-01',
            'category': self.category.id,
            'account': self.cash.id,
            'amount': amount,
            'description': 'Shop rent March',
        }, format='json')

    def test_create_expense(self):
        response = self._expense()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category_name'], 'Rent')
        self.assertEqual(response.data['account_name'], 'Cash')
        self.assertEqual(account_balance(self.cash), Decimal('-250.000'))

    def test_negative_amount_rejected(self):
        response = self._expense(amount='-5')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_category(self):
        self._expense()
        other = ExpenseCategory.objects.create(name='Electricity')
        response = self.client.get('/api/expenses/', {'category': other.id})
        self.assertEqual(response.data, [])
        response = self.client.get('/api/expenses/', {'category': self.category.id})
        self.assertEqual(len(response.data), 1)

    def test_category_in_use_cannot_be_deleted(self):
        self._expense()
        response = self.client.delete(f'/api/expense-categories/{self.category.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(ExpenseCategory.objects.filter(pk=self.category.id).exists())

        unused = ExpenseCategory.objects.create(name='Misc')
        response = self.client.delete(f'/api/expense-categories/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_expense_delete_guarded(self):
        expense_id = self._expense().data['id']
        set_password('s3cret')
        response = self.client.delete(f'/api/expenses/{expense_id}/', {'transaction_password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/expenses/{expense_id}/', {'transaction_password': 's3cret'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class OpeningBalanceAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_filter(self):
        customer = TestDataFactory.create_customer(name='Old Client')
        supplier = TestDataFactory.create_supplier()
        response = self.client.post('/api/opening-balances/', {
            'party': customer.id,
            'balance_date': '2025-12-31',
            'amount': '120.000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['party_name'], 'Old Client')
        self.assertEqual(response.data['party_type'], 'customer')

        self.client.post('/api/opening-balances/', {
            'party': supplier.id,
            'balance_date': '2025-12-31',
            'amount': '80.000',
        }, format='json')
        response = self.client.get('/api/opening-balances/', {'party_type': 'supplier'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['amount'], '80.000')


class TransactionJournalTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='viewer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.branch = TestDataFactory.create_branch()
        self.supplier = TestDataFactory.create_supplier(name='Gulf Mobiles')
        self.customer = TestDataFactory.create_customer(name='Mariam')
        TestDataFactory.create_purchase_order(self.user, supplier=self.supplier, branch=self.branch,
                                              purchase_date=date(2026, 1, 2))
        TestDataFactory.create_payment(customer=self.customer, payment_date=date(2026, 1, 3))
        Expense.objects.create(expense_date=date(2026, 1, 4), account=Account.objects.get(name='Cash'),
                               branch=self.branch, amount=Decimal('3.000'))

    def test_journal_newest_first(self):
        response = self.client.get('/api/transactions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['type'] for row in response.data], ['expense', 'payment_in', 'purchase'])
        self.assertEqual(response.data[2]['amount_kwd'], '191.000')
        self.assertEqual(response.data[2]['party_name'], 'Gulf Mobiles')

    def test_type_filter(self):
        response = self.client.get('/api/transactions/', {'type': 'payment_in,expense'})
        self.assertEqual([row['type'] for row in response.data], ['expense', 'payment_in'])
        response = self.client.get('/api/transactions/', {'type': 'bogus'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_branch_filter_drops_payments(self):
        response = self.client.get('/api/transactions/', {'branch': self.branch.id})
        self.assertEqual([row['type'] for row in response.data], ['expense', 'purchase'])

    def test_party_filter_and_search(self):
        response = self.client.get('/api/transactions/', {'customer': self.customer.id})
        self.assertEqual([row['type'] for row in response.data], ['payment_in'])
        response = self.client.get('/api/transactions/', {'search': 'gulf'})
        self.assertEqual([row['type'] for row in response.data], ['purchase'])

    def test_pagination(self):
        response = self.client.get('/api/transactions/', {'limit': 1})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 1)

    def test_same_day_rows_order_by_numeric_id(self):
        cash = Account.objects.get(name='Cash')
        for pk in (999999, 1000000):
            Expense.objects.create(id=pk, expense_date=date(2026, 1, 5), account=cash,
                                   branch=self.branch, amount=Decimal('1.000'))
        response = self.client.get('/api/transactions/', {'type': 'expense', 'start_date': '2026-01-05'})
        self.assertEqual([row['id'] for row in response.data], ['expense-1000000', 'expense-999999'])
