"""
Test suite for the branches app
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from erp.branches.models import Branch
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.finance.models import Account, Expense


class BranchAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_no_default_branch(self):
        response = self.client.get('/api/branches/default/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_default_falls_back_to_oldest(self):
        first = TestDataFactory.create_branch(name='Hawally')
        TestDataFactory.create_branch(name='Fahaheel')
        response = self.client.get('/api/branches/default/')
        self.assertEqual(response.data['id'], first.id)

    def test_only_one_default(self):
        main = TestDataFactory.create_branch(name='Main', is_default=True)
        response = self.client.post('/api/branches/', {
            'name': 'Salmiya',
            'code': 'SAL',
            'is_default': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        main.refresh_from_db()
        self.assertFalse(main.is_default)
        response = self.client.get('/api/branches/default/')
        self.assertEqual(response.data['name'], 'Salmiya')

    def test_blank_codes_do_not_collide(self):
        for name in ('Jahra', 'Farwaniya'):
            response = self.client.post('/api/branches/', {'name': name, 'code': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Branch.objects.filter(code__isnull=True).count(), 2)

    def test_is_active_filter(self):
        TestDataFactory.create_branch(name='Open')
        closed = TestDataFactory.create_branch(name='Closed')
        closed.is_active = False
        closed.save()
        response = self.client.get('/api/branches/', {'is_active': 'true'})
        self.assertEqual([row['name'] for row in response.data], ['Open'])

    def test_branch_in_use_cannot_be_deleted(self):
        branch = TestDataFactory.create_branch()
        Expense.objects.create(expense_date=date.today(), account=Account.objects.get(name='Cash'),
                               branch=branch, amount=Decimal('2.000'))
        response = self.client.delete(f'/api/branches/{branch.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Branch.objects.filter(pk=branch.id).exists())

    def test_delete_unused_branch(self):
        branch = TestDataFactory.create_branch()
        response = self.client.delete(f'/api/branches/{branch.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
