"""
Test utilities and factories for creating test data
"""
import itertools
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from erp.branches.models import Branch
from erp.catalog.models import Item
from erp.finance.models import Payment
from erp.inventory.imei import register_imei
from erp.parties.models import Party
from erp.purchasing.serializers import PurchaseOrderSerializer

User = get_user_model()

_imei_counter = itertools.count(1)


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def next_imei():
        """A unique, well-formed 15 digit IMEI"""
        return f"35{next(_imei_counter):013d}"

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='admin', is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_branch(name=None, code=None, is_default=False):
        """Create a test branch"""
        if not name:
            name = f'Branch_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'BR_{TestDataFactory.random_string(6).upper()}'
        return Branch.objects.create(name=name, code=code, is_default=is_default)

    @staticmethod
    def create_item(name=None, selling_price_kwd=None, purchase_price_kwd=None):
        """Create a test catalog item"""
        if not name:
            name = f'Phone_{TestDataFactory.random_string(6)}'
        return Item.objects.create(
            name=name,
            selling_price_kwd=selling_price_kwd,
            purchase_price_kwd=purchase_price_kwd
        )

    @staticmethod
    def create_supplier(name=None, phone=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Party.objects.create(name=name, party_type='supplier', phone=phone)

    @staticmethod
    def create_customer(name=None, phone=None, credit_limit=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if phone is None:
            phone = f'9{random.randint(1000000, 9999999)}'
        return Party.objects.create(name=name, party_type='customer', phone=phone, credit_limit=credit_limit)

    @staticmethod
    def create_stock(item_name, branch=None, count=1, price_kwd=Decimal('100.000'), received_date=None):
        """Register ``count`` in-stock units without a purchase order; returns their IMEIs"""
        imeis = []
        for _ in range(count):
            imei = TestDataFactory.next_imei()
            register_imei(
                imei,
                item_name,
                event_type='opening_stock',
                branch=branch,
                purchase_price_kwd=price_kwd,
                received_date=received_date or timezone.localdate(),
            )
            imeis.append(imei)
        return imeis

    @staticmethod
    def create_purchase_order(user, supplier=None, branch=None, lines=None, purchase_date=None, fx_rate=None):
        """
        Create a purchase order through its serializer so totals and IMEI
        registration run exactly as through the API.

        ``lines`` is a list of line dicts; by default one line with two IMEIs.
        """
        if supplier is None:
            supplier = TestDataFactory.create_supplier()
        if lines is None:
            lines = [{
                'item_name': 'Galaxy A54',
                'quantity': 2,
                'price_kwd': '95.500',
                'imei_numbers': [TestDataFactory.next_imei(), TestDataFactory.next_imei()],
            }]
        data = {
            'purchase_date': (purchase_date or timezone.localdate()).isoformat(),
            'invoice_number': f'SUP-{TestDataFactory.random_string(6).upper()}',
            'supplier': supplier.id,
            'branch': branch.id if branch else None,
            'fx_rate': fx_rate,
        }
        serializer = PurchaseOrderSerializer(data=data, context={'items_data': lines})
        serializer.is_valid(raise_exception=True)
        return serializer.save(created_by=user)

    @staticmethod
    def create_payment(customer=None, supplier=None, amount=Decimal('50.000'), payment_type='Cash',
                       payment_date=None):
        """Create a payment row directly (no splits)"""
        direction = 'IN' if customer is not None else 'OUT'
        return Payment.objects.create(
            payment_date=payment_date or timezone.localdate(),
            direction=direction,
            customer=customer,
            supplier=supplier,
            payment_type=payment_type,
            amount=amount
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
