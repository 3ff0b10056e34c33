from django.db import models
from decimal import Decimal
from erp.branches.models import Branch
from erp.catalog.models import FX_CURRENCY_CHOICES, DEFAULT_FX_CURRENCY
from erp.core.models import User
from erp.parties.models import Party
from erp.purchasing.models import PurchaseOrder
from erp.sales.models import SalesOrder

PAYMENT_TYPE_CHOICES = [
    ('Cash', 'Cash'),
    ('NBK Bank', 'NBK Bank'),
    ('CBK Bank', 'CBK Bank'),
    ('Knet', 'Knet'),
    ('Wamd', 'Wamd'),
]

DIRECTION_CHOICES = [
    ('IN', 'Payment In'),
    ('OUT', 'Payment Out'),
]


class Account(models.Model):
    """Cash and bank accounts; each payment type settles into the account of the same name"""
    ACCOUNT_TYPE_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank'),
        ('card', 'Card'),
        ('wallet', 'Wallet'),
    ]

    name = models.CharField(max_length=100, unique=True)
    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPE_CHOICES, default='bank')
    opening_balance = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0.000'))
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'accounts'
        ordering = ['id']


class AccountTransfer(models.Model):
    """Money moved between two accounts"""
    transfer_date = models.DateField()
    from_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='transfers_out')
    to_account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='transfers_in')
    amount = models.DecimalField(max_digits=14, decimal_places=3)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='account_transfers')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.from_account} -> {self.to_account}: {self.amount}"

    class Meta:
        db_table = 'account_transfers'
        ordering = ['-transfer_date', '-id']


class Payment(models.Model):
    """Money received from a customer (IN) or paid to a supplier (OUT)"""
    payment_date = models.DateField()
    direction = models.CharField(max_length=3, choices=DIRECTION_CHOICES, default='IN')
    customer = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='payments_received')
    supplier = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='payments_made')
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES, default='Cash')
    amount = models.DecimalField(max_digits=14, decimal_places=3)
    fx_currency = models.CharField(max_length=3, choices=FX_CURRENCY_CHOICES, blank=True, null=True)
    fx_rate = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    fx_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    reference = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Payment {self.direction} {self.amount} KWD ({self.payment_type})"

    @property
    def party(self):
        return self.customer if self.direction == 'IN' else self.supplier

    class Meta:
        db_table = 'payments'
        ordering = ['-payment_date', '-id']
        indexes = [
            models.Index(fields=['direction', '-payment_date'], name='idx_payment_direction_date'),
        ]


class PaymentSplit(models.Model):
    """Part of a payment settled with one payment type"""
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='splits')
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=3)
    fx_currency = models.CharField(max_length=3, choices=FX_CURRENCY_CHOICES, blank=True, null=True)
    fx_rate = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    fx_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    class Meta:
        db_table = 'payment_splits'
        ordering = ['id']


class ExpenseCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'expense_categories'
        ordering = ['name']
        verbose_name_plural = 'expense categories'


class Expense(models.Model):
    """Operating expense paid from an account"""
    expense_date = models.DateField()
    category = models.ForeignKey(ExpenseCategory, on_delete=models.PROTECT, null=True, blank=True, related_name='expenses')
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='expenses')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='expenses')
    amount = models.DecimalField(max_digits=14, decimal_places=3)
    description = models.TextField(blank=True, null=True)
    reference = models.CharField(max_length=255, blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Expense {self.amount} on {self.expense_date}"

    class Meta:
        db_table = 'expenses'
        ordering = ['-expense_date', '-id']


class OpeningBalance(models.Model):
    """Balance a party carried over from before the system went live"""
    party = models.ForeignKey(Party, on_delete=models.PROTECT, related_name='opening_balances')
    balance_date = models.DateField()
    amount = models.DecimalField(max_digits=14, decimal_places=3)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Opening balance {self.party}: {self.amount}"

    class Meta:
        db_table = 'opening_balances'
        ordering = ['-balance_date', '-id']
