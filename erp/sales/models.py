from django.db import models
from erp.branches.models import Branch
from erp.catalog.models import FX_CURRENCY_CHOICES, DEFAULT_FX_CURRENCY
from erp.core.models import User
from erp.parties.models import Party


class SalesOrder(models.Model):
    """Sales invoice to a customer"""
    sale_date = models.DateField()
    invoice_number = models.CharField(max_length=100, unique=True)
    customer = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='sales_orders')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='sales_orders')
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    fx_currency = models.CharField(max_length=3, choices=FX_CURRENCY_CHOICES, default=DEFAULT_FX_CURRENCY)
    fx_rate = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    total_fx = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    delivery_date = models.DateField(null=True, blank=True)
    invoice_file_path = models.CharField(max_length=500, blank=True, null=True)
    delivery_note_file_path = models.CharField(max_length=500, blank=True, null=True)
    payment_receipt_file_path = models.CharField(max_length=500, blank=True, null=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-sale_date', '-id']
        indexes = [
            models.Index(fields=['-sale_date', '-id'], name='idx_so_date'),
            models.Index(fields=['customer', 'sale_date'], name='idx_so_customer_date'),
        ]


class SalesOrderLineItem(models.Model):
    """Sales order lines"""
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='line_items')
    item_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    imei_numbers = models.JSONField(default=list, blank=True)

    def __str__(self):
        return f"{self.item_name} x{self.quantity}"

    class Meta:
        db_table = 'sales_order_line_items'
        ordering = ['id']


class Discount(models.Model):
    """Discount granted to a customer against one of their invoices"""
    customer = models.ForeignKey(Party, on_delete=models.PROTECT, related_name='discounts')
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='discounts')
    discount_amount = models.DecimalField(max_digits=12, decimal_places=3)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='discounts')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Discount {self.discount_amount} on {self.sales_order}"

    class Meta:
        db_table = 'discounts'
        ordering = ['-created_at']
