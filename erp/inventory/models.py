from django.db import models
from decimal import Decimal
from erp.branches.models import Branch
from erp.catalog.models import Item
from erp.core.models import User
from erp.parties.models import Party
from erp.purchasing.models import PurchaseOrder
from erp.sales.models import SalesOrder

IMEI_STATUS_CHOICES = [
    ('in_stock', 'In Stock'),
    ('sold', 'Sold'),
    ('returned', 'Returned'),
    ('transferred', 'Transferred'),
    ('defective', 'Defective'),
    ('warranty', 'At Warranty'),
    ('supplier_returned', 'Returned to Supplier'),
]

# Statuses in which a unit can be sold or moved
AVAILABLE_STATUSES = ('in_stock', 'returned', 'transferred')

IMEI_EVENT_CHOICES = [
    ('purchased', 'Purchased'),
    ('opening_stock', 'Opening Stock'),
    ('sold', 'Sold'),
    ('sale_cancelled', 'Sale Cancelled'),
    ('sale_returned', 'Returned by Customer'),
    ('sale_return_reversed', 'Customer Return Reversed'),
    ('transferred', 'Transferred'),
    ('marked_defective', 'Marked Defective'),
    ('sent_to_warranty', 'Sent to Warranty'),
    ('warranty_received', 'Received from Warranty'),
    ('purchase_returned', 'Returned to Supplier'),
    ('purchase_return_reversed', 'Supplier Return Reversed'),
    ('purchase_removed', 'Removed with Purchase'),
]


class ImeiInventory(models.Model):
    """Current state of one serialized unit"""
    imei = models.CharField(max_length=15, unique=True)
    item_name = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=IMEI_STATUS_CHOICES, default='in_stock')
    branch = models.ForeignKey(Branch, on_delete=models.SET_NULL, null=True, blank=True, related_name='imeis')
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='imeis')
    sales_order = models.ForeignKey(SalesOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='imeis')
    supplier = models.ForeignKey(Party, on_delete=models.SET_NULL, null=True, blank=True, related_name='supplied_imeis')
    purchase_price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.imei} ({self.status})"

    @property
    def is_available(self):
        return self.status in AVAILABLE_STATUSES

    class Meta:
        db_table = 'imei_inventory'
        ordering = ['-created_at']
        verbose_name = 'IMEI'
        indexes = [
            models.Index(fields=['status'], name='idx_imei_status'),
            models.Index(fields=['item_name', 'status'], name='idx_imei_item_status'),
            models.Index(fields=['branch', 'status'], name='idx_imei_branch_status'),
        ]


class ImeiEvent(models.Model):
    """Append-only history of IMEI status changes"""
    imei = models.ForeignKey(ImeiInventory, on_delete=models.SET_NULL, null=True, blank=True, related_name='events')
    imei_number = models.CharField(max_length=15, db_index=True)
    event_type = models.CharField(max_length=30, choices=IMEI_EVENT_CHOICES)
    from_status = models.CharField(max_length=20, choices=IMEI_STATUS_CHOICES, blank=True, null=True)
    to_status = models.CharField(max_length=20, choices=IMEI_STATUS_CHOICES, blank=True, null=True)
    branch = models.ForeignKey(Branch, on_delete=models.SET_NULL, null=True, blank=True, related_name='imei_events')
    reference_type = models.CharField(max_length=50, blank=True, null=True, help_text='purchase_order, sales_order, return, stock_transfer, adjustment')
    reference_id = models.BigIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='imei_events')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.imei_number}: {self.event_type}"

    class Meta:
        db_table = 'imei_events'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['reference_type', 'reference_id'], name='idx_imei_event_reference'),
        ]


class Return(models.Model):
    """Goods returned by a customer or sent back to a supplier"""
    RETURN_TYPE_CHOICES = [
        ('sale_return', 'Sale Return'),
        ('purchase_return', 'Purchase Return'),
    ]

    return_number = models.CharField(max_length=50, unique=True)
    return_date = models.DateField()
    return_type = models.CharField(max_length=20, choices=RETURN_TYPE_CHOICES, default='sale_return')
    customer = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='customer_returns')
    supplier = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='supplier_returns')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='returns')
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0.000'))
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='returns')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.return_number

    @property
    def party(self):
        return self.customer if self.return_type == 'sale_return' else self.supplier

    class Meta:
        db_table = 'returns'
        ordering = ['-return_date', '-id']


class ReturnLineItem(models.Model):
    CONDITION_CHOICES = [
        ('good', 'Good'),
        ('defective', 'Defective'),
    ]

    return_order = models.ForeignKey(Return, on_delete=models.CASCADE, related_name='line_items')
    item_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    imei_numbers = models.JSONField(default=list, blank=True)
    condition = models.CharField(max_length=20, choices=CONDITION_CHOICES, default='good')

    class Meta:
        db_table = 'return_line_items'
        ordering = ['id']


class StockTransfer(models.Model):
    """Stock moved between branches"""
    transfer_number = models.CharField(max_length=50, unique=True)
    transfer_date = models.DateField()
    from_branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='transfers_out')
    to_branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='transfers_in')
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_transfers')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.transfer_number

    class Meta:
        db_table = 'stock_transfers'
        ordering = ['-transfer_date', '-id']


class StockTransferLineItem(models.Model):
    stock_transfer = models.ForeignKey(StockTransfer, on_delete=models.CASCADE, related_name='line_items')
    item_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    imei_numbers = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'stock_transfer_line_items'
        ordering = ['id']


class InventoryAdjustment(models.Model):
    """Opening stock and manual stock corrections"""
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='adjustments')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='adjustments')
    quantity = models.IntegerField()
    unit_cost_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    effective_date = models.DateField()
    imei_numbers = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='inventory_adjustments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.item} {self.quantity:+d}"

    class Meta:
        db_table = 'inventory_adjustments'
        ordering = ['-effective_date', '-id']
