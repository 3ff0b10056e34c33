from django.db import models
from erp.branches.models import Branch
from erp.catalog.models import FX_CURRENCY_CHOICES, DEFAULT_FX_CURRENCY
from erp.core.models import User
from erp.parties.models import Party


class PurchaseOrder(models.Model):
    """Finalized purchase bill from a supplier"""
    purchase_date = models.DateField()
    invoice_number = models.CharField(max_length=100, blank=True, null=True, help_text='Supplier invoice number')
    supplier = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='purchase_orders')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='purchase_orders')
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    fx_currency = models.CharField(max_length=3, choices=FX_CURRENCY_CHOICES, default=DEFAULT_FX_CURRENCY)
    fx_rate = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    total_fx = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    grn_date = models.DateField(null=True, blank=True, help_text='Goods received note date')
    invoice_file_path = models.CharField(max_length=500, blank=True, null=True)
    delivery_note_file_path = models.CharField(max_length=500, blank=True, null=True)
    tt_copy_file_path = models.CharField(max_length=500, blank=True, null=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number or f"PO-{self.id}"

    def get_total(self):
        """Sum of line totals"""
        return sum((line.total_kwd or 0) for line in self.line_items.all())

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-purchase_date', '-id']
        indexes = [
            models.Index(fields=['-purchase_date', '-id'], name='idx_po_date'),
            models.Index(fields=['supplier', 'purchase_date'], name='idx_po_supplier_date'),
        ]


class PurchaseOrderLineItem(models.Model):
    """Purchase order lines"""
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='line_items')
    item_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    fx_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    imei_numbers = models.JSONField(default=list, blank=True)

    def __str__(self):
        return f"{self.item_name} x{self.quantity}"

    class Meta:
        db_table = 'purchase_order_line_items'
        ordering = ['id']


class PurchaseOrderDraft(models.Model):
    """Purchase order sent to a supplier before the goods arrive"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('received', 'Received'),
        ('converted', 'Converted'),
    ]

    po_number = models.CharField(max_length=50, unique=True)
    po_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    supplier = models.ForeignKey(Party, on_delete=models.PROTECT, null=True, blank=True, related_name='purchase_order_drafts')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, null=True, blank=True, related_name='purchase_order_drafts')
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    fx_currency = models.CharField(max_length=3, choices=FX_CURRENCY_CHOICES, default=DEFAULT_FX_CURRENCY)
    fx_rate = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    total_fx = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    invoice_file_path = models.CharField(max_length=500, blank=True, null=True)
    delivery_note_file_path = models.CharField(max_length=500, blank=True, null=True)
    tt_copy_file_path = models.CharField(max_length=500, blank=True, null=True)
    converted_to_purchase = models.ForeignKey(PurchaseOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='source_drafts')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_order_drafts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.po_number

    class Meta:
        db_table = 'purchase_order_drafts'
        ordering = ['-po_date', '-id']


class PurchaseOrderDraftItem(models.Model):
    """Purchase order draft lines"""
    draft = models.ForeignKey(PurchaseOrderDraft, on_delete=models.CASCADE, related_name='line_items')
    item_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    fx_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_kwd = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    imei_numbers = models.JSONField(default=list, blank=True)

    def __str__(self):
        return f"{self.item_name} x{self.quantity}"

    class Meta:
        db_table = 'purchase_order_draft_items'
        ordering = ['id']
