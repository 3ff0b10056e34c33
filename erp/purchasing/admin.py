from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderLineItem, PurchaseOrderDraft, PurchaseOrderDraftItem


class PurchaseOrderLineItemInline(admin.TabularInline):
    model = PurchaseOrderLineItem
    extra = 0


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'invoice_number', 'supplier', 'branch', 'purchase_date', 'total_kwd', 'fx_currency', 'total_fx']
    list_filter = ['purchase_date', 'branch', 'fx_currency']
    search_fields = ['invoice_number', 'supplier__name']
    date_hierarchy = 'purchase_date'
    inlines = [PurchaseOrderLineItemInline]


class PurchaseOrderDraftItemInline(admin.TabularInline):
    model = PurchaseOrderDraftItem
    extra = 0


@admin.register(PurchaseOrderDraft)
class PurchaseOrderDraftAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier', 'po_date', 'status', 'total_kwd', 'converted_to_purchase']
    list_filter = ['status', 'po_date']
    search_fields = ['po_number', 'supplier__name']
    inlines = [PurchaseOrderDraftItemInline]
