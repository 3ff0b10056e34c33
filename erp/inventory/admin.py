from django.contrib import admin
from .models import (
    ImeiInventory, ImeiEvent, Return, ReturnLineItem,
    StockTransfer, StockTransferLineItem, InventoryAdjustment,
)


class ImeiEventInline(admin.TabularInline):
    model = ImeiEvent
    extra = 0
    can_delete = False
    readonly_fields = ['event_type', 'from_status', 'to_status', 'branch', 'reference_type',
                       'reference_id', 'notes', 'created_by', 'created_at']


@admin.register(ImeiInventory)
class ImeiInventoryAdmin(admin.ModelAdmin):
    list_display = ['imei', 'item_name', 'status', 'branch', 'supplier', 'received_date']
    list_filter = ['status', 'branch']
    search_fields = ['imei', 'item_name']
    inlines = [ImeiEventInline]


@admin.register(ImeiEvent)
class ImeiEventAdmin(admin.ModelAdmin):
    list_display = ['imei_number', 'event_type', 'from_status', 'to_status', 'branch', 'created_at']
    list_filter = ['event_type']
    search_fields = ['imei_number']
    readonly_fields = [f.name for f in ImeiEvent._meta.fields]


class ReturnLineItemInline(admin.TabularInline):
    model = ReturnLineItem
    extra = 0


@admin.register(Return)
class ReturnAdmin(admin.ModelAdmin):
    list_display = ['return_number', 'return_date', 'return_type', 'customer', 'supplier', 'total_kwd']
    list_filter = ['return_type', 'return_date']
    search_fields = ['return_number', 'customer__name', 'supplier__name']
    inlines = [ReturnLineItemInline]


class StockTransferLineItemInline(admin.TabularInline):
    model = StockTransferLineItem
    extra = 0


@admin.register(StockTransfer)
class StockTransferAdmin(admin.ModelAdmin):
    list_display = ['transfer_number', 'transfer_date', 'from_branch', 'to_branch', 'created_by']
    list_filter = ['from_branch', 'to_branch']
    search_fields = ['transfer_number']
    inlines = [StockTransferLineItemInline]


@admin.register(InventoryAdjustment)
class InventoryAdjustmentAdmin(admin.ModelAdmin):
    list_display = ['item', 'branch', 'quantity', 'unit_cost_kwd', 'effective_date']
    list_filter = ['branch', 'effective_date']
    search_fields = ['item__name']
