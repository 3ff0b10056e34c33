from django.contrib import admin
from .models import SalesOrder, SalesOrderLineItem, Discount


class SalesOrderLineItemInline(admin.TabularInline):
    model = SalesOrderLineItem
    extra = 0


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'customer', 'branch', 'sale_date', 'total_kwd', 'created_by']
    list_filter = ['sale_date', 'branch']
    search_fields = ['invoice_number', 'customer__name', 'customer__phone']
    date_hierarchy = 'sale_date'
    inlines = [SalesOrderLineItemInline]


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'sales_order', 'discount_amount', 'created_at']
    search_fields = ['customer__name', 'sales_order__invoice_number']
    readonly_fields = ['created_at']
