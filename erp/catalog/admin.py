from django.contrib import admin
from .models import Item


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'purchase_price_kwd', 'selling_price_kwd', 'fx_currency', 'tracks_imei', 'updated_at']
    list_filter = ['fx_currency', 'tracks_imei']
    search_fields = ['name', 'code']
    ordering = ['name']
