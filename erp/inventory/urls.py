from django.urls import path
from .views import (
    imei_list, imei_detail, imei_events, export_imei,
    return_list_create, return_detail, return_next_number,
    stock_transfer_list_create, stock_transfer_detail, stock_transfer_next_number,
    adjustment_list_create, adjustment_detail,
)

urlpatterns = [
    path('imei/', imei_list, name='imei-list'),
    path('imei/<str:imei>/', imei_detail, name='imei-detail'),
    path('imei/<str:imei>/events/', imei_events, name='imei-events'),
    path('export-imei/', export_imei, name='export-imei'),

    path('returns/', return_list_create, name='return-list-create'),
    path('returns/next-number/', return_next_number, name='return-next-number'),
    path('returns/<int:pk>/', return_detail, name='return-detail'),

    path('stock-transfers/', stock_transfer_list_create, name='stock-transfer-list-create'),
    path('stock-transfers/next-transfer-number/', stock_transfer_next_number, name='stock-transfer-next-number'),
    path('stock-transfers/<int:pk>/', stock_transfer_detail, name='stock-transfer-detail'),

    path('inventory-adjustments/', adjustment_list_create, name='adjustment-list-create'),
    path('inventory-adjustments/<int:pk>/', adjustment_detail, name='adjustment-detail'),
]
