from django.urls import path
from .views import (
    sales_order_list_create, sales_order_detail, next_invoice_number, sales_monthly_stats,
    invoices_for_customer, sales_order_print, sales_order_whatsapp_link,
    discount_list_create, discount_detail,
)

urlpatterns = [
    path('sales-orders/', sales_order_list_create, name='sales-order-list-create'),
    path('sales-orders/next-invoice-number/', next_invoice_number, name='sales-next-invoice-number'),
    path('sales-orders/<int:pk>/', sales_order_detail, name='sales-order-detail'),
    path('sales-orders/<int:pk>/print/', sales_order_print, name='sales-order-print'),
    path('sales-orders/<int:pk>/whatsapp-link/', sales_order_whatsapp_link, name='sales-order-whatsapp-link'),
    path('sales-stats/monthly/', sales_monthly_stats, name='sales-monthly-stats'),
    path('invoices-for-customer/', invoices_for_customer, name='invoices-for-customer'),
    path('discounts/', discount_list_create, name='discount-list-create'),
    path('discounts/<int:pk>/', discount_detail, name='discount-detail'),
]
