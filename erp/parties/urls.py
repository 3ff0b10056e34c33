from django.urls import path
from .views import (
    supplier_list_create, supplier_detail, supplier_statement,
    customer_list_create, customer_detail, customer_statement, customer_statement_print,
    party_list, customer_balance_for_sale,
)

urlpatterns = [
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
    path('suppliers/<int:pk>/statement/', supplier_statement, name='supplier-statement'),
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
    path('customers/<int:pk>/statement/', customer_statement, name='customer-statement'),
    path('customers/<int:pk>/statement/print/', customer_statement_print, name='customer-statement-print'),
    path('parties/', party_list, name='party-list'),
    path('customer-balance-for-sale/', customer_balance_for_sale, name='customer-balance-for-sale'),
]
