from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_monthly_stats,
    draft_list_create, draft_detail, draft_next_number, draft_update_status, draft_convert,
)

urlpatterns = [
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('stats/monthly/', purchase_monthly_stats, name='purchase-monthly-stats'),

    path('purchase-order-drafts/', draft_list_create, name='draft-list-create'),
    path('purchase-order-drafts/next-number/', draft_next_number, name='draft-next-number'),
    path('purchase-order-drafts/<int:pk>/', draft_detail, name='draft-detail'),
    path('purchase-order-drafts/<int:pk>/status/', draft_update_status, name='draft-update-status'),
    path('purchase-order-drafts/<int:pk>/convert/', draft_convert, name='draft-convert'),
]
