from django.urls import path
from .views import item_list_create, item_detail, item_bulk_update, item_last_pricing

urlpatterns = [
    path('items/', item_list_create, name='item-list-create'),
    path('items/bulk/', item_bulk_update, name='item-bulk-update'),
    path('items/<int:pk>/', item_detail, name='item-detail'),
    path('items/<int:pk>/last-pricing/', item_last_pricing, name='item-last-pricing'),
]
