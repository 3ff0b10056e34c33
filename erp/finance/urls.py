from django.urls import path
from .views import (
    payment_list_create, payment_detail, payment_print, payment_whatsapp_link,
    account_list_create, account_detail, account_transactions,
    account_transfer_list_create, account_transfer_detail,
    expense_category_list_create, expense_category_detail,
    expense_list_create, expense_detail,
    opening_balance_list_create, opening_balance_detail,
    transaction_list,
)

urlpatterns = [
    path('payments/', payment_list_create, name='payment-list-create'),
    path('payments/<int:pk>/', payment_detail, name='payment-detail'),
    path('payments/<int:pk>/print/', payment_print, name='payment-print'),
    path('payments/<int:pk>/whatsapp-link/', payment_whatsapp_link, name='payment-whatsapp-link'),

    path('accounts/', account_list_create, name='account-list-create'),
    path('accounts/<int:pk>/', account_detail, name='account-detail'),
    path('accounts/<int:pk>/transactions/', account_transactions, name='account-transactions'),
    path('account-transfers/', account_transfer_list_create, name='account-transfer-list-create'),
    path('account-transfers/<int:pk>/', account_transfer_detail, name='account-transfer-detail'),

    path('expense-categories/', expense_category_list_create, name='expense-category-list-create'),
    path('expense-categories/<int:pk>/', expense_category_detail, name='expense-category-detail'),
    path('expenses/', expense_list_create, name='expense-list-create'),
    path('expenses/<int:pk>/', expense_detail, name='expense-detail'),

    path('opening-balances/', opening_balance_list_create, name='opening-balance-list-create'),
    path('opening-balances/<int:pk>/', opening_balance_detail, name='opening-balance-detail'),

    path('transactions/', transaction_list, name='transaction-list'),
]
