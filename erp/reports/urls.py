from django.urls import path
from . import views

urlpatterns = [
    path('reports/stock-balance/', views.stock_balance, name='report-stock-balance'),
    path('reports/daily-cash-flow/', views.daily_cash_flow, name='report-daily-cash-flow'),
    path('reports/customer-report/', views.customer_report, name='report-customer'),
    path('reports/profit-loss/', views.profit_loss, name='report-profit-loss'),
    path('reports/stock-aging/', views.stock_aging, name='report-stock-aging'),
    path('reports/item-sales/', views.item_sales, name='report-item-sales'),
    path('dashboard/stats/', views.dashboard_stats, name='dashboard-stats'),
]
