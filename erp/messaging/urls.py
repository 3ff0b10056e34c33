from django.urls import path
from .views import send_payment_receipt, price_list_link

urlpatterns = [
    path('whatsapp/send-payment-receipt/', send_payment_receipt, name='whatsapp-send-payment-receipt'),
    path('whatsapp/price-list-link/', price_list_link, name='whatsapp-price-list-link'),
]
