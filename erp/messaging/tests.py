"""
Test suite for WhatsApp messaging
Tests: phone formatting, share links, price lists and Cloud API receipt sends
"""
from decimal import Decimal
from unittest import mock
from urllib.parse import unquote

import requests
from django.test import TestCase, override_settings
from rest_framework import status

from erp.core.models import AuditLog
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.messaging.whatsapp import build_wa_me_link, format_phone_number, send_whatsapp_message

WHATSAPP_CONFIGURED = {
    'WHATSAPP_ACCESS_TOKEN': 'test-token',
    'WHATSAPP_PHONE_NUMBER_ID': '1234567890',
}


def api_response(ok=True, status_code=200, data=None):
    response = mock.Mock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = data or {}
    return response


class PhoneFormatTests(TestCase):

    def test_kuwaiti_numbers_get_country_code(self):
        self.assertEqual(format_phone_number('9900 1122'), '96599001122')
        self.assertEqual(format_phone_number('22456789'), '96522456789')
        self.assertEqual(format_phone_number('+965 5512 3456'), '96555123456')
        self.assertEqual(format_phone_number('0096566123456'), '96566123456')

    def test_international_numbers_kept(self):
        self.assertEqual(format_phone_number('+971 50 123 4567'), '971501234567')

    def test_unusable_numbers(self):
        self.assertIsNone(format_phone_number(''))
        self.assertIsNone(format_phone_number('12345'))
        self.assertIsNone(format_phone_number('81234567'))

    def test_wa_me_link(self):
        link = build_wa_me_link('Hello & welcome', '99001122')
        self.assertEqual(link, 'https://wa.me/96599001122?text=Hello%20%26%20welcome')
        self.assertEqual(build_wa_me_link('Hi'), 'https://wa.me/?text=Hi')


@override_settings(**WHATSAPP_CONFIGURED)
class SendWhatsAppMessageTests(TestCase):

    @mock.patch('erp.messaging.whatsapp.requests.post')
    def test_success(self, post):
        post.return_value = api_response(data={'messages': [{'id': 'wamid.ABC'}]})
        result = send_whatsapp_message('99001122', 'Receipt')
        self.assertTrue(result.success)
        self.assertEqual(result.message_id, 'wamid.ABC')
        payload = post.call_args.kwargs['json']
        self.assertEqual(payload['to'], '96599001122')
        self.assertEqual(payload['text']['body'], 'Receipt')
        self.assertEqual(post.call_args.kwargs['headers']['Authorization'], 'Bearer test-token')

    @mock.patch('erp.messaging.whatsapp.requests.post')
    def test_api_error(self, post):
        post.return_value = api_response(ok=False, status_code=400,
                                         data={'error': {'message': 'Recipient not on WhatsApp'}})
        result = send_whatsapp_message('99001122', 'Receipt')
        self.assertFalse(result.success)
        self.assertEqual(result.error, 'Recipient not on WhatsApp')

    @mock.patch('erp.messaging.whatsapp.requests.post')
    def test_network_error(self, post):
        post.side_effect = requests.exceptions.ConnectionError('down')
        result = send_whatsapp_message('99001122', 'Receipt')
        self.assertFalse(result.success)
        self.assertIn('Network error', result.error)

    @override_settings(WHATSAPP_ACCESS_TOKEN='')
    @mock.patch('erp.messaging.whatsapp.requests.post')
    def test_not_configured(self, post):
        result = send_whatsapp_message('99001122', 'Receipt')
        self.assertFalse(result.success)
        post.assert_not_called()


class SendPaymentReceiptAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='staff')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Abdullah', phone='66123456')
        self.payment = TestDataFactory.create_payment(customer=self.customer, amount=Decimal('35.000'))

    @override_settings(**WHATSAPP_CONFIGURED)
    @mock.patch('erp.messaging.whatsapp.requests.post')
    def test_send_receipt(self, post):
        post.return_value = api_response(data={'messages': [{'id': 'wamid.XYZ'}]})
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {
            'payment_id': self.payment.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'success': True, 'message_id': 'wamid.XYZ'})
        body = post.call_args.kwargs['json']['text']['body']
        self.assertIn('Abdullah', body)
        self.assertIn('35.000 KWD', body)

        log = AuditLog.objects.get(action='whatsapp_send')
        self.assertEqual(log.changes['phone'], '96566123456')

    def test_payment_id_required(self):
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_payment(self):
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {'payment_id': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_phone(self):
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {
            'payment_id': self.payment.id,
            'phone_number': '123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(WHATSAPP_ACCESS_TOKEN='', WHATSAPP_PHONE_NUMBER_ID='')
    def test_not_configured(self):
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {'payment_id': self.payment.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'WhatsApp access token not configured')

    @override_settings(**WHATSAPP_CONFIGURED)
    @mock.patch('erp.messaging.whatsapp.requests.post')
    def test_api_failure_is_bad_gateway(self, post):
        post.return_value = api_response(ok=False, status_code=401, data={'error': {'message': 'Invalid token'}})
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {'payment_id': self.payment.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error'], 'Invalid token')
        self.assertFalse(AuditLog.objects.filter(action='whatsapp_send').exists())

    def test_viewer_cannot_send(self):
        viewer = TestDataFactory.create_user(role='viewer')
        self.client.authenticate_user(viewer)
        response = self.client.post('/api/whatsapp/send-payment-receipt/', {'payment_id': self.payment.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PriceListLinkTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(role='viewer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.phone = TestDataFactory.create_item(name='iPhone 15', selling_price_kwd=Decimal('279.000'))
        self.case = TestDataFactory.create_item(name='Silicone Case', selling_price_kwd=Decimal('4.500'))
        TestDataFactory.create_item(name='Unpriced Cable')
        TestDataFactory.create_stock('iPhone 15', count=2)

    def test_price_list_for_customer(self):
        customer = TestDataFactory.create_customer(name='Dana', phone='99887766')
        response = self.client.post('/api/whatsapp/price-list-link/', {'customer_id': customer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['url'].startswith('https://wa.me/96599887766?text='))
        message = response.data['message']
        self.assertIn('Dear Dana,', message)
        self.assertIn('Price: 279.000 KWD', message)
        self.assertIn('Qty: 2', message)
        self.assertNotIn('Unpriced Cable', message)
        self.assertEqual(unquote(response.data['url'].split('?text=', 1)[1]), message)

    def test_selected_items_only(self):
        response = self.client.post('/api/whatsapp/price-list-link/', {
            'phone': '55001122',
            'item_ids': [self.case.id],
        }, format='json')
        self.assertIn('Silicone Case', response.data['message'])
        self.assertNotIn('iPhone 15', response.data['message'])

    def test_item_ids_must_be_list(self):
        response = self.client.post('/api/whatsapp/price-list-link/', {'item_ids': '3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_customer(self):
        response = self.client.post('/api/whatsapp/price-list-link/', {'customer_id': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_item_ids_must_be_numeric(self):
        response = self.client.post('/api/whatsapp/price-list-link/', {
            'phone': '96512345',
            'item_ids': ['abc'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'item_ids must be a list of ids')
