"""
WhatsApp messaging.

Messages go out two ways: wa.me share links the user opens on their own
phone, and direct sends through the WhatsApp Cloud API when an access token
is configured.
"""
import logging
import re
from collections import namedtuple
from urllib.parse import quote

import requests
from django.conf import settings

from erp.core.money import quantize_kwd, to_decimal

logger = logging.getLogger(__name__)

WhatsAppResult = namedtuple('WhatsAppResult', ['success', 'message_id', 'error'])

SEPARATOR = '━━━━━━━━━━━━━━━━━━━━'


def format_phone_number(phone):
    """
    Normalize a phone number to WhatsApp's digits-only international form.

    Kuwaiti 8-digit numbers (mobile 5/6/9, landline 2) get the 965 country
    code. Returns None when the number cannot be used.
    """
    if not phone:
        return None
    cleaned = re.sub(r'\D', '', str(phone))
    if cleaned.startswith('00'):
        cleaned = cleaned[2:]
    if len(cleaned) == 8 and cleaned[0] in '2569':
        cleaned = '965' + cleaned
    if cleaned.startswith('965') and len(cleaned) == 11:
        return cleaned
    if 10 <= len(cleaned) <= 15:
        return cleaned
    return None


def _kwd(value):
    return f"{quantize_kwd(to_decimal(value))} KWD"


def build_sale_message(sales_order):
    customer_name = sales_order.customer.name if sales_order.customer else 'Customer'
    lines = [
        f"*{settings.COMPANY_NAME}*",
        SEPARATOR,
        '',
        f"Thank you for your purchase, {customer_name}!",
        '',
        f"*Invoice:* #{sales_order.invoice_number}",
        f"*Date:* {sales_order.sale_date}",
        '',
        '*Items:*',
    ]
    for line in sales_order.line_items.all():
        price = f" {_kwd(line.price_kwd)}" if line.price_kwd is not None else ''
        lines.append(f"• {line.item_name} (x{line.quantity or 1}){price}")
        if line.imei_numbers:
            # First IMEI only, to keep the message short
            lines.append(f"  IMEI: {line.imei_numbers[0]}")
    lines.append('')
    if sales_order.total_kwd is not None:
        lines.append(f"*Total:* {_kwd(sales_order.total_kwd)}")
        lines.append('')
    lines.append(SEPARATOR)
    lines.append('For any queries, please contact us.')
    return '\n'.join(lines)


def build_payment_receipt_message(payment):
    party = payment.party
    party_name = party.name if party else 'Customer'
    lines = [
        f"*{settings.COMPANY_NAME}*",
        SEPARATOR,
        '',
        '*PAYMENT RECEIPT*' if payment.direction == 'IN' else '*PAYMENT VOUCHER*',
        '',
        f"*Receipt No:* {payment.reference or payment.id}",
        f"*Date:* {payment.payment_date}",
        f"*{'Received from' if payment.direction == 'IN' else 'Paid to'}:* {party_name}",
        '',
    ]
    splits = list(payment.splits.all())
    if splits:
        lines.append('*Payment methods:*')
        for split in splits:
            lines.append(f"• {split.payment_type}: {_kwd(split.amount)}")
    else:
        lines.append(f"*Method:* {payment.payment_type}")
    lines.append(f"*Amount:* {_kwd(payment.amount)}")
    if payment.fx_amount is not None and payment.fx_currency:
        lines.append(f"*Amount ({payment.fx_currency}):* {payment.fx_amount}")
    if payment.sales_order_id:
        lines.append(f"*Against invoice:* {payment.sales_order.invoice_number}")
    lines.append('')
    lines.append(SEPARATOR)
    lines.append('Thank you for your payment!' if payment.direction == 'IN' else 'Thank you!')
    return '\n'.join(lines)


def build_price_list_message(items, customer_name=None, stock_counts=None):
    """
    Price list for the given items. ``stock_counts`` maps item name to the
    number of units on hand; items without a selling price are skipped.
    """
    stock_counts = stock_counts or {}
    lines = [
        f"*{settings.COMPANY_NAME}*",
        SEPARATOR,
        '',
    ]
    if customer_name:
        lines.append(f"Dear {customer_name},")
    lines.append('Our Latest Price List')
    lines.append('')
    for item in items:
        if item.selling_price_kwd is None:
            continue
        lines.append(item.name)
        lines.append(f"  Price: {_kwd(item.selling_price_kwd)}")
        stock = stock_counts.get(item.name)
        if stock:
            lines.append(f"  Qty: {stock}")
        lines.append('')
    lines.append(SEPARATOR)
    lines.append('For orders, please contact us.')
    lines.append('Thank you!')
    return '\n'.join(lines)


def build_wa_me_link(text, phone=None):
    encoded = quote(text, safe='')
    formatted = format_phone_number(phone) if phone else None
    if formatted:
        return f"https://wa.me/{formatted}?text={encoded}"
    return f"https://wa.me/?text={encoded}"


def send_whatsapp_message(phone, message):
    """
    Send a text message through the WhatsApp Cloud API.

    Never raises: configuration problems, bad numbers and API or network
    failures come back as an unsuccessful WhatsAppResult.
    """
    access_token = settings.WHATSAPP_ACCESS_TOKEN
    phone_number_id = settings.WHATSAPP_PHONE_NUMBER_ID
    if not access_token or not phone_number_id:
        logger.error("WhatsApp: access token or phone number id not configured")
        return WhatsAppResult(False, None, 'WhatsApp access token not configured')

    formatted_phone = format_phone_number(phone)
    if not formatted_phone:
        logger.error(f"WhatsApp: invalid phone number format: {phone}")
        return WhatsAppResult(False, None, 'Invalid phone number format')

    url = f"https://graph.facebook.com/{settings.WHATSAPP_API_VERSION}/{phone_number_id}/messages"
    payload = {
        'messaging_product': 'whatsapp',
        'recipient_type': 'individual',
        'to': formatted_phone,
        'type': 'text',
        'text': {'preview_url': False, 'body': message},
    }
    headers = {
        'Authorization': f"Bearer {access_token}",
        'Content-Type': 'application/json',
    }

    try:
        logger.info(f"WhatsApp: sending message to {formatted_phone}")
        response = requests.post(url, json=payload, headers=headers, timeout=settings.WHATSAPP_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error(f"WhatsApp: network error sending to {formatted_phone}: {str(e)}")
        return WhatsAppResult(False, None, 'Network error sending WhatsApp message')

    try:
        data = response.json()
    except ValueError:
        data = {}

    if not response.ok:
        error_message = (data.get('error') or {}).get('message') or 'Failed to send message'
        logger.error(f"WhatsApp: API error {response.status_code}: {error_message}")
        return WhatsAppResult(False, None, error_message)

    messages = data.get('messages') or [{}]
    message_id = messages[0].get('id')
    logger.info(f"WhatsApp: message sent to {formatted_phone}, id {message_id}")
    return WhatsAppResult(True, message_id, None)
