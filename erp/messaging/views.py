import logging

from django.conf import settings
from django.db.models import Count
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erp.catalog.models import Item
from erp.core.permissions import RoleWritePermission
from erp.core.utils import create_audit_log, parse_int_param
from erp.finance.models import Payment
from erp.inventory.models import ImeiInventory, AVAILABLE_STATUSES
from erp.parties.models import Party
from .whatsapp import (
    build_payment_receipt_message, build_price_list_message, build_wa_me_link,
    format_phone_number, send_whatsapp_message,
)

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([RoleWritePermission])
def send_payment_receipt(request):
    """
    Send a payment receipt through the WhatsApp Cloud API.

    Body: ``payment_id`` and optionally ``phone_number`` (defaults to the
    party's phone). Bad input and missing configuration are 400; API and
    network failures are 502.
    """
    payment_id = parse_int_param(request.data.get('payment_id'))
    if not payment_id:
        return Response({'error': 'payment_id is required'}, status=status.HTTP_400_BAD_REQUEST)
    payment = (
        Payment.objects.select_related('customer', 'supplier', 'sales_order')
        .prefetch_related('splits')
        .filter(pk=payment_id)
        .first()
    )
    if payment is None:
        return Response({'error': f"Payment {payment_id} not found"}, status=status.HTTP_404_NOT_FOUND)

    party = payment.party
    phone = request.data.get('phone_number') or (party.phone if party else None)
    if not phone:
        return Response({'error': 'phone_number is required'}, status=status.HTTP_400_BAD_REQUEST)
    if not format_phone_number(phone):
        return Response({'error': 'Invalid phone number format'}, status=status.HTTP_400_BAD_REQUEST)
    if not settings.WHATSAPP_ACCESS_TOKEN or not settings.WHATSAPP_PHONE_NUMBER_ID:
        return Response({'error': 'WhatsApp access token not configured'}, status=status.HTTP_400_BAD_REQUEST)

    result = send_whatsapp_message(phone, build_payment_receipt_message(payment))
    if not result.success:
        logger.warning(f"Payment receipt {payment.id} not sent: {result.error}")
        return Response({'error': result.error}, status=status.HTTP_502_BAD_GATEWAY)

    create_audit_log(
        request=request,
        action='whatsapp_send',
        model_name='Payment',
        object_id=str(payment.id),
        object_name=party.name if party else None,
        object_reference=payment.reference,
        changes={'phone': format_phone_number(phone), 'message_id': result.message_id}
    )
    return Response({'success': True, 'message_id': result.message_id})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def price_list_link(request):
    """
    wa.me link carrying the price list.

    Body: ``customer_id`` or ``phone``, and optionally ``item_ids``; without
    item ids every item with a selling price is listed.
    """
    customer = None
    customer_id = parse_int_param(request.data.get('customer_id'))
    if customer_id:
        customer = Party.objects.filter(pk=customer_id, party_type='customer').first()
        if customer is None:
            return Response({'error': f"Customer {customer_id} not found"}, status=status.HTTP_404_NOT_FOUND)
    phone = request.data.get('phone') or (customer.phone if customer else None)

    items = Item.objects.filter(selling_price_kwd__isnull=False).order_by('name')
    item_ids = request.data.get('item_ids')
    if item_ids:
        ids = [parse_int_param(value) for value in item_ids] if isinstance(item_ids, (list, tuple)) else [None]
        if None in ids:
            return Response({'error': 'item_ids must be a list of ids'}, status=status.HTTP_400_BAD_REQUEST)
        items = items.filter(pk__in=ids)
    items = list(items)

    stock_counts = dict(
        ImeiInventory.objects.filter(status__in=AVAILABLE_STATUSES, item_name__in=[item.name for item in items])
        .values('item_name')
        .annotate(units=Count('id'))
        .order_by()
        .values_list('item_name', 'units')
    )
    message = build_price_list_message(items, customer_name=customer.name if customer else None,
                                       stock_counts=stock_counts)
    return Response({'url': build_wa_me_link(message, phone), 'message': message})
