import logging
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Sum, Count
from django.db.models.functions import ExtractMonth
from django.shortcuts import get_object_or_404, render
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.core.money import quantize_kwd
from erp.core.permissions import ModuleAccessPermission, RoleWritePermission
from erp.core.transaction_password import check_transaction_password
from erp.core.utils import create_audit_log, next_document_number, parse_int_param
from erp.inventory.models import ImeiInventory
from erp.messaging.whatsapp import build_sale_message, build_wa_me_link
from erp.parties.models import Party
from .filters import SalesOrderFilter, DiscountFilter
from .models import SalesOrder, Discount
from .serializers import SalesOrderSerializer, SalesOrderListSerializer, DiscountSerializer, cancel_sold_imeis

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def sales_order_list_create(request):
    """List sales orders or create a new one"""
    if request.method == 'GET':
        queryset = SalesOrder.objects.select_related('customer')
        filterset = SalesOrderFilter(request.query_params, queryset=queryset)
        serializer = SalesOrderListSerializer(filterset.qs.order_by('-sale_date', '-id'), many=True)
        return Response(serializer.data)

    data = request.data.copy()
    items_data = data.pop('line_items', None)

    serializer = SalesOrderSerializer(
        data=data,
        context={'items_data': items_data, 'request': request}
    )
    if serializer.is_valid():
        sales_order = serializer.save(created_by=request.user)
        return Response(SalesOrderSerializer(sales_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def sales_order_detail(request, pk):
    """Retrieve, update or delete a sales order"""
    sales_order = get_object_or_404(
        SalesOrder.objects.select_related('customer', 'branch').prefetch_related('line_items'), pk=pk
    )

    if request.method == 'GET':
        return Response(SalesOrderSerializer(sales_order).data)
    elif request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        items_data = data.pop('line_items', None)

        serializer = SalesOrderSerializer(
            sales_order,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            sales_order = serializer.save()
            return Response(SalesOrderSerializer(sales_order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        denied = check_transaction_password(request)
        if denied:
            return denied

        invoice_number = sales_order.invoice_number
        with transaction.atomic():
            sold_imeis = list(
                ImeiInventory.objects.filter(sales_order=sales_order).values_list('imei', flat=True)
            )
            restored = cancel_sold_imeis(sales_order, sold_imeis, user=request.user,
                                         notes=f"Sales order {invoice_number} deleted")
            sales_order.delete()
            create_audit_log(
                request=request,
                action='delete',
                model_name='SalesOrder',
                object_id=str(pk),
                object_name=f"Invoice {invoice_number}",
                object_reference=invoice_number,
                imei=restored,
                changes={'imeis_restored': restored}
            )
        logger.info(f"Sales order {invoice_number} deleted; {len(restored)} IMEIs back in stock")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def next_invoice_number(request):
    return Response({'invoice_number': next_document_number(SalesOrder, 'invoice_number', 'INV')})


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def sales_monthly_stats(request):
    """Sales totals per month for a year (default: current year)"""
    year = parse_int_param(request.query_params.get('year'), date.today().year)
    rows = (
        SalesOrder.objects.filter(sale_date__year=year)
        .annotate(month=ExtractMonth('sale_date'))
        .values('month')
        .annotate(total_kwd=Sum('total_kwd'), order_count=Count('id'))
        .order_by()
    )
    by_month = {row['month']: row for row in rows}
    result = []
    for month in range(1, 13):
        row = by_month.get(month, {})
        result.append({
            'month': month,
            'total_kwd': str(quantize_kwd(row.get('total_kwd') or Decimal('0'))),
            'order_count': row.get('order_count', 0),
        })
    return Response(result)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def invoices_for_customer(request):
    """A customer's invoices, for picking one on the payment and discount screens"""
    customer_id = request.query_params.get('customer_id', None)
    if not customer_id:
        return Response({'error': 'customer_id parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
    customer = get_object_or_404(Party, pk=customer_id, party_type='customer')
    orders = SalesOrder.objects.filter(customer=customer).order_by('-sale_date', '-id')
    return Response([
        {
            'id': order.id,
            'invoice_number': order.invoice_number,
            'sale_date': order.sale_date,
            'total_kwd': str(order.total_kwd) if order.total_kwd is not None else None,
        }
        for order in orders
    ])


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def sales_order_print(request, pk):
    """Printable HTML invoice"""
    sales_order = get_object_or_404(
        SalesOrder.objects.select_related('customer', 'branch').prefetch_related('line_items'), pk=pk
    )
    return render(request, 'sales/invoice.html', {
        'company_name': settings.COMPANY_NAME,
        'order': sales_order,
        'lines': sales_order.line_items.all(),
    })


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def sales_order_whatsapp_link(request, pk):
    """wa.me share link with the invoice summary"""
    sales_order = get_object_or_404(
        SalesOrder.objects.select_related('customer').prefetch_related('line_items'), pk=pk
    )
    message = build_sale_message(sales_order)
    phone = request.query_params.get('phone') or (sales_order.customer.phone if sales_order.customer else None)
    return Response({'url': build_wa_me_link(message, phone), 'message': message})


# Discounts

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def discount_list_create(request):
    """List discounts or create a new one"""
    if request.method == 'GET':
        queryset = Discount.objects.select_related('customer', 'sales_order')
        filterset = DiscountFilter(request.query_params, queryset=queryset)
        return Response(DiscountSerializer(filterset.qs, many=True).data)

    serializer = DiscountSerializer(data=request.data)
    if serializer.is_valid():
        discount = serializer.save(created_by=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='Discount',
            object_id=str(discount.id),
            object_name=f"Discount for {discount.customer.name}",
            object_reference=discount.sales_order.invoice_number,
            changes={'discount_amount': str(discount.discount_amount)}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def discount_detail(request, pk):
    """Retrieve, update or delete a discount"""
    discount = get_object_or_404(Discount.objects.select_related('customer', 'sales_order'), pk=pk)

    if request.method == 'GET':
        return Response(DiscountSerializer(discount).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DiscountSerializer(discount, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        invoice_number = discount.sales_order.invoice_number
        discount.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Discount',
            object_id=str(pk),
            object_reference=invoice_number,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
