import logging
from datetime import date

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.branches.models import Branch
from erp.core.excel import workbook_response
from erp.core.permissions import ModuleAccessPermission, RoleWritePermission
from erp.core.transaction_password import check_transaction_password
from erp.core.utils import create_audit_log, next_document_number, parse_date_param, parse_int_param
from .filters import ImeiInventoryFilter, ReturnFilter, StockTransferFilter, InventoryAdjustmentFilter
from .imei import apply_manual_event, record_imei_event
from .models import ImeiInventory, ImeiEvent, Return, StockTransfer, InventoryAdjustment
from .serializers import (
    ImeiInventorySerializer, ImeiDetailSerializer, ImeiEventSerializer, ImeiEventCreateSerializer,
    ReturnSerializer, StockTransferSerializer, InventoryAdjustmentSerializer,
    reverse_return_imeis, reverse_transfer_imeis,
)

logger = logging.getLogger(__name__)


# IMEI lookup

@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def imei_list(request):
    """IMEI inventory (filters: status, branch, item_name, search)"""
    queryset = ImeiInventory.objects.select_related('branch', 'supplier', 'sales_order')
    filterset = ImeiInventoryFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return Response(ImeiInventorySerializer(filterset.qs, many=True).data)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def imei_detail(request, imei):
    """One unit with its full event history"""
    record = get_object_or_404(
        ImeiInventory.objects.select_related('branch', 'supplier', 'sales_order').prefetch_related('events'),
        imei=imei.strip()
    )
    return Response(ImeiDetailSerializer(record).data)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def imei_events(request, imei):
    """
    GET: event history for an IMEI, including units no longer in inventory.
    POST: apply a manual event (marked_defective, sent_to_warranty, warranty_received).
    """
    imei = imei.strip()
    if request.method == 'GET':
        events = ImeiEvent.objects.filter(imei_number=imei).select_related('branch', 'created_by')
        return Response(ImeiEventSerializer(events, many=True).data)

    serializer = ImeiEventCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    branch = None
    branch_id = serializer.validated_data.get('branch')
    if branch_id:
        branch = Branch.objects.filter(pk=branch_id).first()
        if branch is None:
            return Response({'error': f"Branch {branch_id} not found"}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        record = apply_manual_event(
            request, imei, serializer.validated_data['event_type'],
            branch=branch, notes=serializer.validated_data.get('notes', '')
        )
    return Response(ImeiDetailSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def export_imei(request):
    """
    Sold IMEIs with their customer and invoice.

    Filters: customer, item_name, start_date, end_date (sale date).
    ``format=xlsx`` downloads the rows as a workbook.
    """
    params = request.query_params
    queryset = (
        ImeiInventory.objects.filter(status='sold', sales_order__isnull=False)
        .select_related('sales_order', 'sales_order__customer')
        .order_by('-sales_order__sale_date', 'imei')
    )
    customer_id = parse_int_param(params.get('customer'))
    if customer_id:
        queryset = queryset.filter(sales_order__customer_id=customer_id)
    if params.get('item_name'):
        queryset = queryset.filter(item_name__icontains=params.get('item_name'))
    start_date = parse_date_param(params.get('start_date'))
    end_date = parse_date_param(params.get('end_date'))
    if start_date:
        queryset = queryset.filter(sales_order__sale_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(sales_order__sale_date__lte=end_date)

    rows = []
    for record in queryset:
        order = record.sales_order
        rows.append({
            'imei': record.imei,
            'item_name': record.item_name,
            'customer_name': order.customer.name if order.customer else None,
            'invoice_number': order.invoice_number,
            'sale_date': order.sale_date,
        })

    if params.get('format') == 'xlsx':
        headers = ['IMEI', 'Item', 'Customer', 'Invoice', 'Sale Date']
        sheet_rows = [
            [row['imei'], row['item_name'], row['customer_name'], row['invoice_number'], row['sale_date']]
            for row in rows
        ]
        filename = f"IMEI_Export_{date.today().isoformat()}.xlsx"
        return workbook_response([('Sold IMEIs', headers, sheet_rows)], filename)
    return Response(rows)


# Returns

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def return_list_create(request):
    """List returns or record a new sale/purchase return"""
    if request.method == 'GET':
        queryset = Return.objects.select_related('customer', 'supplier').prefetch_related('line_items')
        filterset = ReturnFilter(request.query_params, queryset=queryset)
        return Response(ReturnSerializer(filterset.qs, many=True).data)

    data = request.data.copy()
    items_data = data.pop('line_items', None)
    serializer = ReturnSerializer(data=data, context={'items_data': items_data, 'request': request})
    if serializer.is_valid():
        return_order = serializer.save(created_by=request.user)
        return Response(ReturnSerializer(return_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def return_detail(request, pk):
    """Retrieve, update (header only) or delete a return"""
    return_order = get_object_or_404(
        Return.objects.select_related('customer', 'supplier').prefetch_related('line_items'), pk=pk
    )

    if request.method == 'GET':
        return Response(ReturnSerializer(return_order).data)
    elif request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        items_data = data.pop('line_items', None)
        serializer = ReturnSerializer(
            return_order, data=data, partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        denied = check_transaction_password(request)
        if denied:
            return denied
        return_number = return_order.return_number
        with transaction.atomic():
            restored = reverse_return_imeis(return_order, user=request.user)
            return_order.delete()
            create_audit_log(
                request=request,
                action='delete',
                model_name='Return',
                object_id=str(pk),
                object_name=f"Return {return_number}",
                object_reference=return_number,
                imei=restored,
                changes={'imeis_restored': restored}
            )
        logger.info(f"Return {return_number} deleted; {len(restored)} IMEIs restored")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def return_next_number(request):
    return Response({'return_number': next_document_number(Return, 'return_number', 'RET')})


# Stock transfers

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def stock_transfer_list_create(request):
    """List stock transfers (branch filter matches either side) or create one"""
    if request.method == 'GET':
        queryset = StockTransfer.objects.select_related('from_branch', 'to_branch').prefetch_related('line_items')
        filterset = StockTransferFilter(request.query_params, queryset=queryset)
        return Response(StockTransferSerializer(filterset.qs, many=True).data)

    data = request.data.copy()
    items_data = data.pop('line_items', None)
    serializer = StockTransferSerializer(data=data, context={'items_data': items_data, 'request': request})
    if serializer.is_valid():
        transfer = serializer.save(created_by=request.user)
        return Response(StockTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def stock_transfer_detail(request, pk):
    transfer = get_object_or_404(
        StockTransfer.objects.select_related('from_branch', 'to_branch').prefetch_related('line_items'), pk=pk
    )

    if request.method == 'GET':
        return Response(StockTransferSerializer(transfer).data)
    elif request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        items_data = data.pop('line_items', None)
        serializer = StockTransferSerializer(
            transfer, data=data, partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        denied = check_transaction_password(request)
        if denied:
            return denied
        transfer_number = transfer.transfer_number
        with transaction.atomic():
            moved_back = reverse_transfer_imeis(transfer, user=request.user)
            transfer.delete()
            create_audit_log(
                request=request,
                action='delete',
                model_name='StockTransfer',
                object_id=str(pk),
                object_name=f"Transfer {transfer_number}",
                object_reference=transfer_number,
                imei=moved_back,
                changes={'imeis_moved_back': moved_back}
            )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def stock_transfer_next_number(request):
    return Response({'transfer_number': next_document_number(StockTransfer, 'transfer_number', 'TR')})


# Opening stock / adjustments

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def adjustment_list_create(request):
    if request.method == 'GET':
        queryset = InventoryAdjustment.objects.select_related('item', 'branch')
        filterset = InventoryAdjustmentFilter(request.query_params, queryset=queryset)
        return Response(InventoryAdjustmentSerializer(filterset.qs, many=True).data)

    serializer = InventoryAdjustmentSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        serializer.save(created_by=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def adjustment_detail(request, pk):
    adjustment = get_object_or_404(InventoryAdjustment.objects.select_related('item'), pk=pk)

    if request.method == 'GET':
        return Response(InventoryAdjustmentSerializer(adjustment).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = InventoryAdjustmentSerializer(
            adjustment, data=request.data, partial=request.method == 'PATCH', context={'request': request}
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        imeis = adjustment.imei_numbers or []
        with transaction.atomic():
            records = list(ImeiInventory.objects.select_for_update().filter(imei__in=imeis))
            not_available = [record.imei for record in records if not record.is_available]
            if not_available:
                return Response(
                    {'error': f"Cannot delete adjustment: IMEI {', '.join(not_available)} no longer in stock"},
                    status=status.HTTP_400_BAD_REQUEST
                )
            for record in records:
                record_imei_event(record, 'purchase_removed', reference_type='adjustment',
                                  reference_id=adjustment.id, user=request.user,
                                  notes='Opening stock adjustment deleted')
            item_name = adjustment.item.name
            adjustment.delete()
            create_audit_log(
                request=request,
                action='delete',
                model_name='InventoryAdjustment',
                object_id=str(pk),
                object_name=item_name,
                imei=imeis,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)
