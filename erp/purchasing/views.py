import logging
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import ExtractMonth
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.core.money import quantize_fx, quantize_kwd
from erp.core.permissions import ModuleAccessPermission, RoleWritePermission
from erp.core.transaction_password import check_transaction_password
from erp.core.utils import create_audit_log, next_document_number, parse_int_param
from erp.inventory.imei import record_imei_event
from erp.inventory.models import ImeiInventory
from .filters import PurchaseOrderFilter, PurchaseOrderDraftFilter
from .models import PurchaseOrder, PurchaseOrderDraft
from .serializers import (
    PurchaseOrderSerializer, PurchaseOrderListSerializer, PurchaseOrderDraftSerializer,
    DraftStatusSerializer, DraftConvertSerializer,
)

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def purchase_order_list_create(request):
    """List purchase orders or create a new one"""
    if request.method == 'GET':
        queryset = PurchaseOrder.objects.select_related('supplier').prefetch_related('line_items')
        filterset = PurchaseOrderFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-purchase_date', '-id')
        serializer = PurchaseOrderListSerializer(queryset, many=True)
        return Response(serializer.data)

    data = request.data.copy()
    items_data = data.pop('line_items', None)

    serializer = PurchaseOrderSerializer(
        data=data,
        context={'items_data': items_data, 'request': request}
    )
    if serializer.is_valid():
        purchase_order = serializer.save(created_by=request.user)
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def purchase_order_detail(request, pk):
    """Retrieve, update or delete a purchase order"""
    purchase_order = get_object_or_404(
        PurchaseOrder.objects.select_related('supplier', 'branch').prefetch_related('line_items'), pk=pk
    )

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(purchase_order).data)
    elif request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        items_data = data.pop('line_items', None)

        serializer = PurchaseOrderSerializer(
            purchase_order,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            purchase_order = serializer.save()
            return Response(PurchaseOrderSerializer(purchase_order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        denied = check_transaction_password(request)
        if denied:
            return denied

        po_id = purchase_order.id
        po_label = str(purchase_order)
        with transaction.atomic():
            # Units still on hand leave inventory with the order; sold or
            # otherwise moved units stay and lose the link (SET_NULL)
            removed, kept = [], []
            for record in ImeiInventory.objects.select_for_update().filter(purchase_order=purchase_order):
                if record.is_available:
                    record_imei_event(record, 'purchase_removed', reference_type='purchase_order',
                                      reference_id=po_id, user=request.user,
                                      notes=f"Purchase order {po_label} deleted")
                    removed.append(record.imei)
                else:
                    kept.append(record.imei)

            purchase_order.delete()

            create_audit_log(
                request=request,
                action='delete',
                model_name='PurchaseOrder',
                object_id=str(po_id),
                object_name=f"Purchase {po_label}",
                object_reference=po_label,
                imei=removed,
                changes={
                    'imeis_removed': removed,
                    'imeis_kept': kept,
                }
            )
        logger.info(f"Purchase order {po_label} deleted; removed {len(removed)} IMEIs, kept {len(kept)}")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def purchase_monthly_stats(request):
    """Purchase totals per month for a year (default: current year)"""
    year = parse_int_param(request.query_params.get('year'), date.today().year)
    rows = (
        PurchaseOrder.objects.filter(purchase_date__year=year)
        .annotate(month=ExtractMonth('purchase_date'))
        .values('month')
        .annotate(total_kwd=Sum('total_kwd'), total_fx=Sum('total_fx'))
        .order_by()
    )
    by_month = {row['month']: row for row in rows}
    result = []
    for month in range(1, 13):
        row = by_month.get(month, {})
        result.append({
            'month': month,
            'total_kwd': str(quantize_kwd(row.get('total_kwd') or Decimal('0'))),
            'total_fx': str(quantize_fx(row.get('total_fx') or Decimal('0'))),
        })
    return Response(result)


# Purchase order drafts

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def draft_list_create(request):
    """List purchase order drafts or create a new one"""
    if request.method == 'GET':
        queryset = PurchaseOrderDraft.objects.select_related('supplier').prefetch_related('line_items')
        filterset = PurchaseOrderDraftFilter(request.query_params, queryset=queryset)
        serializer = PurchaseOrderDraftSerializer(filterset.qs.order_by('-po_date', '-id'), many=True)
        return Response(serializer.data)

    data = request.data.copy()
    items_data = data.pop('line_items', None)
    serializer = PurchaseOrderDraftSerializer(
        data=data,
        context={'items_data': items_data, 'request': request}
    )
    if serializer.is_valid():
        draft = serializer.save(created_by=request.user)
        return Response(PurchaseOrderDraftSerializer(draft).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def draft_detail(request, pk):
    """Retrieve, update or delete a purchase order draft"""
    draft = get_object_or_404(PurchaseOrderDraft.objects.prefetch_related('line_items'), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderDraftSerializer(draft).data)
    elif request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        items_data = data.pop('line_items', None)
        serializer = PurchaseOrderDraftSerializer(
            draft,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            draft = serializer.save()
            return Response(PurchaseOrderDraftSerializer(draft).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        po_number = draft.po_number
        draft.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='PurchaseOrderDraft',
            object_id=str(pk),
            object_name=f"PO Draft {po_number}",
            object_reference=po_number,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def draft_next_number(request):
    return Response({'po_number': next_document_number(PurchaseOrderDraft, 'po_number', 'PO')})


@api_view(['PATCH', 'POST'])
@permission_classes([RoleWritePermission])
def draft_update_status(request, pk):
    """Move a draft between draft, sent and received"""
    draft = get_object_or_404(PurchaseOrderDraft, pk=pk)
    if draft.status == 'converted':
        return Response({'error': 'Converted purchase order drafts cannot change status'},
                        status=status.HTTP_400_BAD_REQUEST)

    serializer = DraftStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_status = draft.status
    draft.status = serializer.validated_data['status']
    draft.save(update_fields=['status', 'updated_at'])
    create_audit_log(
        request=request,
        action='status_change',
        model_name='PurchaseOrderDraft',
        object_id=str(draft.id),
        object_name=f"PO Draft {draft.po_number}",
        object_reference=draft.po_number,
        changes={'status': {'old': old_status, 'new': draft.status}}
    )
    return Response(PurchaseOrderDraftSerializer(draft).data)


@api_view(['POST'])
@permission_classes([RoleWritePermission])
def draft_convert(request, pk):
    """
    Convert a draft into a purchase order.

    Header and lines are copied onto a new PurchaseOrder through the
    purchase order serializer, so totals and IMEI registration follow the
    same rules as a directly entered purchase.
    """
    draft = get_object_or_404(PurchaseOrderDraft.objects.prefetch_related('line_items'), pk=pk)
    if draft.status == 'converted':
        return Response({'error': 'Purchase order draft is already converted'},
                        status=status.HTTP_400_BAD_REQUEST)

    convert = DraftConvertSerializer(data=request.data)
    if not convert.is_valid():
        return Response(convert.errors, status=status.HTTP_400_BAD_REQUEST)
    options = convert.validated_data

    po_data = {
        'purchase_date': options.get('purchase_date') or draft.po_date,
        'invoice_number': options.get('invoice_number') or draft.po_number,
        'grn_date': options.get('grn_date'),
        'supplier': draft.supplier_id,
        'branch': draft.branch_id,
        'fx_currency': draft.fx_currency,
        'fx_rate': draft.fx_rate,
        'notes': draft.notes or '',
        'invoice_file_path': draft.invoice_file_path,
        'delivery_note_file_path': draft.delivery_note_file_path,
        'tt_copy_file_path': draft.tt_copy_file_path,
    }
    items_data = [
        {
            'item_name': line.item_name,
            'quantity': line.quantity,
            'price_kwd': line.price_kwd,
            'fx_price': line.fx_price,
            'imei_numbers': line.imei_numbers or [],
        }
        for line in draft.line_items.all()
    ]

    serializer = PurchaseOrderSerializer(
        data=po_data,
        context={'items_data': items_data, 'request': request}
    )
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        draft = PurchaseOrderDraft.objects.select_for_update().get(pk=draft.pk)
        if draft.status == 'converted':
            return Response({'error': 'Purchase order draft is already converted'},
                            status=status.HTTP_400_BAD_REQUEST)
        purchase_order = serializer.save(created_by=request.user)
        draft.status = 'converted'
        draft.converted_to_purchase = purchase_order
        draft.save(update_fields=['status', 'converted_to_purchase', 'updated_at'])
        create_audit_log(
            request=request,
            action='convert',
            model_name='PurchaseOrderDraft',
            object_id=str(draft.id),
            object_name=f"PO Draft {draft.po_number}",
            object_reference=draft.po_number,
            changes={'purchase_order_id': purchase_order.id}
        )
    logger.info(f"Draft {draft.po_number} converted to purchase order {purchase_order.id}")
    return Response({
        'draft': PurchaseOrderDraftSerializer(draft).data,
        'purchase_order': PurchaseOrderSerializer(purchase_order).data,
    }, status=status.HTTP_201_CREATED)
