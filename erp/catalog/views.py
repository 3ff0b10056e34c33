import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.core.cache_signals import suspend_cache_signals
from erp.core.cache_utils import invalidate_reports_cache
from erp.core.permissions import ModuleAccessPermission, RoleWritePermission
from erp.core.utils import create_audit_log
from erp.purchasing.models import PurchaseOrderLineItem
from .filters import ItemFilter
from .models import Item
from .serializers import ItemSerializer, ItemBulkUpdateSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def item_list_create(request):
    """List all items or create a new item"""
    if request.method == 'GET':
        filterset = ItemFilter(request.query_params, queryset=Item.objects.all())
        queryset = filterset.qs.order_by('name')
        serializer = ItemSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = ItemSerializer(data=request.data)
    if serializer.is_valid():
        item = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Item',
            object_id=str(item.id),
            object_name=item.name,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def item_detail(request, pk):
    """Retrieve, update or delete an item"""
    item = get_object_or_404(Item, pk=pk)

    if request.method == 'GET':
        return Response(ItemSerializer(item).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ItemSerializer(item, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        item_name = item.name
        item.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Item',
            object_id=str(pk),
            object_name=item_name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([RoleWritePermission])
def item_bulk_update(request):
    """Update prices on many items at once; all rows succeed or none do"""
    rows = request.data.get('items')
    if not isinstance(rows, list) or not rows:
        return Response({'error': 'items must be a non-empty list'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = ItemBulkUpdateSerializer(data=rows, many=True)
    if not serializer.is_valid():
        return Response({'items': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    ids = [row['id'] for row in serializer.validated_data]
    items = {item.id: item for item in Item.objects.filter(id__in=ids)}
    missing = sorted(set(ids) - set(items))
    if missing:
        return Response({'error': f"Items not found: {', '.join(str(i) for i in missing)}"},
                        status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic(), suspend_cache_signals():
        for row in serializer.validated_data:
            item = items[row['id']]
            for field, value in row.items():
                if field != 'id':
                    setattr(item, field, value)
            item.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='Item',
            object_id=','.join(str(i) for i in ids),
            object_name=f"Bulk update of {len(ids)} items",
            changes={'item_ids': ids}
        )
    invalidate_reports_cache()
    logger.info(f"Bulk updated {len(ids)} items")
    return Response(ItemSerializer([items[i] for i in ids], many=True).data)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def item_last_pricing(request, pk):
    """Prices from the most recent purchase of this item"""
    item = get_object_or_404(Item, pk=pk)
    line = (
        PurchaseOrderLineItem.objects
        .filter(item_name=item.name)
        .select_related('purchase_order')
        .order_by('-purchase_order__purchase_date', '-id')
        .first()
    )
    if line is None:
        return Response({
            'item_id': item.id,
            'item_name': item.name,
            'price_kwd': None,
            'fx_price': None,
            'fx_currency': None,
            'purchase_date': None,
        })
    return Response({
        'item_id': item.id,
        'item_name': item.name,
        'price_kwd': str(line.price_kwd) if line.price_kwd is not None else None,
        'fx_price': str(line.fx_price) if line.fx_price is not None else None,
        'fx_currency': line.purchase_order.fx_currency,
        'purchase_date': line.purchase_order.purchase_date,
    })
