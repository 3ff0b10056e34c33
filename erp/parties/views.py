import logging

from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404, render
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.core.money import quantize_kwd, to_decimal
from erp.core.permissions import ModuleAccessPermission, RoleWritePermission
from erp.core.utils import create_audit_log, parse_date_param
from .ledger import party_balance, party_statement
from .models import Party
from .serializers import PartySerializer, SupplierSerializer, CustomerSerializer

logger = logging.getLogger(__name__)


def linked_documents(party):
    """(count, label) pairs for documents that keep a party from being deleted"""
    if party.party_type == 'supplier':
        return [
            (party.purchase_orders.count(), 'purchase order(s)'),
            (party.purchase_order_drafts.count(), 'purchase order draft(s)'),
            (party.payments_made.count(), 'payment(s)'),
            (party.supplier_returns.count(), 'return(s)'),
            (party.opening_balances.count(), 'opening balance(s)'),
        ]
    return [
        (party.sales_orders.count(), 'sales order(s)'),
        (party.payments_received.count(), 'payment(s)'),
        (party.customer_returns.count(), 'return(s)'),
        (party.discounts.count(), 'discount(s)'),
        (party.opening_balances.count(), 'opening balance(s)'),
    ]


def _party_list(request, party_type, serializer_class):
    if request.method == 'GET':
        queryset = Party.objects.filter(party_type=party_type).order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        serializer = serializer_class(queryset, many=True)
        return Response(serializer.data)

    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        party = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Party',
            object_id=str(party.id),
            object_name=party.name,
            changes={'party_type': party.party_type}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _party_detail(request, pk, party_type, serializer_class):
    party = get_object_or_404(Party, pk=pk, party_type=party_type)

    if request.method == 'GET':
        return Response(serializer_class(party).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(party, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        for count, label in linked_documents(party):
            if count:
                return Response(
                    {'error': f"Cannot delete {party_type}: {count} {label} are linked to this {party_type}"},
                    status=status.HTTP_400_BAD_REQUEST
                )
        party_id, party_name = party.id, party.name
        party.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Party',
            object_id=str(party_id),
            object_name=party_name,
            changes={'party_type': party_type}
        )
        logger.info(f"Deleted {party_type} {party_name} ({party_id})")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    return _party_list(request, 'supplier', SupplierSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    return _party_detail(request, pk, 'supplier', SupplierSerializer)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def customer_list_create(request):
    """List all customers or create a new customer"""
    return _party_list(request, 'customer', CustomerSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    return _party_detail(request, pk, 'customer', CustomerSerializer)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def party_list(request):
    """All parties, optionally filtered by party_type"""
    queryset = Party.objects.all().order_by('name')
    party_type = request.query_params.get('party_type', None)
    if party_type:
        queryset = queryset.filter(party_type=party_type)
    search = request.query_params.get('search', None)
    if search:
        queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
    return Response(PartySerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def customer_statement(request, pk):
    customer = get_object_or_404(Party, pk=pk, party_type='customer')
    start_date = parse_date_param(request.query_params.get('start_date'))
    end_date = parse_date_param(request.query_params.get('end_date'))
    return Response(party_statement(customer, start_date, end_date))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def supplier_statement(request, pk):
    supplier = get_object_or_404(Party, pk=pk, party_type='supplier')
    start_date = parse_date_param(request.query_params.get('start_date'))
    end_date = parse_date_param(request.query_params.get('end_date'))
    return Response(party_statement(supplier, start_date, end_date))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def customer_statement_print(request, pk):
    """Printable HTML statement"""
    customer = get_object_or_404(Party, pk=pk, party_type='customer')
    start_date = parse_date_param(request.query_params.get('start_date'))
    end_date = parse_date_param(request.query_params.get('end_date'))
    statement = party_statement(customer, start_date, end_date)
    return render(request, 'parties/statement.html', {
        'company_name': settings.COMPANY_NAME,
        'customer': customer,
        'statement': statement,
        'start_date': start_date,
        'end_date': end_date,
    })


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def customer_balance_for_sale(request):
    """Outstanding balance and remaining credit shown on the sales screen"""
    customer_id = request.query_params.get('customer_id', None)
    if not customer_id:
        return Response({'error': 'customer_id parameter is required'}, status=status.HTTP_400_BAD_REQUEST)
    customer = get_object_or_404(Party, pk=customer_id, party_type='customer')
    balance = party_balance(customer)
    credit_limit = to_decimal(customer.credit_limit)
    return Response({
        'customer_id': customer.id,
        'customer_name': customer.name,
        'balance': str(balance),
        'credit_limit': str(quantize_kwd(credit_limit)),
        'available_credit': str(quantize_kwd(credit_limit - balance)),
    })
