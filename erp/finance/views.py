import logging

from django.conf import settings
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404, render
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.core.permissions import ModuleAccessPermission, RoleWritePermission
from erp.core.transaction_password import check_transaction_password
from erp.core.utils import create_audit_log, limit_offset_page, parse_date_param, parse_int_param
from erp.messaging.whatsapp import build_payment_receipt_message, build_wa_me_link
from .filters import PaymentFilter, ExpenseFilter, AccountTransferFilter, OpeningBalanceFilter
from .journal import journal_rows, TRANSACTION_TYPES
from .ledger import account_statement
from .models import Account, AccountTransfer, Payment, ExpenseCategory, Expense, OpeningBalance
from .serializers import (
    AccountSerializer, AccountTransferSerializer, PaymentSerializer,
    ExpenseCategorySerializer, ExpenseSerializer, OpeningBalanceSerializer,
)

logger = logging.getLogger(__name__)


def _simple_detail(request, instance, serializer_class, model_name, label, guarded=False):
    """GET/PUT/PATCH/DELETE for records without line items"""
    if request.method == 'GET':
        return Response(serializer_class(instance).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(instance, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name=model_name,
                object_id=str(instance.id),
                object_name=label,
                changes={'fields': sorted(serializer.validated_data.keys())}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if guarded:
            denied = check_transaction_password(request)
            if denied:
                return denied
        object_id = instance.id
        try:
            instance.delete()
        except ProtectedError:
            return Response({'error': f"Cannot delete {label}: it is still in use"},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='delete',
            model_name=model_name,
            object_id=str(object_id),
            object_name=label,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


def _simple_create(request, serializer_class, model_name, label_func):
    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        save_kwargs = {}
        if 'created_by' in serializer.fields:
            save_kwargs['created_by'] = request.user
        instance = serializer.save(**save_kwargs)
        create_audit_log(
            request=request,
            action='create',
            model_name=model_name,
            object_id=str(instance.id),
            object_name=label_func(instance),
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Payments

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def payment_list_create(request):
    """
    List payments or record a new one.

    GET supports direction, customer, supplier, payment_type, start_date and
    end_date filters. With ``limit`` the response is
    ``{results, count, limit, offset}``; without it, a plain list.
    """
    if request.method == 'GET':
        queryset = Payment.objects.select_related(
            'customer', 'supplier', 'sales_order', 'purchase_order'
        ).prefetch_related('splits')
        filterset = PaymentFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('-payment_date', '-id')
        page, meta = limit_offset_page(request, queryset)
        data = PaymentSerializer(page, many=True).data
        if meta is None:
            return Response(data)
        return Response({'results': data, **meta})

    data = request.data.copy()
    splits_data = data.pop('splits', None)
    serializer = PaymentSerializer(
        data=data,
        context={'splits_data': splits_data, 'request': request}
    )
    if serializer.is_valid():
        payment = serializer.save(created_by=request.user)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'DELETE'])
@permission_classes([RoleWritePermission])
def payment_detail(request, pk):
    """Retrieve or delete a payment; payments are not edited in place"""
    payment = get_object_or_404(
        Payment.objects.select_related('customer', 'supplier').prefetch_related('splits'), pk=pk
    )
    if request.method == 'GET':
        return Response(PaymentSerializer(payment).data)

    denied = check_transaction_password(request)
    if denied:
        return denied
    party = payment.party
    amount = payment.amount
    payment.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='Payment',
        object_id=str(pk),
        object_name=f"Payment {payment.direction} {party.name if party else ''}".strip(),
        object_reference=payment.reference,
        changes={'amount': str(amount), 'payment_type': payment.payment_type}
    )
    logger.info(f"Payment {pk} deleted ({amount} KWD)")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def payment_print(request, pk):
    """HTML receipt; ?format=thermal for 80mm receipt printers, a4 otherwise"""
    payment = get_object_or_404(
        Payment.objects.select_related('customer', 'supplier', 'sales_order').prefetch_related('splits'), pk=pk
    )
    layout = request.query_params.get('format') or getattr(request.user, 'printer_type', 'a4')
    template = 'finance/receipt_thermal.html' if layout == 'thermal' else 'finance/receipt_a4.html'
    return render(request, template, {
        'company_name': settings.COMPANY_NAME,
        'payment': payment,
        'party': payment.party,
        'splits': payment.splits.all(),
    })


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def payment_whatsapp_link(request, pk):
    payment = get_object_or_404(
        Payment.objects.select_related('customer', 'supplier', 'sales_order').prefetch_related('splits'), pk=pk
    )
    message = build_payment_receipt_message(payment)
    party = payment.party
    phone = request.query_params.get('phone') or (party.phone if party else None)
    return Response({'url': build_wa_me_link(message, phone), 'message': message})


# Accounts

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def account_list_create(request):
    """List accounts with their current balances or create an account"""
    if request.method == 'GET':
        return Response(AccountSerializer(Account.objects.all(), many=True).data)
    return _simple_create(request, AccountSerializer, 'Account', lambda account: account.name)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def account_detail(request, pk):
    account = get_object_or_404(Account, pk=pk)
    return _simple_detail(request, account, AccountSerializer, 'Account', f"account {account.name}")


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def account_transactions(request, pk):
    """Account statement with running balance"""
    account = get_object_or_404(Account, pk=pk)
    start_date = parse_date_param(request.query_params.get('start_date'))
    end_date = parse_date_param(request.query_params.get('end_date'))
    return Response(account_statement(account, start_date, end_date))


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def account_transfer_list_create(request):
    if request.method == 'GET':
        queryset = AccountTransfer.objects.select_related('from_account', 'to_account')
        filterset = AccountTransferFilter(request.query_params, queryset=queryset)
        return Response(AccountTransferSerializer(filterset.qs, many=True).data)
    return _simple_create(
        request, AccountTransferSerializer, 'AccountTransfer',
        lambda transfer: f"{transfer.from_account.name} -> {transfer.to_account.name} {transfer.amount}"
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def account_transfer_detail(request, pk):
    transfer = get_object_or_404(AccountTransfer.objects.select_related('from_account', 'to_account'), pk=pk)
    return _simple_detail(request, transfer, AccountTransferSerializer, 'AccountTransfer', f"transfer {transfer.id}")


# Expenses

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def expense_category_list_create(request):
    if request.method == 'GET':
        return Response(ExpenseCategorySerializer(ExpenseCategory.objects.all(), many=True).data)
    return _simple_create(request, ExpenseCategorySerializer, 'ExpenseCategory', lambda category: category.name)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def expense_category_detail(request, pk):
    category = get_object_or_404(ExpenseCategory, pk=pk)
    if request.method == 'DELETE':
        used = category.expenses.count()
        if used:
            return Response(
                {'error': f"Cannot delete expense category: {used} expense(s) use this category"},
                status=status.HTTP_400_BAD_REQUEST
            )
    return _simple_detail(request, category, ExpenseCategorySerializer, 'ExpenseCategory', category.name)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def expense_list_create(request):
    """List expenses (filters: category, account, branch, start_date, end_date) or create one"""
    if request.method == 'GET':
        queryset = Expense.objects.select_related('category', 'account')
        filterset = ExpenseFilter(request.query_params, queryset=queryset)
        return Response(ExpenseSerializer(filterset.qs, many=True).data)
    return _simple_create(
        request, ExpenseSerializer, 'Expense',
        lambda expense: f"Expense {expense.amount} from {expense.account.name}"
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def expense_detail(request, pk):
    expense = get_object_or_404(Expense.objects.select_related('category', 'account'), pk=pk)
    return _simple_detail(request, expense, ExpenseSerializer, 'Expense', f"expense {expense.id}", guarded=True)


# Opening balances

@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def opening_balance_list_create(request):
    if request.method == 'GET':
        queryset = OpeningBalance.objects.select_related('party')
        filterset = OpeningBalanceFilter(request.query_params, queryset=queryset)
        return Response(OpeningBalanceSerializer(filterset.qs, many=True).data)
    return _simple_create(
        request, OpeningBalanceSerializer, 'OpeningBalance',
        lambda balance: f"Opening balance {balance.party.name}"
    )


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def opening_balance_detail(request, pk):
    balance = get_object_or_404(OpeningBalance.objects.select_related('party'), pk=pk)
    return _simple_detail(request, balance, OpeningBalanceSerializer, 'OpeningBalance',
                          f"opening balance {balance.party.name}")


# Unified journal

@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def transaction_list(request):
    """
    Every money-moving document in one list, newest first.

    Filters: type (comma separated), branch, supplier, customer, search,
    start_date, end_date. Paginated with limit/offset.
    """
    params = request.query_params
    types = None
    if params.get('type'):
        types = [t.strip() for t in params.get('type').split(',') if t.strip()]
        unknown = [t for t in types if t not in TRANSACTION_TYPES]
        if unknown:
            return Response({'error': f"Unknown transaction type: {', '.join(unknown)}"},
                            status=status.HTTP_400_BAD_REQUEST)

    rows = journal_rows(
        types=types,
        branch=parse_int_param(params.get('branch')),
        supplier=parse_int_param(params.get('supplier')),
        customer=parse_int_param(params.get('customer')),
        search=params.get('search') or None,
        start_date=parse_date_param(params.get('start_date')),
        end_date=parse_date_param(params.get('end_date')),
    )
    page, meta = limit_offset_page(request, rows)
    if meta is None:
        return Response(rows)
    return Response({'results': page, **meta})
