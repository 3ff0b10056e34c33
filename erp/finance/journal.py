"""
Unified transaction journal across purchases, sales, payments, expenses,
returns and account transfers.
"""
from erp.inventory.models import Return
from erp.purchasing.models import PurchaseOrder
from erp.sales.models import SalesOrder
from .models import Payment, Expense, AccountTransfer

TRANSACTION_TYPES = (
    'purchase', 'sale', 'payment_in', 'payment_out', 'expense',
    'sale_return', 'purchase_return', 'account_transfer',
)


def _money(value):
    return str(value) if value is not None else None


def _dated(queryset, field, start_date, end_date):
    if start_date:
        queryset = queryset.filter(**{f'{field}__gte': start_date})
    if end_date:
        queryset = queryset.filter(**{f'{field}__lte': end_date})
    return queryset


def _row(row_id, row_type, row_date, reference, party_name, amount_kwd, fx_currency=None,
         amount_fx=None, branch_id=None):
    return {
        'id': row_id,
        'type': row_type,
        'date': row_date,
        'reference': reference,
        'party_name': party_name,
        'amount_kwd': _money(amount_kwd),
        'fx_currency': fx_currency,
        'amount_fx': _money(amount_fx),
        'branch_id': branch_id,
    }


def _sort_key(row):
    kind, _, number = row['id'].rpartition('-')
    return row['date'], int(number), kind


def journal_rows(types=None, branch=None, supplier=None, customer=None, search=None,
                 start_date=None, end_date=None):
    """
    Journal rows, newest first.

    Payments and account transfers carry no branch, so a branch filter
    leaves them out.
    """
    wanted = set(types or TRANSACTION_TYPES)
    party_filtered = supplier is not None or customer is not None
    rows = []

    if 'purchase' in wanted and customer is None:
        queryset = _dated(PurchaseOrder.objects.select_related('supplier'), 'purchase_date', start_date, end_date)
        if branch:
            queryset = queryset.filter(branch_id=branch)
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        for order in queryset:
            rows.append(_row(f"purchase-{order.id}", 'purchase', order.purchase_date, order.invoice_number,
                             order.supplier.name if order.supplier else None, order.total_kwd,
                             order.fx_currency, order.total_fx, order.branch_id))

    if 'sale' in wanted and supplier is None:
        queryset = _dated(SalesOrder.objects.select_related('customer'), 'sale_date', start_date, end_date)
        if branch:
            queryset = queryset.filter(branch_id=branch)
        if customer:
            queryset = queryset.filter(customer_id=customer)
        for order in queryset:
            rows.append(_row(f"sale-{order.id}", 'sale', order.sale_date, order.invoice_number,
                             order.customer.name if order.customer else None, order.total_kwd,
                             order.fx_currency if order.total_fx is not None else None,
                             order.total_fx, order.branch_id))

    if {'payment_in', 'payment_out'} & wanted and not branch:
        queryset = _dated(Payment.objects.select_related('customer', 'supplier'), 'payment_date', start_date, end_date)
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if customer:
            queryset = queryset.filter(customer_id=customer)
        for payment in queryset:
            row_type = 'payment_in' if payment.direction == 'IN' else 'payment_out'
            if row_type not in wanted:
                continue
            party = payment.party
            rows.append(_row(f"payment-{payment.id}", row_type, payment.payment_date, payment.reference,
                             party.name if party else None, payment.amount,
                             payment.fx_currency, payment.fx_amount))

    if 'expense' in wanted and not party_filtered:
        queryset = _dated(Expense.objects.select_related('category'), 'expense_date', start_date, end_date)
        if branch:
            queryset = queryset.filter(branch_id=branch)
        for expense in queryset:
            rows.append(_row(f"expense-{expense.id}", 'expense', expense.expense_date, expense.reference,
                             expense.category.name if expense.category else None, expense.amount,
                             branch_id=expense.branch_id))

    if {'sale_return', 'purchase_return'} & wanted:
        queryset = _dated(Return.objects.select_related('customer', 'supplier'), 'return_date', start_date, end_date)
        if branch:
            queryset = queryset.filter(branch_id=branch)
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if customer:
            queryset = queryset.filter(customer_id=customer)
        for return_order in queryset:
            if return_order.return_type not in wanted:
                continue
            party = return_order.party
            rows.append(_row(f"return-{return_order.id}", return_order.return_type, return_order.return_date,
                             return_order.return_number, party.name if party else None, return_order.total_kwd,
                             branch_id=return_order.branch_id))

    if 'account_transfer' in wanted and not party_filtered and not branch:
        queryset = _dated(AccountTransfer.objects.select_related('from_account', 'to_account'),
                          'transfer_date', start_date, end_date)
        for transfer in queryset:
            rows.append(_row(f"transfer-{transfer.id}", 'account_transfer', transfer.transfer_date, transfer.notes,
                             f"{transfer.from_account.name} -> {transfer.to_account.name}", transfer.amount))

    if search:
        needle = search.lower()
        rows = [
            row for row in rows
            if needle in (row['reference'] or '').lower() or needle in (row['party_name'] or '').lower()
        ]

    rows.sort(key=_sort_key, reverse=True)
    return rows
