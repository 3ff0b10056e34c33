"""
Account ledger: every movement of money into or out of an account.

A payment settles into the account named after its payment type. Split
payments settle each split separately.
"""
from decimal import Decimal

from erp.core.money import quantize_kwd
from .models import Payment, PaymentSplit, Expense, AccountTransfer


def _in_range(queryset, field, start_date, end_date):
    if start_date:
        queryset = queryset.filter(**{f'{field}__gte': start_date})
    if end_date:
        queryset = queryset.filter(**{f'{field}__lte': end_date})
    return queryset


def account_movements(account, start_date=None, end_date=None):
    """Signed movements for an account, oldest first"""
    movements = []

    payments = _in_range(
        Payment.objects.filter(payment_type=account.name, splits__isnull=True).select_related('customer', 'supplier'),
        'payment_date', start_date, end_date
    )
    for payment in payments:
        sign = 1 if payment.direction == 'IN' else -1
        party = payment.party
        movements.append({
            'date': payment.payment_date,
            'description': f"Payment {'from' if payment.direction == 'IN' else 'to'} {party.name if party else 'Unknown'}",
            'type': 'payment_in' if payment.direction == 'IN' else 'payment_out',
            'reference': payment.reference,
            'source_id': payment.id,
            'amount': sign * payment.amount,
        })

    splits = _in_range(
        PaymentSplit.objects.filter(payment_type=account.name).select_related('payment', 'payment__customer', 'payment__supplier'),
        'payment__payment_date', start_date, end_date
    )
    for split in splits:
        payment = split.payment
        sign = 1 if payment.direction == 'IN' else -1
        party = payment.party
        movements.append({
            'date': payment.payment_date,
            'description': f"Split payment {'from' if payment.direction == 'IN' else 'to'} {party.name if party else 'Unknown'}",
            'type': 'payment_in' if payment.direction == 'IN' else 'payment_out',
            'reference': payment.reference,
            'source_id': payment.id,
            'amount': sign * split.amount,
        })

    expenses = _in_range(
        Expense.objects.filter(account=account).select_related('category'),
        'expense_date', start_date, end_date
    )
    for expense in expenses:
        category = expense.category.name if expense.category else 'Uncategorized'
        movements.append({
            'date': expense.expense_date,
            'description': f"Expense: {category}" + (f" - {expense.description}" if expense.description else ''),
            'type': 'expense',
            'reference': expense.reference,
            'source_id': expense.id,
            'amount': -expense.amount,
        })

    transfers = _in_range(
        AccountTransfer.objects.filter(from_account=account).select_related('to_account'),
        'transfer_date', start_date, end_date
    )
    for transfer in transfers:
        movements.append({
            'date': transfer.transfer_date,
            'description': f"Transfer to {transfer.to_account.name}",
            'type': 'transfer_out',
            'reference': transfer.notes or None,
            'source_id': transfer.id,
            'amount': -transfer.amount,
        })

    transfers = _in_range(
        AccountTransfer.objects.filter(to_account=account).select_related('from_account'),
        'transfer_date', start_date, end_date
    )
    for transfer in transfers:
        movements.append({
            'date': transfer.transfer_date,
            'description': f"Transfer from {transfer.from_account.name}",
            'type': 'transfer_in',
            'reference': transfer.notes or None,
            'source_id': transfer.id,
            'amount': transfer.amount,
        })

    movements.sort(key=lambda m: (m['date'], m['type'], m['source_id']))
    return movements


def account_balance(account, as_of=None):
    """Opening balance plus every movement up to and including ``as_of``"""
    total = account.opening_balance or Decimal('0')
    for movement in account_movements(account, end_date=as_of):
        total += movement['amount']
    return quantize_kwd(total)


def account_statement(account, start_date=None, end_date=None):
    """Movements in a period with a running balance"""
    opening = account.opening_balance or Decimal('0')
    if start_date:
        for movement in account_movements(account, end_date=start_date):
            if movement['date'] < start_date:
                opening += movement['amount']
    opening = quantize_kwd(opening)

    running = opening
    rows = []
    for movement in account_movements(account, start_date, end_date):
        running += movement['amount']
        rows.append({
            'date': movement['date'].isoformat(),
            'description': movement['description'],
            'type': movement['type'],
            'reference': movement['reference'],
            'amount': str(quantize_kwd(movement['amount'])),
            'balance': str(quantize_kwd(running)),
        })
    return {
        'account': {'id': account.id, 'name': account.name},
        'opening_balance': str(opening),
        'transactions': rows,
        'closing_balance': str(quantize_kwd(running)),
    }
