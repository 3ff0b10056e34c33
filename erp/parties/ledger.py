"""
Party statements.

Customer: debits are sales and opening balances; credits are payments
received, sale returns and discounts. Balance = debits - credits (what the
customer owes).

Supplier: credits are purchases and opening balances; debits are payments
made and purchase returns. Balance = credits - debits (what we owe).
"""
from decimal import Decimal

from django.db.models import Sum

from erp.core.money import quantize_kwd
from erp.finance.models import Payment, OpeningBalance
from erp.inventory.models import Return
from erp.purchasing.models import PurchaseOrder
from erp.sales.models import SalesOrder, Discount


def _dated(queryset, field, start_date=None, end_date=None):
    if start_date:
        queryset = queryset.filter(**{f'{field}__gte': start_date})
    if end_date:
        queryset = queryset.filter(**{f'{field}__lte': end_date})
    return queryset


def _entry(entry_id, date, entry_type, reference, description, debit=Decimal('0'), credit=Decimal('0')):
    return {
        'id': entry_id,
        'date': date,
        'type': entry_type,
        'reference': reference,
        'description': description,
        'debit': quantize_kwd(debit),
        'credit': quantize_kwd(credit),
    }


def customer_entries(customer, start_date=None, end_date=None):
    entries = []
    for order in _dated(SalesOrder.objects.filter(customer=customer), 'sale_date', start_date, end_date):
        entries.append(_entry(f"sale-{order.id}", order.sale_date, 'sale', order.invoice_number,
                              f"Sales invoice {order.invoice_number}", debit=order.total_kwd or 0))
    for opening in _dated(OpeningBalance.objects.filter(party=customer), 'balance_date', start_date, end_date):
        entries.append(_entry(f"opening-{opening.id}", opening.balance_date, 'opening_balance', None,
                              opening.notes or 'Opening balance', debit=opening.amount))
    for payment in _dated(Payment.objects.filter(customer=customer, direction='IN'), 'payment_date', start_date, end_date):
        entries.append(_entry(f"payment-{payment.id}", payment.payment_date, 'payment', payment.reference,
                              f"Payment received ({payment.payment_type})", credit=payment.amount))
    for return_order in _dated(Return.objects.filter(customer=customer, return_type='sale_return'), 'return_date', start_date, end_date):
        entries.append(_entry(f"return-{return_order.id}", return_order.return_date, 'return', return_order.return_number,
                              f"Sale return {return_order.return_number}", credit=return_order.total_kwd or 0))
    discounts = _dated(Discount.objects.filter(customer=customer).select_related('sales_order'),
                       'created_at__date', start_date, end_date)
    for discount in discounts:
        entries.append(_entry(f"discount-{discount.id}", discount.created_at.date(), 'discount',
                              discount.sales_order.invoice_number,
                              f"Discount on {discount.sales_order.invoice_number}", credit=discount.discount_amount))
    return entries


def supplier_entries(supplier, start_date=None, end_date=None):
    entries = []
    for order in _dated(PurchaseOrder.objects.filter(supplier=supplier), 'purchase_date', start_date, end_date):
        entries.append(_entry(f"purchase-{order.id}", order.purchase_date, 'purchase', order.invoice_number,
                              f"Purchase invoice {order.invoice_number or order.id}", credit=order.total_kwd or 0))
    for opening in _dated(OpeningBalance.objects.filter(party=supplier), 'balance_date', start_date, end_date):
        entries.append(_entry(f"opening-{opening.id}", opening.balance_date, 'opening_balance', None,
                              opening.notes or 'Opening balance', credit=opening.amount))
    for payment in _dated(Payment.objects.filter(supplier=supplier, direction='OUT'), 'payment_date', start_date, end_date):
        entries.append(_entry(f"payment-{payment.id}", payment.payment_date, 'payment', payment.reference,
                              f"Payment made ({payment.payment_type})", debit=payment.amount))
    for return_order in _dated(Return.objects.filter(supplier=supplier, return_type='purchase_return'), 'return_date', start_date, end_date):
        entries.append(_entry(f"return-{return_order.id}", return_order.return_date, 'return', return_order.return_number,
                              f"Purchase return {return_order.return_number}", debit=return_order.total_kwd or 0))
    return entries


def _signed(party, entry):
    if party.party_type == 'customer':
        return entry['debit'] - entry['credit']
    return entry['credit'] - entry['debit']


def party_entries(party, start_date=None, end_date=None):
    if party.party_type == 'customer':
        entries = customer_entries(party, start_date, end_date)
    else:
        entries = supplier_entries(party, start_date, end_date)
    entries.sort(key=lambda e: (e['date'], e['id']))
    return entries


def party_balance(party, as_of=None):
    total = Decimal('0')
    for entry in party_entries(party, end_date=as_of):
        total += _signed(party, entry)
    return quantize_kwd(total)


def party_statement(party, start_date=None, end_date=None):
    """Statement rows with a running balance; earlier activity rolls into the opening balance"""
    opening = Decimal('0')
    if start_date:
        for entry in party_entries(party, end_date=start_date):
            if entry['date'] < start_date:
                opening += _signed(party, entry)
    opening = quantize_kwd(opening)

    running = opening
    rows = []
    for entry in party_entries(party, start_date, end_date):
        running += _signed(party, entry)
        rows.append({
            'id': entry['id'],
            'date': entry['date'].isoformat(),
            'type': entry['type'],
            'reference': entry['reference'],
            'description': entry['description'],
            'debit': str(entry['debit']),
            'credit': str(entry['credit']),
            'balance': str(quantize_kwd(running)),
        })
    return {
        party.party_type: {'id': party.id, 'name': party.name, 'phone': party.phone},
        'opening_balance': str(opening),
        'entries': rows,
        'closing_balance': str(quantize_kwd(running)),
    }


def customer_totals(customer):
    """Totals used by the customer report"""
    total_sales = SalesOrder.objects.filter(customer=customer).aggregate(t=Sum('total_kwd'))['t'] or Decimal('0')
    total_payments = Payment.objects.filter(customer=customer, direction='IN').aggregate(t=Sum('amount'))['t'] or Decimal('0')
    return quantize_kwd(total_sales), quantize_kwd(total_payments), party_balance(customer)
