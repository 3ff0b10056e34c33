"""
Report builders.

Each builder returns JSON-ready data (amounts as decimal strings) so the
result can be cached as is. Arguments are plain values (dates, ids) and
form the cache key.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce

from erp.catalog.models import Item
from erp.core.cache_utils import cached_query, REPORTS_CACHE_TTL
from erp.core.money import quantize_kwd, to_decimal
from erp.finance.models import Payment, Expense
from erp.inventory.models import ImeiInventory, InventoryAdjustment, ReturnLineItem, StockTransferLineItem, Return, AVAILABLE_STATUSES
from erp.parties.ledger import customer_totals
from erp.parties.models import Party
from erp.purchasing.models import PurchaseOrder, PurchaseOrderLineItem
from erp.sales.models import SalesOrder, SalesOrderLineItem

logger = logging.getLogger('erp.reports')

ZERO = Decimal('0')

STOCK_COLUMNS = ('opening_stock', 'purchased', 'sold', 'sale_returned', 'purchase_returned',
                 'transferred_in', 'transferred_out')
AGING_BUCKETS = (
    ('0_30', 0, 30),
    ('31_60', 31, 60),
    ('61_90', 61, 90),
    ('90_plus', 91, None),
)


def _dated(queryset, field, start_date=None, end_date=None):
    if start_date:
        queryset = queryset.filter(**{f'{field}__gte': start_date})
    if end_date:
        queryset = queryset.filter(**{f'{field}__lte': end_date})
    return queryset


def _kwd(value):
    return str(quantize_kwd(value))


def _quantities_by_item(queryset, name_field, qty_field='quantity'):
    rows = queryset.values(name_field).annotate(total=Sum(qty_field)).order_by()
    return {row[name_field]: row['total'] or 0 for row in rows}


def _stock_movements(start_date=None, end_date=None, branch=None):
    """Per-column {item_name: quantity} for documents dated in the range"""
    purchases = _dated(PurchaseOrderLineItem.objects.all(), 'purchase_order__purchase_date', start_date, end_date)
    sales = _dated(SalesOrderLineItem.objects.all(), 'sales_order__sale_date', start_date, end_date)
    returns = _dated(ReturnLineItem.objects.all(), 'return_order__return_date', start_date, end_date)
    transfers = _dated(StockTransferLineItem.objects.all(), 'stock_transfer__transfer_date', start_date, end_date)
    adjustments = _dated(InventoryAdjustment.objects.all(), 'effective_date', start_date, end_date)

    if branch:
        purchases = purchases.filter(purchase_order__branch_id=branch)
        sales = sales.filter(sales_order__branch_id=branch)
        returns = returns.filter(return_order__branch_id=branch)
        adjustments = adjustments.filter(branch_id=branch)

    movements = {
        'opening_stock': _quantities_by_item(adjustments, 'item__name'),
        'purchased': _quantities_by_item(purchases, 'item_name'),
        'sold': _quantities_by_item(sales, 'item_name'),
        'sale_returned': _quantities_by_item(returns.filter(return_order__return_type='sale_return'), 'item_name'),
        'purchase_returned': _quantities_by_item(returns.filter(return_order__return_type='purchase_return'), 'item_name'),
        'transferred_in': {},
        'transferred_out': {},
    }
    # Transfers move stock between branches and cancel out company-wide
    if branch:
        movements['transferred_in'] = _quantities_by_item(transfers.filter(stock_transfer__to_branch_id=branch), 'item_name')
        movements['transferred_out'] = _quantities_by_item(transfers.filter(stock_transfer__from_branch_id=branch), 'item_name')
    return movements


def stock_balance_of(row):
    return (row['opening_stock'] + row['purchased'] - row['sold'] + row['sale_returned']
            - row['purchase_returned'] + row['transferred_in'] - row['transferred_out'])


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:stock_balance')
def build_stock_balance(start_date=None, end_date=None, branch=None):
    """
    Quantity movement per item. Opening stock is the adjustments in the
    period plus the net balance of everything dated before ``start_date``.
    """
    movements = _stock_movements(start_date, end_date, branch)

    carried = defaultdict(int)
    if start_date:
        before = _stock_movements(None, start_date - timedelta(days=1), branch)
        names = set().union(*(before[column].keys() for column in STOCK_COLUMNS))
        for name in names:
            carried[name] = stock_balance_of({column: before[column].get(name, 0) for column in STOCK_COLUMNS})

    names = set(carried).union(*(movements[column].keys() for column in STOCK_COLUMNS))
    rows = []
    for name in sorted(names):
        row = {'item_name': name}
        for column in STOCK_COLUMNS:
            row[column] = movements[column].get(name, 0)
        row['opening_stock'] += carried.get(name, 0)
        row['balance'] = stock_balance_of(row)
        rows.append(row)
    logger.info(f"Stock balance built for {len(rows)} items (branch={branch})")
    return rows


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:daily_cash_flow')
def build_daily_cash_flow(start_date=None, end_date=None):
    """Money in (payments received) and out (payments made, expenses) per day"""
    in_by_day = defaultdict(lambda: ZERO)
    out_by_day = defaultdict(lambda: ZERO)

    payments = _dated(Payment.objects.all(), 'payment_date', start_date, end_date)
    for row in payments.values('payment_date', 'direction').annotate(total=Sum('amount')).order_by():
        target = in_by_day if row['direction'] == 'IN' else out_by_day
        target[row['payment_date']] += row['total'] or ZERO

    expenses = _dated(Expense.objects.all(), 'expense_date', start_date, end_date)
    for row in expenses.values('expense_date').annotate(total=Sum('amount')).order_by():
        out_by_day[row['expense_date']] += row['total'] or ZERO

    running = ZERO
    rows = []
    for day in sorted(set(in_by_day) | set(out_by_day)):
        net = in_by_day[day] - out_by_day[day]
        running += net
        rows.append({
            'date': day.isoformat(),
            'in_amount': _kwd(in_by_day[day]),
            'out_amount': _kwd(out_by_day[day]),
            'net': _kwd(net),
            'running_balance': _kwd(running),
        })
    return rows


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:customer_report')
def build_customer_report():
    rows = []
    for customer in Party.objects.filter(party_type='customer').order_by('name'):
        total_sales, total_payments, balance = customer_totals(customer)
        rows.append({
            'customer_id': customer.id,
            'customer_name': customer.name,
            'total_sales': str(total_sales),
            'total_payments': str(total_payments),
            'balance': str(balance),
        })
    return rows


def average_purchase_prices():
    """Weighted average purchase price per item name over all purchases"""
    rows = (
        PurchaseOrderLineItem.objects.filter(price_kwd__isnull=False)
        .values('item_name')
        .annotate(total=Sum('total_kwd'), qty=Sum('quantity'))
        .order_by()
    )
    return {
        row['item_name']: to_decimal(row['total']) / row['qty']
        for row in rows if row['qty']
    }


def line_cost(line, average_prices, imei_prices):
    """
    Cost of goods for one sales line: the purchase prices of its IMEIs, or
    quantity x the item's average purchase price when it lists none.
    """
    average = average_prices.get(line.item_name, ZERO)
    if line.imei_numbers:
        cost = ZERO
        for imei in line.imei_numbers:
            price = imei_prices.get(imei)
            cost += price if price is not None else average
        return cost
    return (line.quantity or 0) * average


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:profit_loss')
def build_profit_loss(start_date=None, end_date=None, branch=None):
    orders = _dated(SalesOrder.objects.all(), 'sale_date', start_date, end_date)
    returns = _dated(Return.objects.filter(return_type='sale_return'), 'return_date', start_date, end_date)
    expenses = _dated(Expense.objects.all(), 'expense_date', start_date, end_date)
    if branch:
        orders = orders.filter(branch_id=branch)
        returns = returns.filter(branch_id=branch)
        expenses = expenses.filter(branch_id=branch)

    gross_sales = orders.aggregate(t=Sum('total_kwd'))['t'] or ZERO
    sale_returns = returns.aggregate(t=Sum('total_kwd'))['t'] or ZERO
    net_sales = gross_sales - sale_returns

    lines = list(SalesOrderLineItem.objects.filter(sales_order__in=orders))
    sold_imeis = [imei for line in lines for imei in (line.imei_numbers or [])]
    imei_prices = dict(
        ImeiInventory.objects.filter(imei__in=sold_imeis).values_list('imei', 'purchase_price_kwd')
    )
    average_prices = average_purchase_prices()
    cost_of_goods_sold = sum((line_cost(line, average_prices, imei_prices) for line in lines), ZERO)

    gross_profit = net_sales - cost_of_goods_sold
    total_expenses = expenses.aggregate(t=Sum('amount'))['t'] or ZERO
    by_category = (
        expenses.values('category__name')
        .annotate(category_total=Coalesce(Sum('amount'), ZERO))
        .order_by('-category_total')
    )
    return {
        'gross_sales': _kwd(gross_sales),
        'sale_returns': _kwd(sale_returns),
        'net_sales': _kwd(net_sales),
        'cost_of_goods_sold': _kwd(cost_of_goods_sold),
        'gross_profit': _kwd(gross_profit),
        'total_expenses': _kwd(total_expenses),
        'net_profit': _kwd(gross_profit - total_expenses),
        'expenses_by_category': [
            {'category': row['category__name'] or 'Uncategorized', 'amount': _kwd(row['category_total'])}
            for row in by_category
        ],
    }


def aging_bucket(age_days):
    for name, low, high in AGING_BUCKETS:
        if age_days >= low and (high is None or age_days <= high):
            return name
    # Received after the as-of date
    return '0_30'


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:stock_aging')
def build_stock_aging(as_of, branch=None):
    """Available units grouped by item and age since receipt"""
    records = ImeiInventory.objects.filter(status__in=AVAILABLE_STATUSES)
    if branch:
        records = records.filter(branch_id=branch)

    items = {}
    summary = {name: ZERO for name, _low, _high in AGING_BUCKETS}
    for record in records.order_by('item_name'):
        received = record.received_date or record.created_at.date()
        bucket = aging_bucket((as_of - received).days)
        value = to_decimal(record.purchase_price_kwd)

        row = items.setdefault(record.item_name, {
            'item_name': record.item_name,
            'total_qty': 0,
            'total_value': ZERO,
            **{f'qty_{name}': 0 for name, _low, _high in AGING_BUCKETS},
            **{f'value_{name}': ZERO for name, _low, _high in AGING_BUCKETS},
        })
        row['total_qty'] += 1
        row['total_value'] += value
        row[f'qty_{bucket}'] += 1
        row[f'value_{bucket}'] += value
        summary[bucket] += value

    rows = []
    for row in items.values():
        for key, value in row.items():
            if isinstance(value, Decimal):
                row[key] = _kwd(value)
        rows.append(row)
    return {
        'items': rows,
        'summary': {
            **{f'bucket_{name}': _kwd(total) for name, total in summary.items()},
            'total': _kwd(sum(summary.values(), ZERO)),
        },
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:item_sales')
def build_item_sales(start_date=None, end_date=None, branch=None, item=None, customer=None):
    """
    Sales by item. With ``item`` (an item id) the report lists each sale of
    that item instead of one total per item.
    """
    lines = _dated(SalesOrderLineItem.objects.all(), 'sales_order__sale_date', start_date, end_date)
    if branch:
        lines = lines.filter(sales_order__branch_id=branch)
    if customer:
        lines = lines.filter(sales_order__customer_id=customer)

    if item:
        item_name = Item.objects.filter(pk=item).values_list('name', flat=True).first()
        if item_name is None:
            return []
        lines = (
            lines.filter(item_name=item_name)
            .select_related('sales_order__customer')
            .order_by('sales_order__sale_date', 'sales_order_id', 'id')
        )
        return [
            {
                'date': line.sales_order.sale_date.isoformat(),
                'sales_order_id': line.sales_order_id,
                'invoice_number': line.sales_order.invoice_number,
                'customer_name': line.sales_order.customer.name if line.sales_order.customer else None,
                'quantity': line.quantity,
                'unit_price': _kwd(line.price_kwd),
                'total_kwd': _kwd(line.total_kwd),
            }
            for line in lines
        ]

    rows = (
        lines.values('item_name')
        .annotate(qty=Sum('quantity'), revenue=Coalesce(Sum('total_kwd'), ZERO))
        .order_by('-revenue', 'item_name')
    )
    return [
        {'item_name': row['item_name'], 'quantity': row['qty'] or 0, 'total_kwd': _kwd(row['revenue'])}
        for row in rows
    ]


@cached_query(cache_ttl=REPORTS_CACHE_TTL, key_prefix='reports:dashboard')
def build_dashboard_stats(month_start, today):
    sales = SalesOrder.objects.filter(sale_date__gte=month_start, sale_date__lte=today).aggregate(
        total=Sum('total_kwd'), count=Count('id')
    )
    purchases = PurchaseOrder.objects.filter(purchase_date__gte=month_start, purchase_date__lte=today).aggregate(
        total=Sum('total_kwd'), count=Count('id')
    )
    payments = Payment.objects.filter(payment_date__gte=month_start, payment_date__lte=today)
    payments_in = payments.filter(direction='IN').aggregate(t=Sum('amount'))['t'] or ZERO
    payments_out = payments.filter(direction='OUT').aggregate(t=Sum('amount'))['t'] or ZERO
    return {
        'month_start': month_start.isoformat(),
        'sales_this_month': _kwd(sales['total'] or ZERO),
        'sales_count_this_month': sales['count'],
        'purchases_this_month': _kwd(purchases['total'] or ZERO),
        'purchases_count_this_month': purchases['count'],
        'payments_in_this_month': _kwd(payments_in),
        'payments_out_this_month': _kwd(payments_out),
        'stock_units_available': ImeiInventory.objects.filter(status__in=AVAILABLE_STATUSES).count(),
        'customers': Party.objects.filter(party_type='customer').count(),
        'suppliers': Party.objects.filter(party_type='supplier').count(),
    }
