import django_filters

from .models import Payment, Expense, AccountTransfer, OpeningBalance


class PaymentFilter(django_filters.FilterSet):
    direction = django_filters.ChoiceFilter(field_name='direction', choices=[('IN', 'IN'), ('OUT', 'OUT')])
    customer = django_filters.NumberFilter(field_name='customer_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    payment_type = django_filters.CharFilter(field_name='payment_type')
    sales_order = django_filters.NumberFilter(field_name='sales_order_id')
    purchase_order = django_filters.NumberFilter(field_name='purchase_order_id')
    start_date = django_filters.DateFilter(field_name='payment_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='payment_date', lookup_expr='lte')

    class Meta:
        model = Payment
        fields = ['direction', 'customer', 'supplier', 'payment_type', 'sales_order', 'purchase_order',
                  'start_date', 'end_date']


class ExpenseFilter(django_filters.FilterSet):
    category = django_filters.NumberFilter(field_name='category_id')
    account = django_filters.NumberFilter(field_name='account_id')
    branch = django_filters.NumberFilter(field_name='branch_id')
    start_date = django_filters.DateFilter(field_name='expense_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='expense_date', lookup_expr='lte')

    class Meta:
        model = Expense
        fields = ['category', 'account', 'branch', 'start_date', 'end_date']


class AccountTransferFilter(django_filters.FilterSet):
    account = django_filters.NumberFilter(method='filter_account', label='Account (either side)')
    start_date = django_filters.DateFilter(field_name='transfer_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='transfer_date', lookup_expr='lte')

    class Meta:
        model = AccountTransfer
        fields = ['account', 'start_date', 'end_date']

    def filter_account(self, queryset, name, value):
        return queryset.filter(from_account_id=value) | queryset.filter(to_account_id=value)


class OpeningBalanceFilter(django_filters.FilterSet):
    party = django_filters.NumberFilter(field_name='party_id')
    party_type = django_filters.CharFilter(field_name='party__party_type')

    class Meta:
        model = OpeningBalance
        fields = ['party', 'party_type']
