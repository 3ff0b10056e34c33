import django_filters
from django.db.models import Q

from .models import ImeiInventory, Return, StockTransfer, InventoryAdjustment, IMEI_STATUS_CHOICES


class ImeiInventoryFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(field_name='status', choices=IMEI_STATUS_CHOICES)
    branch = django_filters.NumberFilter(field_name='branch_id')
    item_name = django_filters.CharFilter(field_name='item_name', lookup_expr='icontains')
    purchase_order = django_filters.NumberFilter(field_name='purchase_order_id')
    sales_order = django_filters.NumberFilter(field_name='sales_order_id')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = ImeiInventory
        fields = ['status', 'branch', 'item_name', 'purchase_order', 'sales_order', 'search']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(Q(imei__icontains=value) | Q(item_name__icontains=value))


class ReturnFilter(django_filters.FilterSet):
    return_type = django_filters.CharFilter(field_name='return_type')
    customer = django_filters.NumberFilter(field_name='customer_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    branch = django_filters.NumberFilter(field_name='branch_id')
    start_date = django_filters.DateFilter(field_name='return_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='return_date', lookup_expr='lte')

    class Meta:
        model = Return
        fields = ['return_type', 'customer', 'supplier', 'branch', 'start_date', 'end_date']


class StockTransferFilter(django_filters.FilterSet):
    branch = django_filters.NumberFilter(method='filter_branch', label='Branch (either side)')
    start_date = django_filters.DateFilter(field_name='transfer_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='transfer_date', lookup_expr='lte')

    class Meta:
        model = StockTransfer
        fields = ['branch', 'start_date', 'end_date']

    def filter_branch(self, queryset, name, value):
        return queryset.filter(Q(from_branch_id=value) | Q(to_branch_id=value))


class InventoryAdjustmentFilter(django_filters.FilterSet):
    item = django_filters.NumberFilter(field_name='item_id')
    branch = django_filters.NumberFilter(field_name='branch_id')

    class Meta:
        model = InventoryAdjustment
        fields = ['item', 'branch']
