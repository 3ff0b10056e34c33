import django_filters
from django.db.models import Q

from .models import PurchaseOrder, PurchaseOrderDraft


class PurchaseOrderFilter(django_filters.FilterSet):
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    branch = django_filters.NumberFilter(field_name='branch_id')
    start_date = django_filters.DateFilter(field_name='purchase_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='purchase_date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = PurchaseOrder
        fields = ['supplier', 'branch', 'start_date', 'end_date', 'search']

    def filter_search(self, queryset, name, value):
        """Invoice number, supplier name, item name or IMEI"""
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_number__icontains=value) |
            Q(supplier__name__icontains=value) |
            Q(line_items__item_name__icontains=value) |
            Q(imeis__imei__icontains=value)
        ).distinct()


class PurchaseOrderDraftFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name='status')
    branch = django_filters.NumberFilter(field_name='branch_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')

    class Meta:
        model = PurchaseOrderDraft
        fields = ['status', 'branch', 'supplier']
