import django_filters
from django.db.models import Q

from .models import SalesOrder, Discount


class SalesOrderFilter(django_filters.FilterSet):
    customer = django_filters.NumberFilter(field_name='customer_id')
    branch = django_filters.NumberFilter(field_name='branch_id')
    start_date = django_filters.DateFilter(field_name='sale_date', lookup_expr='gte')
    end_date = django_filters.DateFilter(field_name='sale_date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = SalesOrder
        fields = ['customer', 'branch', 'start_date', 'end_date', 'search']

    def filter_search(self, queryset, name, value):
        """Invoice number, customer name or phone, item name or IMEI"""
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_number__icontains=value) |
            Q(customer__name__icontains=value) |
            Q(customer__phone__icontains=value) |
            Q(line_items__item_name__icontains=value) |
            Q(imeis__imei__icontains=value)
        ).distinct()


class DiscountFilter(django_filters.FilterSet):
    customer = django_filters.NumberFilter(field_name='customer_id')
    sales_order = django_filters.NumberFilter(field_name='sales_order_id')

    class Meta:
        model = Discount
        fields = ['customer', 'sales_order']
