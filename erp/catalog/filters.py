import django_filters
from django.db.models import Q

from .models import Item


class ItemFilter(django_filters.FilterSet):
    """Filter for the item list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    tracks_imei = django_filters.BooleanFilter(field_name='tracks_imei')
    fx_currency = django_filters.CharFilter(field_name='fx_currency', lookup_expr='iexact')

    class Meta:
        model = Item
        fields = ['search', 'tracks_imei', 'fx_currency']

    def filter_search(self, queryset, name, value):
        """
        Multi-word search: every word must appear in the name or code,
        in any order ("a54 samsung" matches "Samsung Galaxy A54").
        """
        if not value:
            return queryset
        for word in value.split():
            queryset = queryset.filter(Q(name__icontains=word) | Q(code__icontains=word))
        return queryset
