import django_filters
from django.db.models import Q

from .models import Arrival


class ArrivalFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = Arrival
        fields = ['search', 'supplier', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(supplier_name__icontains=value) |
            Q(items__product_name__icontains=value) |
            Q(notes__icontains=value)
        ).distinct()
