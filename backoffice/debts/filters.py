import django_filters
from django.db.models import Q

from .models import Debt


class DebtFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status', label='Status')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')

    class Meta:
        model = Debt
        fields = ['search', 'status', 'supplier']

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(supplier_name__icontains=value) | Q(notes__icontains=value))
