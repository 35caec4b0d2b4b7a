import django_filters
from django.db.models import Q

from .models import Receipt


class ReceiptFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status')
    payment_method = django_filters.CharFilter(method='filter_payment_method')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='date__lte')
    is_debt = django_filters.BooleanFilter(field_name='is_debt')

    class Meta:
        model = Receipt
        fields = ['search', 'status', 'payment_method', 'date_from', 'date_to', 'is_debt']

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)

    def filter_payment_method(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(Q(payment_method=value) | Q(payments__method=value)).distinct()

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(receipt_number__icontains=value) |
            Q(customer_name__icontains=value) |
            Q(customer_phone__icontains=value) |
            Q(items__product_name__icontains=value) |
            Q(items__serial_number__icontains=value)
        ).distinct()
