import django_filters
from django.db.models import Q

from .models import Payment


class PaymentFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.CharFilter(method='filter_exact_or_all')
    category = django_filters.CharFilter(method='filter_exact_or_all')
    payment_method = django_filters.CharFilter(method='filter_exact_or_all')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='date__lte')
    incassation = django_filters.ChoiceFilter(
        field_name='status', choices=[('active', 'Active'), ('incassated', 'Incassated')]
    )
    in_cash_register = django_filters.ChoiceFilter(choices=Payment.CASH_REGISTER_CHOICES)
    api_type = django_filters.ChoiceFilter(choices=Payment.API_TYPE_CHOICES)

    class Meta:
        model = Payment
        fields = ['search', 'type', 'category', 'payment_method', 'date_from', 'date_to',
                  'incassation', 'in_cash_register', 'api_type']

    def filter_exact_or_all(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(**{name: value})

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(description__icontains=value) |
            Q(supplier__icontains=value) |
            Q(notes__icontains=value)
        )
