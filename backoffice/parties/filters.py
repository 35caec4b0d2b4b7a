import django_filters
from django.db.models import Q

from .models import Supplier, ClientDebt


class SupplierFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Supplier.STATUS_CHOICES)

    class Meta:
        model = Supplier
        fields = ['search', 'status']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(contact_person__icontains=value) |
            Q(phone__icontains=value)
        )


class ClientDebtFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status', label='Status')

    class Meta:
        model = ClientDebt
        fields = ['search', 'status']

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(client_name__icontains=value) | Q(notes__icontains=value))
