import django_filters
from django.db.models import Q

from .models import Order


class OrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status')
    payment_status = django_filters.ChoiceFilter(choices=Order.PAYMENT_STATUS_CHOICES)

    class Meta:
        model = Order
        fields = ['search', 'status', 'payment_status']

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value) |
            Q(shipping_address__first_name__icontains=value) |
            Q(shipping_address__last_name__icontains=value) |
            Q(shipping_address__phone__icontains=value) |
            Q(user__username__icontains=value) |
            Q(user__phone__icontains=value)
        )
