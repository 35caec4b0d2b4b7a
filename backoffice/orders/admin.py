from django.contrib import admin
from .models import Order, OrderItem, Address


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'user', 'total', 'status', 'payment_status', 'call_request', 'created_at']
    list_filter = ['status', 'payment_status', 'call_status']
    search_fields = ['order_number', 'user__username', 'tracking_number']
    ordering = ['-created_at']
    readonly_fields = ['order_number', 'created_at', 'updated_at']
    inlines = [OrderItemInline]


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ['name', 'user', 'city', 'is_default', 'created_at']
    list_filter = ['is_default']
    search_fields = ['address', 'city', 'user__username']
