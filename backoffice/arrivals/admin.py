from django.contrib import admin
from .models import Arrival, ArrivalItem


class ArrivalItemInline(admin.TabularInline):
    model = ArrivalItem
    extra = 0
    fields = ['product_name', 'quantity', 'serial_numbers', 'barcode', 'price', 'cost_price', 'is_accessory', 'is_service']


@admin.register(Arrival)
class ArrivalAdmin(admin.ModelAdmin):
    list_display = ['id', 'date', 'supplier_name', 'total_quantity', 'total_value', 'created_by', 'created_at']
    list_filter = ['date', 'supplier']
    search_fields = ['supplier_name', 'notes', 'items__product_name']
    ordering = ['-date', '-created_at']
    readonly_fields = ['total_quantity', 'total_value', 'created_at', 'updated_at']
    inlines = [ArrivalItemInline]
