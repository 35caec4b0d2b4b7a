from django.contrib import admin
from .models import Debt, DebtItem


class DebtItemInline(admin.TabularInline):
    model = DebtItem
    extra = 0
    readonly_fields = ['product_name', 'quantity', 'price', 'cost_price', 'serial_numbers', 'barcode']


@admin.register(Debt)
class DebtAdmin(admin.ModelAdmin):
    list_display = ['debt_id', 'supplier_name', 'amount', 'paid_amount', 'remaining_amount', 'status', 'date', 'due_date']
    list_filter = ['status', 'date', 'due_date']
    search_fields = ['debt_id', 'supplier_name', 'notes']
    ordering = ['-date', '-created_at']
    readonly_fields = ['debt_id', 'remaining_amount', 'status', 'created_at', 'updated_at']
    inlines = [DebtItemInline]
