from django.contrib import admin
from .models import Receipt, ReceiptItem, ReceiptPayment


class ReceiptItemInline(admin.TabularInline):
    model = ReceiptItem
    extra = 0
    fields = ['arrival', 'product_name', 'serial_number', 'quantity', 'price', 'cost_price', 'total', 'supplier_name']


class ReceiptPaymentInline(admin.TabularInline):
    model = ReceiptPayment
    extra = 0


@admin.register(Receipt)
class ReceiptAdmin(admin.ModelAdmin):
    list_display = ['receipt_number', 'date', 'customer_name', 'total', 'payment_method', 'status', 'is_debt', 'debt_paid']
    list_filter = ['status', 'payment_method', 'is_debt', 'date']
    search_fields = ['receipt_number', 'customer_name', 'customer_phone', 'items__serial_number']
    ordering = ['-date']
    readonly_fields = ['receipt_number', 'created_at', 'updated_at']
    inlines = [ReceiptItemInline, ReceiptPaymentInline]
