from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_id', 'date', 'type', 'api_type', 'amount', 'category', 'in_cash_register', 'status']
    list_filter = ['type', 'api_type', 'category', 'in_cash_register', 'status']
    search_fields = ['payment_id', 'description', 'supplier', 'notes']
    ordering = ['-date', '-id']
    readonly_fields = ['payment_id', 'created_at', 'updated_at']
