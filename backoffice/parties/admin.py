from django.contrib import admin
from .models import Supplier, ClientDebt


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_person', 'phone', 'email', 'inn', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'contact_person', 'phone', 'email', 'inn']
    ordering = ['name']


@admin.register(ClientDebt)
class ClientDebtAdmin(admin.ModelAdmin):
    list_display = ['debt_id', 'client_name', 'amount', 'paid_amount', 'remaining_amount', 'status', 'date']
    list_filter = ['status', 'date']
    search_fields = ['debt_id', 'client_name', 'notes']
    ordering = ['-date']
    readonly_fields = ['debt_id', 'remaining_amount', 'status', 'debt_paid', 'created_at', 'updated_at']
