from django.conf import settings
from django.db import models
from django.utils import timezone

from backoffice.arrivals.models import Arrival
from backoffice.core.utils import generate_public_id
from backoffice.debts.models import Debt
from backoffice.parties.models import Supplier, ClientDebt
from backoffice.receipts.models import Receipt


def generate_payment_id():
    return generate_public_id('payment')


class Payment(models.Model):
    """Ledger entry: income is positive, expenses are stored negative"""
    TYPE_CHOICES = [
        ('receipt', 'Receipt'),
        ('debt', 'Debt'),
        ('arrival', 'Arrival'),
        ('client_record', 'Client record'),
        ('cash', 'Cash'),
        ('transfer', 'Transfer'),
        ('keb', 'KEB'),
        ('manual_client_debt', 'Manual client debt'),
    ]
    CASH_REGISTER_CHOICES = [
        ('yes', 'In register'),
        ('no', 'Not in register'),
        ('debt', 'Debt'),
    ]
    API_TYPE_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('incassated', 'Incassated'),
        ('debt', 'Debt'),
    ]

    payment_id = models.CharField(max_length=64, unique=True, default=generate_payment_id)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=1000)
    date = models.DateTimeField(default=timezone.now)
    supplier = models.CharField(max_length=200, blank=True)
    supplier_ref = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    order_id = models.CharField(max_length=100, blank=True)
    in_cash_register = models.CharField(max_length=10, choices=CASH_REGISTER_CHOICES, default='no')
    cash_register_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    payment_method = models.CharField(max_length=30, blank=True)
    api_type = models.CharField(max_length=10, choices=API_TYPE_CHOICES, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    incassation_date = models.DateTimeField(null=True, blank=True)
    admin_name = models.CharField(max_length=200, blank=True)
    arrival = models.ForeignKey(Arrival, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    debt = models.ForeignKey(Debt, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    client_debt = models.ForeignKey(ClientDebt, on_delete=models.CASCADE, null=True, blank=True, related_name='payments')
    receipt = models.ForeignKey(Receipt, on_delete=models.CASCADE, null=True, blank=True, related_name='ledger_payments')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.payment_id}: {self.amount}"

    class Meta:
        db_table = 'payments'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['-date', '-id'], name='idx_payment_date'),
            models.Index(fields=['in_cash_register'], name='idx_payment_cash_register'),
            models.Index(fields=['api_type', 'date'], name='idx_payment_apitype_date'),
            models.Index(fields=['category'], name='idx_payment_category'),
        ]
