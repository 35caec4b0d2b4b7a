from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from backoffice.arrivals.models import Arrival
from backoffice.core.utils import generate_public_id
from backoffice.parties.models import Supplier


def generate_debt_id():
    return generate_public_id('debt')


class Debt(models.Model):
    """Accounts payable to a supplier, usually one per arrival"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('partially_paid', 'Partially Paid'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
    ]

    debt_id = models.CharField(max_length=64, unique=True, default=generate_debt_id)
    arrival = models.OneToOneField(Arrival, on_delete=models.SET_NULL, null=True, blank=True, related_name='debt')
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='debts')
    supplier_name = models.CharField(max_length=200)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    remaining_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='debts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.debt_id} - {self.supplier_name}"

    def compute_status(self, today=None):
        if self.remaining_amount <= 0:
            return 'paid'
        if self.paid_amount > 0:
            return 'partially_paid'
        today = today or timezone.localdate()
        if self.due_date and self.due_date < today:
            return 'overdue'
        return 'active'

    def save(self, *args, **kwargs):
        self.remaining_amount = max(self.amount - self.paid_amount, Decimal('0.00'))
        self.status = self.compute_status()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'debts'
        ordering = ['-date', '-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_debt_status'),
            models.Index(fields=['supplier', 'status'], name='idx_debt_supplier_status'),
            models.Index(fields=['-date', '-created_at'], name='idx_debt_date_created'),
        ]


class DebtItem(models.Model):
    """Snapshot of an arrival line the debt was raised for"""
    debt = models.ForeignKey(Debt, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=100, blank=True)
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_accessory = models.BooleanField(default=False)
    is_service = models.BooleanField(default=False)
    serial_numbers = models.JSONField(default=list, blank=True)
    barcode = models.CharField(max_length=100, blank=True)

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"

    class Meta:
        db_table = 'debt_items'
        ordering = ['id']
