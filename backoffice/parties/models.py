import random
import string
import time
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class Supplier(models.Model):
    """Suppliers of arrived goods"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    inn = models.CharField(max_length=20, blank=True, help_text="Taxpayer identification number")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']


def generate_client_debt_id():
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"CD-{int(time.time() * 1000)}-{suffix}"


class ClientDebt(models.Model):
    """Money a client owes the shop (goods handed over on credit)"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('paid', 'Paid'),
    ]

    debt_id = models.CharField(max_length=50, unique=True, default=generate_client_debt_id)
    client_name = models.CharField(max_length=200)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    paid_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    remaining_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    date = models.DateTimeField(default=timezone.now)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    notes = models.TextField(blank=True)
    is_debt = models.BooleanField(default=True)
    debt_paid = models.BooleanField(default=False)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='client_debts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.is_debt = True
        self.remaining_amount = (self.amount or Decimal('0.00')) - (self.paid_amount or Decimal('0.00'))
        if self.remaining_amount <= 0:
            self.status = 'paid'
            self.debt_paid = True
        else:
            self.status = 'active'
            self.debt_paid = False
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.debt_id} - {self.client_name}"

    class Meta:
        db_table = 'client_debts'
        ordering = ['-date']
        indexes = [
            models.Index(fields=['status'], name='client_debt_status_2a9c1e_idx'),
            models.Index(fields=['-date'], name='client_debt_date_7f3b0d_idx'),
        ]
