from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from backoffice.arrivals.models import Arrival
from backoffice.parties.models import Supplier


class Receipt(models.Model):
    """Point-of-sale receipt"""
    DISCOUNT_TYPE_CHOICES = [
        ('percent', 'Percent'),
        ('fixed', 'Fixed'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('transfer', 'Transfer'),
        ('mixed', 'Mixed'),
    ]
    STATUS_CHOICES = [
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('refunded', 'Refunded'),
    ]

    receipt_number = models.CharField(max_length=50, unique=True)
    date = models.DateTimeField(default=timezone.now)
    customer_name = models.CharField(max_length=200, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_type = models.CharField(max_length=10, choices=DISCOUNT_TYPE_CHOICES, blank=True)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    delivery_method = models.CharField(max_length=100, blank=True)
    delivery_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='completed')
    notes = models.TextField(blank=True)
    is_debt = models.BooleanField(default=False)
    debt_paid = models.BooleanField(default=False)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='receipts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.receipt_number

    def get_cost_total(self):
        return sum((item.cost_price * item.quantity for item in self.items.all()), Decimal('0.00'))

    class Meta:
        db_table = 'receipts'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['-date', '-id'], name='idx_receipt_date'),
            models.Index(fields=['status'], name='idx_receipt_status'),
        ]


class ReceiptItem(models.Model):
    """Sold line; refers back to the arrival the goods came from"""
    receipt = models.ForeignKey(Receipt, on_delete=models.CASCADE, related_name='items')
    arrival = models.ForeignKey(Arrival, on_delete=models.SET_NULL, null=True, blank=True, related_name='receipt_items')
    product_name = models.CharField(max_length=255)
    serial_number = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=10, decimal_places=2)
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    is_accessory = models.BooleanField(default=False)
    is_service = models.BooleanField(default=False)
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='receipt_items')
    supplier_name = models.CharField(max_length=200, blank=True)

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"

    class Meta:
        db_table = 'receipt_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['arrival'], name='idx_rcptitem_arrival'),
            models.Index(fields=['serial_number'], name='idx_rcptitem_serial'),
        ]


class ReceiptPayment(models.Model):
    """One payment part of a receipt (cash, card, transfer...)"""
    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('transfer', 'Transfer'),
        ('keb', 'KEB'),
        ('sber_transfer', 'Sber transfer'),
    ]

    receipt = models.ForeignKey(Receipt, on_delete=models.CASCADE, related_name='payments')
    method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    sber_recipient = models.CharField(max_length=200, blank=True)
    in_cash_register = models.BooleanField(default=False)
    cash_register_date = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.method}: {self.amount}"

    class Meta:
        db_table = 'receipt_payments'
        ordering = ['id']
