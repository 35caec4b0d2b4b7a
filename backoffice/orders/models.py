import random
import string
import time
import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


def generate_order_number():
    suffix = ''.join(random.choices(string.digits, k=4))
    return f"ORD-{int(time.time())}{suffix}"


class Order(models.Model):
    """Storefront order placed by a customer"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]
    CALL_STATUS_CHOICES = [
        ('requested', 'Requested'),
        ('completed', 'Completed'),
        ('not_completed', 'Not completed'),
    ]
    ACTIVE_STATUSES = ('pending', 'confirmed', 'processing', 'shipped')

    order_number = models.CharField(max_length=50, unique=True, default=generate_order_number)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=50, blank=True)
    delivery_date = models.DateField(null=True, blank=True)
    delivery_interval = models.CharField(max_length=50, blank=True)
    shipping_address = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    estimated_delivery = models.DateField(null=True, blank=True)
    pickup_point_address = models.CharField(max_length=500, blank=True)
    call_request = models.BooleanField(default=False)
    call_status = models.CharField(max_length=20, choices=CALL_STATUS_CHOICES, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    @property
    def customer_name(self):
        address = self.shipping_address or {}
        name = f"{address.get('first_name', '')} {address.get('last_name', '')}".strip()
        if name:
            return name
        return self.user.display_name if self.user else ''

    @property
    def customer_phone(self):
        return (self.shipping_address or {}).get('phone', '')

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_order_status'),
            models.Index(fields=['user', '-created_at'], name='idx_order_user_created'),
        ]


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=100, blank=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    image = models.CharField(max_length=500, blank=True)
    sku = models.CharField(max_length=100, blank=True)

    def __str__(self):
        return f"{self.order.order_number} - {self.name} x{self.quantity}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']


class Address(models.Model):
    """Saved delivery address of a customer"""
    address_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='addresses')
    name = models.CharField(max_length=100, blank=True)
    address = models.CharField(max_length=500)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)
    apartment = models.CharField(max_length=50, blank=True)
    entrance = models.CharField(max_length=50, blank=True)
    floor = models.CharField(max_length=50, blank=True)
    comment = models.TextField(blank=True)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name}: {self.address}"

    class Meta:
        db_table = 'addresses'
        ordering = ['-is_default', 'created_at']
        indexes = [
            models.Index(fields=['user', 'is_default'], name='idx_address_user_default'),
        ]
