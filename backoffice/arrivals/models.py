from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from backoffice.parties.models import Supplier


class Arrival(models.Model):
    """Goods received from a supplier"""
    date = models.DateField(default=timezone.localdate)
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='arrivals')
    supplier_name = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    total_quantity = models.PositiveIntegerField(default=0)
    total_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='arrivals')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Arrival {self.id} ({self.date}, {self.supplier_name or 'no supplier'})"

    def recalculate_totals(self):
        """Sum item quantities and cost value"""
        items = list(self.items.all())
        self.total_quantity = sum(item.quantity for item in items)
        self.total_value = sum((item.cost_price * item.quantity for item in items), Decimal('0.00'))
        self.save(update_fields=['total_quantity', 'total_value', 'updated_at'])

    def payable_amount(self):
        """What the shop owes the supplier; services without a cost price are free"""
        return sum(
            (item.cost_price * item.quantity for item in self.items.all() if item.is_payable),
            Decimal('0.00')
        )

    class Meta:
        db_table = 'arrivals'
        ordering = ['-date', '-created_at']
        indexes = [
            models.Index(fields=['-date', '-created_at'], name='idx_arrival_date_created'),
            models.Index(fields=['supplier'], name='idx_arrival_supplier'),
        ]


class ArrivalItem(models.Model):
    """Arrival line: one product with its serial numbers or a quantity of accessories/services"""
    arrival = models.ForeignKey(Arrival, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=100, blank=True)
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=0)
    serial_numbers = models.JSONField(default=list, blank=True)
    barcode = models.CharField(max_length=100, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_accessory = models.BooleanField(default=False)
    is_service = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"

    @property
    def has_serials(self):
        return bool(self.serial_numbers)

    @property
    def is_payable(self):
        return not (self.is_service and self.cost_price <= 0)

    def get_line_cost(self):
        return self.cost_price * self.quantity

    class Meta:
        db_table = 'arrival_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['arrival', 'product_name'], name='idx_arritem_arrival_name'),
        ]
