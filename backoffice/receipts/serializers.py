from decimal import Decimal

from rest_framework import serializers
from .models import Receipt, ReceiptItem, ReceiptPayment


class ReceiptItemSerializer(serializers.ModelSerializer):
    arrival_id = serializers.IntegerField(source='arrival.id', read_only=True, allow_null=True)

    class Meta:
        model = ReceiptItem
        fields = ['id', 'arrival_id', 'product_name', 'serial_number', 'quantity', 'price', 'cost_price', 'total',
                  'is_accessory', 'is_service', 'supplier', 'supplier_name']


class ReceiptPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReceiptPayment
        fields = ['id', 'method', 'amount', 'sber_recipient', 'in_cash_register', 'cash_register_date']


class ReceiptSerializer(serializers.ModelSerializer):
    items = ReceiptItemSerializer(many=True, read_only=True)
    payments = ReceiptPaymentSerializer(many=True, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = Receipt
        fields = ['id', 'receipt_number', 'date', 'customer_name', 'customer_phone', 'customer_email',
                  'items', 'payments', 'subtotal', 'discount', 'discount_type', 'discount_value', 'tax', 'total',
                  'payment_method', 'delivery_method', 'delivery_cost', 'status', 'notes', 'is_debt', 'debt_paid',
                  'created_by', 'created_by_username', 'created_at', 'updated_at']


class ReceiptItemInputSerializer(serializers.Serializer):
    arrival_id = serializers.IntegerField()
    product_name = serializers.CharField(max_length=255)
    serial_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    quantity = serializers.IntegerField(min_value=1, required=False, default=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    cost_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    is_accessory = serializers.BooleanField(required=False, default=False)
    is_service = serializers.BooleanField(required=False, default=False)
    supplier_id = serializers.IntegerField(required=False, allow_null=True)
    supplier_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')

    def validate_product_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Product name is required")
        return value

    def validate(self, attrs):
        attrs['serial_number'] = (attrs.get('serial_number') or '').strip()
        if attrs['serial_number']:
            attrs['quantity'] = 1
        return attrs


class ReceiptPaymentInputSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=ReceiptPayment.METHOD_CHOICES)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    sber_recipient = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    in_cash_register = serializers.BooleanField(required=False, allow_null=True, default=None)
    cash_register_date = serializers.DateTimeField(required=False, allow_null=True, default=None)


class ReceiptCreateSerializer(serializers.Serializer):
    date = serializers.DateTimeField(required=False)
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    customer_email = serializers.EmailField(required=False, allow_blank=True, default='')
    items = ReceiptItemInputSerializer(many=True)
    payments = ReceiptPaymentInputSerializer(many=True, required=False, default=list)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True)
    discount_type = serializers.ChoiceField(choices=Receipt.DISCOUNT_TYPE_CHOICES, required=False, allow_blank=True, default='')
    discount_value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00'))
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=Decimal('0.00'))
    total = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Receipt.PAYMENT_METHOD_CHOICES, required=False, default='cash')
    delivery_method = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    delivery_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    is_debt = serializers.BooleanField(required=False, default=False)

    def validate_items(self, items):
        if not items:
            raise serializers.ValidationError("A receipt needs at least one item")
        return items

    def validate_discount_value(self, value):
        if self.initial_data.get('discount_type') == 'percent' and value > 100:
            raise serializers.ValidationError("Percent discount cannot exceed 100")
        return value


class ReceiptUpdateSerializer(serializers.ModelSerializer):
    """Fields that may change after the sale"""

    class Meta:
        model = Receipt
        fields = ['customer_name', 'customer_phone', 'customer_email', 'notes', 'status']


class IncassateReceiptsSerializer(serializers.Serializer):
    receipt_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
