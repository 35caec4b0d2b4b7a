from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from .models import Order, OrderItem, Address


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'product_id', 'name', 'price', 'quantity', 'image', 'sku']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(read_only=True)
    customer_phone = serializers.CharField(read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'user', 'user_email', 'customer_name', 'customer_phone', 'items',
                  'subtotal', 'tax', 'shipping', 'discount', 'total', 'status', 'payment_status',
                  'payment_method', 'delivery_date', 'delivery_interval', 'shipping_address', 'notes',
                  'tracking_number', 'estimated_delivery', 'pickup_point_address', 'call_request',
                  'call_status', 'created_at', 'updated_at']
        read_only_fields = fields


class OrderItemInputSerializer(serializers.ModelSerializer):
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    quantity = serializers.IntegerField(min_value=1, default=1)

    class Meta:
        model = OrderItem
        fields = ['product_id', 'name', 'price', 'quantity', 'image', 'sku']


class OrderCreateSerializer(serializers.ModelSerializer):
    """A storefront checkout; totals are computed from the items"""
    items = OrderItemInputSerializer(many=True)
    shipping = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'),
                                        required=False, default=Decimal('0.00'))

    class Meta:
        model = Order
        fields = ['items', 'shipping', 'payment_method', 'delivery_date', 'delivery_interval',
                  'shipping_address', 'notes', 'pickup_point_address']

    def validate_items(self, items):
        if not items:
            raise serializers.ValidationError("An order needs at least one item")
        return items

    def validate_shipping_address(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Shipping address must be an object")
        return value

    @transaction.atomic
    def create(self, validated_data):
        items = validated_data.pop('items')
        subtotal = sum((item['price'] * item['quantity'] for item in items), Decimal('0.00'))
        order = Order.objects.create(
            subtotal=subtotal,
            total=subtotal + validated_data['shipping'],
            status='pending',
            **validated_data
        )
        OrderItem.objects.bulk_create([OrderItem(order=order, **item) for item in items])
        return order


class OrderBulkStatusSerializer(serializers.Serializer):
    order_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class OrderBulkDeleteSerializer(serializers.Serializer):
    order_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class OrderStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ['status', 'tracking_number', 'estimated_delivery', 'pickup_point_address']


class CallStatusSerializer(serializers.Serializer):
    called = serializers.BooleanField()


class AddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = Address
        fields = ['address_id', 'name', 'address', 'city', 'state', 'zip_code', 'country', 'apartment',
                  'entrance', 'floor', 'comment', 'is_default', 'created_at']
        read_only_fields = ['address_id', 'created_at']

    def validate_address(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Address is required")
        return value
