from rest_framework import serializers
from .models import Debt, DebtItem


class DebtItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = DebtItem
        fields = ['id', 'product_id', 'product_name', 'quantity', 'price', 'cost_price', 'is_accessory',
                  'is_service', 'serial_numbers', 'barcode']


class DebtSerializer(serializers.ModelSerializer):
    items = DebtItemSerializer(many=True, read_only=True)
    arrival_id = serializers.IntegerField(source='arrival.id', read_only=True, allow_null=True)

    class Meta:
        model = Debt
        fields = ['id', 'debt_id', 'arrival_id', 'supplier', 'supplier_name', 'amount', 'paid_amount',
                  'remaining_amount', 'date', 'due_date', 'status', 'notes', 'items', 'created_by',
                  'created_at', 'updated_at']
        read_only_fields = ['debt_id', 'supplier', 'supplier_name', 'amount', 'paid_amount', 'remaining_amount',
                            'date', 'status', 'created_by', 'created_at', 'updated_at']


class DebtPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Payment amount must be a positive number")
        remaining = self.context['debt'].remaining_amount
        if value > remaining:
            raise serializers.ValidationError(f"Payment amount exceeds the remaining debt ({remaining})")
        return value
