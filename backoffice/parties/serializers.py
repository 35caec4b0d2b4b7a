from decimal import Decimal

from rest_framework import serializers
from .models import Supplier, ClientDebt


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'name', 'contact_person', 'phone', 'email', 'address', 'inn', 'status', 'notes',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Supplier name is required")
        return value


class ClientDebtSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))

    class Meta:
        model = ClientDebt
        fields = ['id', 'debt_id', 'client_name', 'amount', 'paid_amount', 'remaining_amount', 'date',
                  'due_date', 'status', 'notes', 'is_debt', 'debt_paid', 'created_by', 'created_by_username',
                  'created_at', 'updated_at']
        read_only_fields = ['debt_id', 'paid_amount', 'remaining_amount', 'date', 'status', 'is_debt',
                            'debt_paid', 'created_by', 'created_at', 'updated_at']

    def validate_client_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Client name is required")
        return value


class ClientDebtPaymentSerializer(serializers.Serializer):
    payment_amount = serializers.DecimalField(max_digits=10, decimal_places=2)

    def validate_payment_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Payment amount must be greater than zero")
        remaining = self.context['client_debt'].remaining_amount
        if value > remaining:
            raise serializers.ValidationError(f"Payment amount exceeds the remaining debt ({remaining})")
        return value
