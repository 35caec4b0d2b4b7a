from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    payment_id = serializers.CharField(max_length=64, required=False)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    receipt_number = serializers.CharField(source='receipt.receipt_number', read_only=True, allow_null=True)

    class Meta:
        model = Payment
        fields = ['id', 'payment_id', 'type', 'amount', 'description', 'date', 'supplier', 'supplier_ref',
                  'order_id', 'in_cash_register', 'cash_register_date', 'notes', 'category', 'payment_method',
                  'api_type', 'status', 'incassation_date', 'admin_name', 'arrival', 'debt', 'client_debt',
                  'receipt', 'receipt_number', 'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def validate_payment_id(self, value):
        value = value.strip()
        queryset = Payment.objects.filter(payment_id=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A payment with this id already exists")
        return value

    def validate(self, attrs):
        # Expenses are stored negative
        amount = attrs.get('amount')
        api_type = attrs.get('api_type', getattr(self.instance, 'api_type', ''))
        if amount is not None and api_type == 'expense' and amount > 0:
            attrs['amount'] = -amount
        return attrs


class IncassationSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[('all', 'All'), ('partial', 'Partial')], default='all')
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['type'] == 'partial':
            amount = attrs.get('amount')
            if amount is None or amount <= 0:
                raise serializers.ValidationError({'amount': 'Incassation amount must be greater than zero'})
        return attrs


class IncassatedMarkSerializer(serializers.Serializer):
    """Flag a single entry as collected from the register"""
    status = serializers.ChoiceField(choices=[('incassated', 'Incassated')])
    incassation_date = serializers.DateTimeField(required=False, allow_null=True)
