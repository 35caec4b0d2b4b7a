from decimal import Decimal

from rest_framework import serializers

from .models import Arrival, ArrivalItem


class ArrivalItemSerializer(serializers.ModelSerializer):
    serial_numbers = serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=True), required=False, default=list
    )
    quantity = serializers.IntegerField(min_value=0, required=False, default=0)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    cost_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    line_cost = serializers.SerializerMethodField()

    class Meta:
        model = ArrivalItem
        fields = ['id', 'product_id', 'product_name', 'quantity', 'serial_numbers', 'barcode', 'price',
                  'cost_price', 'is_accessory', 'is_service', 'line_cost']
        read_only_fields = ['id']

    def get_line_cost(self, obj):
        return str(obj.get_line_cost())

    def validate_product_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Product name is required")
        return value

    def validate_serial_numbers(self, value):
        serials = [s.strip() for s in value if s and s.strip()]
        duplicates = sorted({s for s in serials if serials.count(s) > 1})
        if duplicates:
            raise serializers.ValidationError(f"Duplicate serial numbers: {', '.join(duplicates)}")
        return serials

    def validate(self, attrs):
        price = attrs.get('price', Decimal('0.00'))
        cost_price = attrs.get('cost_price', Decimal('0.00'))
        if not attrs.get('is_service') and price < cost_price:
            raise serializers.ValidationError({
                'price': f"Selling price {price} is lower than cost price {cost_price}"
            })
        serials = attrs.get('serial_numbers') or []
        if serials:
            # Serialized goods: one unit per serial number
            attrs['quantity'] = len(serials)
        return attrs


class ArrivalSerializer(serializers.ModelSerializer):
    items = ArrivalItemSerializer(many=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    debt_id = serializers.SerializerMethodField()

    class Meta:
        model = Arrival
        fields = ['id', 'date', 'supplier', 'supplier_name', 'notes', 'total_quantity', 'total_value',
                  'items', 'debt_id', 'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = ['total_quantity', 'total_value', 'created_by', 'created_at', 'updated_at']

    def get_debt_id(self, obj):
        debt = getattr(obj, 'debt', None)
        return debt.debt_id if debt else None

    def validate_items(self, items):
        if not items:
            raise serializers.ValidationError("An arrival needs at least one item")

        seen = set()
        duplicates = set()
        for item in items:
            for serial in item.get('serial_numbers') or []:
                if serial in seen:
                    duplicates.add(serial)
                seen.add(serial)
        if duplicates:
            raise serializers.ValidationError(
                f"Serial numbers repeated within the arrival: {', '.join(sorted(duplicates))}"
            )

        if seen:
            other_items = ArrivalItem.objects.all()
            if self.instance is not None:
                other_items = other_items.exclude(arrival=self.instance)
            taken = set()
            for serials in other_items.values_list('serial_numbers', flat=True):
                taken.update(serials or [])
            clashes = sorted(seen & taken)
            if clashes:
                raise serializers.ValidationError(
                    f"Serial numbers already registered in another arrival: {', '.join(clashes)}"
                )
        return items

    def validate(self, attrs):
        supplier = attrs.get('supplier')
        if supplier and not attrs.get('supplier_name'):
            attrs['supplier_name'] = supplier.name
        return attrs

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        arrival = Arrival.objects.create(**validated_data)
        for item_data in items_data:
            ArrivalItem.objects.create(arrival=arrival, **item_data)
        arrival.recalculate_totals()
        return arrival

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if items_data is not None:
            instance.items.all().delete()
            for item_data in items_data:
                ArrivalItem.objects.create(arrival=instance, **item_data)
        instance.recalculate_totals()
        return instance
