"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backoffice.arrivals.models import Arrival, ArrivalItem
from backoffice.orders.models import Order, OrderItem
from backoffice.parties.models import Supplier, ClientDebt
from backoffice.payments.models import Payment
from backoffice.receipts.models import Receipt, ReceiptItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='admin', is_staff=False, is_superuser=False):
        """Create a test user; back-office admin unless another role is given"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_supplier(name=None, phone=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(100000000, 999999999)}'
        return Supplier.objects.create(name=name, phone=phone)

    @staticmethod
    def create_arrival(user=None, supplier=None, date=None, items=None):
        """
        Create an arrival with items

        ``items`` is a list of dicts with ArrivalItem fields; one phone with
        two serial numbers is created when omitted.
        """
        if items is None:
            items = [{
                'product_name': 'Phone X',
                'serial_numbers': ['SN-001', 'SN-002'],
                'quantity': 2,
                'price': Decimal('150.00'),
                'cost_price': Decimal('100.00'),
            }]
        arrival = Arrival.objects.create(
            date=date or timezone.localdate(),
            supplier=supplier,
            supplier_name=supplier.name if supplier else '',
            created_by=user
        )
        for item in items:
            ArrivalItem.objects.create(arrival=arrival, **item)
        arrival.recalculate_totals()
        return arrival

    @staticmethod
    def create_receipt(arrival, product_name='Phone X', serial_number='', quantity=1, price=None,
                       cost_price=None, status='completed', receipt_number=None, user=None, is_accessory=False):
        """Create a one-line receipt directly, without validation or ledger entries"""
        price = price if price is not None else Decimal('150.00')
        cost_price = cost_price if cost_price is not None else Decimal('100.00')
        total = price * quantity
        receipt = Receipt.objects.create(
            receipt_number=receipt_number or f'T-{TestDataFactory.random_string(8)}',
            subtotal=total,
            total=total,
            status=status,
            created_by=user
        )
        ReceiptItem.objects.create(
            receipt=receipt,
            arrival=arrival,
            product_name=product_name,
            serial_number=serial_number,
            quantity=quantity,
            price=price,
            cost_price=cost_price,
            total=total,
            is_accessory=is_accessory,
            supplier=arrival.supplier if arrival else None,
            supplier_name=arrival.supplier_name if arrival else ''
        )
        return receipt

    @staticmethod
    def create_client_debt(client_name=None, amount=None, user=None):
        """Create a test client debt"""
        return ClientDebt.objects.create(
            client_name=client_name or f'Client_{TestDataFactory.random_string(6)}',
            amount=amount if amount is not None else Decimal('500.00'),
            created_by=user
        )

    @staticmethod
    def create_payment(amount=None, api_type='income', type='cash', in_cash_register='yes', category='', user=None, **extra):
        """Create a ledger entry directly, without side effects"""
        if amount is None:
            amount = Decimal('100.00')
        now = timezone.now()
        return Payment.objects.create(
            type=type,
            amount=amount,
            api_type=api_type,
            description=extra.pop('description', f'Test payment {TestDataFactory.random_string(4)}'),
            in_cash_register=in_cash_register,
            cash_register_date=now if in_cash_register == 'yes' else None,
            category=category,
            date=extra.pop('date', now),
            created_by=user,
            **extra
        )

    @staticmethod
    def create_order(user=None, total=None, shipping=None, status='pending', items=1):
        """Create a storefront order with ``items`` lines"""
        total = total if total is not None else Decimal('1000.00')
        order = Order.objects.create(
            user=user,
            subtotal=total,
            shipping=shipping if shipping is not None else Decimal('0.00'),
            total=total,
            status=status,
            shipping_address={'first_name': 'Ivan', 'last_name': 'Petrov', 'phone': '79990001122'}
        )
        for index in range(items):
            OrderItem.objects.create(order=order, name=f'Item {index + 1}', price=Decimal('100.00'), quantity=1)
        return order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
