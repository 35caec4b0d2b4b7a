import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.events import publish_event, CLIENT_DEBT_CREATED, CLIENT_DEBT_PAID
from backoffice.core.exceptions import ConflictError, PaymentError
from backoffice.core.permissions import IsBackofficeStaff
from backoffice.core.utils import create_audit_log
from backoffice.payments.models import Payment
from backoffice.payments.services import post_payment
from .filters import SupplierFilter, ClientDebtFilter
from .models import Supplier, ClientDebt
from .serializers import SupplierSerializer, ClientDebtSerializer, ClientDebtPaymentSerializer

logger = logging.getLogger(__name__)


def client_debt_description(record):
    description = f'DEBT: "{record.client_name}"'
    if record.notes:
        description += f' ({record.notes})'
    return description


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Supplier.objects.all().order_by('name')
        filterset = SupplierFilter(request.query_params, queryset=queryset)
        serializer = SupplierSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='Supplier', object_id=supplier.id,
                object_name=supplier.name
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        serializer = SupplierSerializer(supplier)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request, action='update', model_name='Supplier', object_id=supplier.id,
                object_name=supplier.name, changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        from backoffice.debts.models import Debt

        unpaid = Debt.objects.filter(supplier=supplier, remaining_amount__gt=0)
        if unpaid.exists():
            raise ConflictError(
                f'Supplier "{supplier.name}" still has unpaid debts',
                details=[f"{debt.debt_id}: {debt.remaining_amount}" for debt in unpaid]
            )
        create_audit_log(
            request=request, action='delete', model_name='Supplier', object_id=supplier.id,
            object_name=supplier.name
        )
        supplier.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Client debt views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def client_debt_list_create(request):
    """List client debts or record a new one"""
    if request.method == 'GET':
        queryset = ClientDebt.objects.filter(is_debt=True).select_related('created_by').order_by('-date')
        filterset = ClientDebtFilter(request.query_params, queryset=queryset)
        serializer = ClientDebtSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = ClientDebtSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        record = serializer.save(created_by=request.user, date=timezone.now())
        # The client took goods on credit: shown as "debt" in the register column
        post_payment(
            user=request.user,
            type='client_record',
            amount=record.amount,
            api_type='expense',
            in_cash_register='debt',
            cash_register_date=record.date,
            supplier='Debt',
            category='Client debt',
            description=client_debt_description(record),
            date=record.date,
            client_debt=record,
        )

    logger.info(f"Client debt {record.debt_id} created for {record.client_name}: {record.amount}")
    create_audit_log(
        request=request, action='client_debt_create', model_name='ClientDebt', object_id=record.id,
        object_name=record.client_name, object_reference=record.debt_id,
        changes={'amount': str(record.amount)}
    )
    publish_event(CLIENT_DEBT_CREATED, {
        'debt_id': record.debt_id, 'client_name': record.client_name, 'amount': str(record.amount)
    })
    return Response(ClientDebtSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def client_debt_detail(request, debt_id):
    """Retrieve a client debt, or delete it together with its ledger entries"""
    record = get_object_or_404(ClientDebt, debt_id=debt_id)

    if request.method == 'GET':
        return Response(ClientDebtSerializer(record).data)

    with transaction.atomic():
        deleted_payments, _ = Payment.objects.filter(client_debt=record).delete()
        create_audit_log(
            request=request, action='delete', model_name='ClientDebt', object_id=record.id,
            object_name=record.client_name, object_reference=record.debt_id,
            changes={'amount': str(record.amount), 'paid_amount': str(record.paid_amount),
                     'deleted_payments': deleted_payments}
        )
        record.delete()

    logger.info(f"Client debt {debt_id} deleted with {deleted_payments} payments")
    return Response({'message': 'Client debt deleted', 'deleted_payments': deleted_payments})


def take_client_payment(record, amount, user=None):
    """Add a client payment under a row lock and post it into the register"""
    now = timezone.now()
    with transaction.atomic():
        record = ClientDebt.objects.select_for_update().get(pk=record.pk)
        # Re-checked under the lock
        if amount > record.remaining_amount:
            raise PaymentError(f"Payment amount exceeds the remaining debt ({record.remaining_amount})")
        record.paid_amount += amount
        record.save()

        post_payment(
            user=user,
            type='cash',
            amount=amount,
            api_type='income',
            payment_method='cash',
            in_cash_register='yes',
            cash_register_date=now,
            supplier='Debt',
            category='Client debt payment',
            description=client_debt_description(record),
            date=now,
            client_debt=record,
        )
        # The original credit entry now counts as settled cash
        Payment.objects.filter(client_debt=record, type='client_record').update(type='cash')

    logger.info(f"Client debt {record.debt_id} paid {amount}, remaining {record.remaining_amount}")
    return record


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def client_debt_pay(request, debt_id):
    """Take a (partial) payment from the client into the cash register"""
    record = get_object_or_404(ClientDebt, debt_id=debt_id)
    serializer = ClientDebtPaymentSerializer(data=request.data, context={'client_debt': record})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    amount = serializer.validated_data['payment_amount']
    record = take_client_payment(record, amount, user=request.user)
    create_audit_log(
        request=request, action='client_debt_payment', model_name='ClientDebt', object_id=record.id,
        object_name=record.client_name, object_reference=record.debt_id,
        changes={'payment_amount': str(amount), 'remaining_amount': str(record.remaining_amount)}
    )
    publish_event(CLIENT_DEBT_PAID, {
        'debt_id': record.debt_id, 'amount': str(amount), 'remaining_amount': str(record.remaining_amount)
    })
    return Response(ClientDebtSerializer(record).data)
