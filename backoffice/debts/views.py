import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsBackofficeStaff
from backoffice.core.utils import create_audit_log
from . import services
from .filters import DebtFilter
from .models import Debt
from .serializers import DebtSerializer, DebtPaymentSerializer

logger = logging.getLogger(__name__)


def get_debt(debt_ref):
    """Debts are addressed by primary key or by their public ``debt_id``"""
    queryset = Debt.objects.select_related('arrival', 'supplier').prefetch_related('items')
    if debt_ref.isdigit():
        return get_object_or_404(queryset, pk=int(debt_ref))
    return get_object_or_404(queryset, debt_id=debt_ref)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def debt_list(request):
    """List supplier debts, newest first"""
    queryset = Debt.objects.select_related('arrival').prefetch_related('items').order_by('-date', '-created_at')
    filterset = DebtFilter(request.query_params, queryset=queryset)
    serializer = DebtSerializer(filterset.qs, many=True)
    return Response(serializer.data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def debt_detail(request, debt_ref):
    """Retrieve a debt, edit its notes or due date, or delete it"""
    debt = get_debt(debt_ref)

    if request.method == 'GET':
        return Response(DebtSerializer(debt).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DebtSerializer(debt, data=request.data, partial=True)
        if serializer.is_valid():
            debt = serializer.save()
            create_audit_log(
                request=request, action='update', model_name='Debt', object_id=debt.id,
                object_name=debt.supplier_name, object_reference=debt.debt_id,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(DebtSerializer(debt).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        debt_pk, debt_id, supplier_name = debt.id, debt.debt_id, debt.supplier_name
        refund = services.delete_debt(debt, user=request.user)
        create_audit_log(
            request=request, action='debt_delete', model_name='Debt', object_id=debt_pk,
            object_name=supplier_name, object_reference=debt_id, changes={'refund_amount': str(refund)}
        )
        return Response({'message': 'Debt deleted', 'refund_amount': refund})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def debt_pay(request, debt_ref):
    """Pay a supplier debt (fully or partly) from the cash register"""
    debt = get_debt(debt_ref)
    serializer = DebtPaymentSerializer(data=request.data, context={'debt': debt})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    amount = serializer.validated_data['amount']
    debt, payment = services.pay_debt(debt, amount, user=request.user)
    create_audit_log(
        request=request, action='debt_payment', model_name='Debt', object_id=debt.id,
        object_name=debt.supplier_name, object_reference=debt.debt_id,
        changes={'amount': str(amount), 'remaining_amount': str(debt.remaining_amount),
                 'payment_id': payment.payment_id}
    )
    debt = get_debt(str(debt.pk))
    return Response(DebtSerializer(debt).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def debt_stats_summary(request):
    """Totals over all supplier debts"""
    return Response(services.debt_summary())
