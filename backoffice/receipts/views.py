import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsBackofficeStaff, can_edit_records
from backoffice.core.utils import create_audit_log, paginated_response
from . import services
from .filters import ReceiptFilter
from .models import Receipt
from .serializers import (
    ReceiptSerializer, ReceiptCreateSerializer, ReceiptUpdateSerializer, IncassateReceiptsSerializer
)

logger = logging.getLogger(__name__)


def receipt_queryset():
    return Receipt.objects.select_related('created_by').prefetch_related('items', 'payments')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def receipt_list_create(request):
    """List receipts or record a sale"""
    if request.method == 'GET':
        queryset = receipt_queryset().order_by('-date', '-id')
        filterset = ReceiptFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs, ReceiptSerializer)

    serializer = ReceiptCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    receipt = services.create_receipt(serializer.validated_data, user=request.user)
    create_audit_log(
        request=request, action='receipt_create', model_name='Receipt', object_id=receipt.id,
        object_name=receipt.customer_name or None, object_reference=receipt.receipt_number,
        changes={'total': str(receipt.total), 'is_debt': receipt.is_debt}
    )
    return Response(ReceiptSerializer(receipt_queryset().get(pk=receipt.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def receipt_detail(request, pk):
    """Retrieve, edit (customer data, notes, status) or delete a receipt"""
    receipt = get_object_or_404(receipt_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(ReceiptSerializer(receipt).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ReceiptUpdateSerializer(receipt, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        previous_status = receipt.status
        receipt = services.update_receipt(receipt, serializer.validated_data)
        action = 'receipt_cancel' if receipt.status == 'cancelled' and previous_status != 'cancelled' else 'update'
        create_audit_log(
            request=request, action=action, model_name='Receipt', object_id=receipt.id,
            object_name=receipt.customer_name or None, object_reference=receipt.receipt_number,
            changes={k: str(v) for k, v in serializer.validated_data.items()}
        )
        return Response(ReceiptSerializer(receipt_queryset().get(pk=receipt.pk)).data)

    # DELETE
    receipt_id, receipt_number = receipt.id, receipt.receipt_number
    was_live = receipt.status != 'cancelled'
    if was_live:
        services.release_receipt(receipt, deleted=True)
    receipt.delete()
    logger.info(f"Receipt {receipt_number} deleted")
    create_audit_log(
        request=request, action='delete', model_name='Receipt', object_id=receipt_id,
        object_reference=receipt_number
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def receipt_pay_debt(request, pk):
    """Mark a receipt sold on credit as paid"""
    receipt = get_object_or_404(receipt_queryset(), pk=pk)
    receipt = services.pay_receipt_debt(receipt)
    create_audit_log(
        request=request, action='receipt_debt_paid', model_name='Receipt', object_id=receipt.id,
        object_name=receipt.customer_name or None, object_reference=receipt.receipt_number,
        changes={'debt_paid': True}
    )
    return Response(ReceiptSerializer(receipt_queryset().get(pk=receipt.pk)).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def receipt_incassate(request):
    """Take the cash of the given receipts out of the register"""
    serializer = IncassateReceiptsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    receipt_ids = serializer.validated_data['receipt_ids']
    modified = services.incassate_receipts(receipt_ids)
    create_audit_log(
        request=request, action='incassation', model_name='Receipt', object_id='*',
        changes={'receipt_ids': receipt_ids, 'modified_count': modified}
    )
    return Response({'message': 'Cash collected from the receipts', 'modified_count': modified})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def receipt_clear_all(request):
    """Delete all receipts (admin or accountant)"""
    if not can_edit_records(request.user):
        return Response(
            {'error': 'Only an administrator or accountant can clear all records'},
            status=status.HTTP_403_FORBIDDEN
        )
    count = Receipt.objects.count()
    Receipt.objects.all().delete()
    logger.warning(f"Cleared {count} receipts")
    create_audit_log(
        request=request, action='clear_all', model_name='Receipt', object_id='*',
        changes={'deleted_count': count}
    )
    return Response({'message': 'All receipts were deleted', 'deleted_count': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def receipt_stats_summary(request):
    """Sales totals over completed receipts, optionally within a date range"""
    return Response(services.receipt_stats(
        request.query_params.get('date_from') or None,
        request.query_params.get('date_to') or None,
    ))
