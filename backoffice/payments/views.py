import logging
from datetime import datetime

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsBackofficeStaff, can_edit_records, is_admin, user_role
from backoffice.core.utils import create_audit_log, paginated_response
from . import services
from .filters import PaymentFilter
from .models import Payment
from .serializers import PaymentSerializer, IncassationSerializer, IncassatedMarkSerializer

logger = logging.getLogger(__name__)


def get_payment(payment_ref):
    """Payments are addressed by primary key or by their public ``payment_id``"""
    if payment_ref.isdigit():
        return get_object_or_404(Payment, pk=int(payment_ref))
    return get_object_or_404(Payment, payment_id=payment_ref)


def edit_forbidden():
    return Response(
        {'error': 'Only an administrator or accountant can change ledger entries'},
        status=status.HTTP_403_FORBIDDEN
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def payment_list_create(request):
    """List ledger entries or post a manual one"""
    if request.method == 'GET':
        queryset = Payment.objects.select_related('receipt', 'created_by').order_by('-date', '-id')
        filterset = PaymentFilter(request.query_params, queryset=queryset)
        response = paginated_response(request, filterset.qs, PaymentSerializer, default_page_size=50)
        response['X-Can-Edit'] = 'true' if can_edit_records(request.user) else 'false'
        response['X-User-Role'] = user_role(request.user) or ''
        return response

    serializer = PaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    payment = services.post_payment(user=request.user, **data)
    create_audit_log(
        request=request, action='create', model_name='Payment', object_id=payment.id,
        object_name=payment.description[:200], object_reference=payment.payment_id,
        changes={'amount': str(payment.amount), 'type': payment.type}
    )
    return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def payment_detail(request, payment_ref):
    """Retrieve, update or delete a ledger entry"""
    payment = get_payment(payment_ref)

    if request.method == 'GET':
        return Response(PaymentSerializer(payment).data)

    if not can_edit_records(request.user):
        return edit_forbidden()

    if request.method in ('PUT', 'PATCH'):
        if request.data.get('status') == 'incassated':
            # Marking as collected never rewrites the rest of the entry
            mark = IncassatedMarkSerializer(data=request.data)
            if not mark.is_valid():
                return Response(mark.errors, status=status.HTTP_400_BAD_REQUEST)
            payment.status = 'incassated'
            payment.incassation_date = mark.validated_data.get('incassation_date') or timezone.now()
            payment.save(update_fields=['status', 'incassation_date', 'updated_at'])
            payment.refresh_from_db()
            create_audit_log(
                request=request, action='incassation', model_name='Payment', object_id=payment.id,
                object_reference=payment.payment_id, changes={'status': 'incassated'}
            )
            return Response(PaymentSerializer(payment).data)

        serializer = PaymentSerializer(payment, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        payment = serializer.save()
        create_audit_log(
            request=request, action='update', model_name='Payment', object_id=payment.id,
            object_name=payment.description[:200], object_reference=payment.payment_id,
            changes={k: str(v) for k, v in serializer.validated_data.items()}
        )
        return Response(PaymentSerializer(payment).data)

    # DELETE
    payment_pk, public_id, amount = payment.id, payment.payment_id, payment.amount
    payment.delete()
    logger.info(f"Payment {public_id} ({amount}) deleted")
    create_audit_log(
        request=request, action='delete', model_name='Payment', object_id=payment_pk,
        object_reference=public_id, changes={'amount': str(amount)}
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def payment_clear_all(request):
    """Delete the whole ledger (admin only)"""
    if not is_admin(request.user):
        return Response({'error': 'Only an administrator can clear the ledger'}, status=status.HTTP_403_FORBIDDEN)
    count = Payment.objects.count()
    Payment.objects.all().delete()
    logger.warning(f"Cleared {count} payments")
    create_audit_log(
        request=request, action='clear_all', model_name='Payment', object_id='*',
        changes={'deleted_count': count}
    )
    return Response({'message': 'All payments were deleted', 'deleted_count': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def cash_register(request):
    """Cash currently in the register"""
    return Response({'cash_in_register': services.cash_in_register()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def incassation(request):
    """Collect cash from the register, all of it or a given amount"""
    serializer = IncassationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    mode = serializer.validated_data['type']
    entry, marked = services.incassate(request.user, mode=mode, amount=serializer.validated_data.get('amount'))
    create_audit_log(
        request=request, action='incassation', model_name='Payment', object_id=entry.id,
        object_reference=entry.payment_id,
        changes={'type': mode, 'amount': str(abs(entry.amount)), 'marked_entries': marked}
    )
    return Response({
        'message': 'Incassation completed',
        'payment': PaymentSerializer(entry).data,
        'amount': abs(entry.amount),
        'marked_count': marked,
        'cash_in_register': services.cash_in_register(),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def monthly_summary(request):
    """Ledger totals for ``?month=YYYY-MM`` (current month by default)"""
    month = request.query_params.get('month')
    if month:
        try:
            parsed = datetime.strptime(month, '%Y-%m')
        except ValueError:
            return Response({'error': 'month must be in YYYY-MM format'}, status=status.HTTP_400_BAD_REQUEST)
        year, month_number = parsed.year, parsed.month
    else:
        today = timezone.localdate()
        year, month_number = today.year, today.month
    return Response(services.monthly_summary(year, month_number))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def payment_stats_summary(request):
    """Income against expense, optionally within a date range"""
    return Response(services.stats_summary(
        request.query_params.get('date_from') or None,
        request.query_params.get('date_to') or None,
    ))
