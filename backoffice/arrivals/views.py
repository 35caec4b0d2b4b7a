import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsBackofficeStaff, can_edit_records
from backoffice.core.utils import create_audit_log, paginated_response
from . import services
from .filters import ArrivalFilter
from .models import Arrival
from .serializers import ArrivalSerializer

logger = logging.getLogger(__name__)


def arrival_queryset():
    return Arrival.objects.select_related('supplier', 'created_by', 'debt').prefetch_related('items')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def arrival_list_create(request):
    """List arrivals or register a new one (raises the supplier debt)"""
    if request.method == 'GET':
        queryset = arrival_queryset().order_by('-date', '-created_at')
        filterset = ArrivalFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs, ArrivalSerializer)

    serializer = ArrivalSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        arrival = serializer.save(created_by=request.user)
        debt = services.create_debt_for_arrival(arrival, user=request.user)
        services.announce_arrival_created(arrival)

    create_audit_log(
        request=request, action='arrival_create', model_name='Arrival', object_id=arrival.id,
        object_name=arrival.supplier_name or None, object_reference=debt.debt_id if debt else None,
        changes={'total_quantity': arrival.total_quantity, 'total_value': str(arrival.total_value)}
    )
    logger.info(f"Arrival {arrival.id} created: {arrival.total_quantity} units, value {arrival.total_value}")
    return Response(ArrivalSerializer(arrival_queryset().get(pk=arrival.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def arrival_detail(request, pk):
    """Retrieve, replace or delete an arrival"""
    arrival = get_object_or_404(Arrival.objects.select_related('supplier'), pk=pk)

    if request.method == 'GET':
        return Response(ArrivalSerializer(arrival_queryset().get(pk=arrival.pk)).data)

    if request.method == 'PUT':
        serializer = ArrivalSerializer(arrival, data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        conflicts = services.find_update_conflicts(arrival, serializer.validated_data['items'])
        if conflicts:
            return Response({
                'error': 'The arrival cannot be changed: these goods are already sold. '
                         'Delete the receipts first.',
                'details': conflicts,
            }, status=status.HTTP_400_BAD_REQUEST)

        old_items = list(arrival.items.all())
        with transaction.atomic():
            arrival = serializer.save()
            debt = services.sync_debt_with_arrival(arrival)
            services.announce_arrival_replaced(arrival, old_items)

        create_audit_log(
            request=request, action='arrival_update', model_name='Arrival', object_id=arrival.id,
            object_name=arrival.supplier_name or None, object_reference=debt.debt_id if debt else None,
            changes={'total_quantity': arrival.total_quantity, 'total_value': str(arrival.total_value)}
        )
        return Response(ArrivalSerializer(arrival_queryset().get(pk=arrival.pk)).data)

    # DELETE
    arrival_id = arrival.id
    supplier_name = arrival.supplier_name
    refund = services.delete_arrival(arrival, user=request.user)
    create_audit_log(
        request=request, action='arrival_delete', model_name='Arrival', object_id=arrival_id,
        object_name=supplier_name or None, changes={'refund': str(refund)}
    )
    body = {'message': 'Arrival deleted'}
    if refund > 0:
        body['refund'] = {
            'amount': refund,
            'description': f'{refund} returned to the cash register',
        }
    return Response(body)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def arrival_clear_all(request):
    """Delete all arrivals and supplier debts (admin or accountant)"""
    if not can_edit_records(request.user):
        return Response(
            {'error': 'Only an administrator or accountant can clear all records'},
            status=status.HTTP_403_FORBIDDEN
        )
    arrivals_count, debts_count = services.clear_all_arrivals()
    create_audit_log(
        request=request, action='clear_all', model_name='Arrival', object_id='*',
        changes={'deleted_arrivals': arrivals_count, 'deleted_debts': debts_count}
    )
    return Response({
        'message': 'All arrivals and their debts were deleted',
        'deleted_count': arrivals_count,
        'deleted_debts': debts_count,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def available_products_list(request):
    """Units that can still be put on a receipt"""
    products = services.available_products(request.query_params.get('search', ''))
    return Response(products)
