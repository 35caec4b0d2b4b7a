import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backoffice.core.permissions import IsBackofficeStaff, is_admin, is_backoffice_staff
from backoffice.core.serializers import UserSerializer
from backoffice.core.utils import create_audit_log, paginated_response
from .filters import OrderFilter
from .models import Order, Address
from .serializers import (
    OrderSerializer, OrderCreateSerializer, OrderBulkStatusSerializer, OrderBulkDeleteSerializer,
    OrderStatusSerializer, CallStatusSerializer, AddressSerializer
)

User = get_user_model()
logger = logging.getLogger(__name__)


def order_queryset():
    return Order.objects.select_related('user').prefetch_related('items')


def can_access_user(request, user_id):
    return request.user.id == user_id or is_backoffice_staff(request.user)


def forbidden():
    return Response({'error': 'You do not have access to this resource'}, status=status.HTTP_403_FORBIDDEN)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list(request):
    """All storefront orders for staff, or place a new order as the current user"""
    if request.method == 'GET':
        if not is_backoffice_staff(request.user):
            return forbidden()
        filterset = OrderFilter(request.query_params, queryset=order_queryset().order_by('-created_at'))
        return paginated_response(request, filterset.qs, OrderSerializer)

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order = serializer.save(user=request.user)
    create_audit_log(
        request=request, action='create', model_name='Order', object_id=order.id,
        object_name=order.customer_name or None, object_reference=order.order_number,
        changes={'total': str(order.total), 'items': order.items.count()}
    )
    logger.info(f"Order {order.order_number} placed by user {request.user.id}: {order.total}")
    return Response(OrderSerializer(order_queryset().get(pk=order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def order_bulk_update_status(request):
    """Move several orders to one status at once"""
    if not is_admin(request.user):
        return Response({'error': 'Only administrators can change orders in bulk'}, status=status.HTTP_403_FORBIDDEN)
    serializer = OrderBulkStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order_ids = serializer.validated_data['order_ids']
    new_status = serializer.validated_data['status']
    modified = Order.objects.filter(id__in=order_ids).exclude(status=new_status).update(
        status=new_status, updated_at=timezone.now()
    )
    create_audit_log(
        request=request, action='order_status', model_name='Order', object_id='*',
        changes={'order_ids': order_ids, 'status': new_status, 'modified_count': modified}
    )
    logger.info(f"Bulk status {new_status} applied to {modified} orders")
    return Response({'modified_count': modified})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def order_bulk_delete(request):
    """Delete several orders together with their items"""
    if not is_admin(request.user):
        return Response({'error': 'Only administrators can delete orders in bulk'}, status=status.HTTP_403_FORBIDDEN)
    serializer = OrderBulkDeleteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order_ids = serializer.validated_data['order_ids']
    with transaction.atomic():
        orders = Order.objects.filter(id__in=order_ids)
        deleted = orders.count()
        orders.delete()
    create_audit_log(
        request=request, action='delete', model_name='Order', object_id='*',
        changes={'order_ids': order_ids, 'deleted_count': deleted}
    )
    logger.info(f"Bulk deleted {deleted} orders")
    return Response({'deleted_count': deleted})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    """Orders of the current user"""
    orders = order_queryset().filter(user=request.user).order_by('-created_at')
    return Response(OrderSerializer(orders, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    order = get_object_or_404(order_queryset(), pk=pk)
    if order.user_id != request.user.id and not is_backoffice_staff(request.user):
        return forbidden()
    return Response(OrderSerializer(order).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def order_status(request, pk):
    """Move an order through fulfilment, optionally with tracking details"""
    order = get_object_or_404(order_queryset(), pk=pk)
    previous_status = order.status
    serializer = OrderStatusSerializer(order, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order = serializer.save()
    changes = {k: str(v) for k, v in serializer.validated_data.items()}
    if 'status' in serializer.validated_data:
        changes['previous_status'] = previous_status
    create_audit_log(
        request=request, action='order_status', model_name='Order', object_id=order.id,
        object_name=order.customer_name or None, object_reference=order.order_number, changes=changes
    )
    logger.info(f"Order {order.order_number} status {previous_status} -> {order.status}")
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_call_request(request, pk):
    """The customer asks to be called back about the order"""
    order = get_object_or_404(order_queryset(), pk=pk)
    if order.user_id != request.user.id and not is_backoffice_staff(request.user):
        return forbidden()
    order.call_request = True
    order.call_status = 'requested'
    order.save(update_fields=['call_request', 'call_status', 'updated_at'])
    return Response(OrderSerializer(order).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def order_call_status(request, pk):
    """Record whether the requested call took place"""
    order = get_object_or_404(order_queryset(), pk=pk)
    serializer = CallStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order.call_request = False
    order.call_status = 'completed' if serializer.validated_data['called'] else 'not_completed'
    order.save(update_fields=['call_request', 'call_status', 'updated_at'])
    return Response(OrderSerializer(order).data)


def revenue_and_profit(queryset):
    totals = queryset.aggregate(revenue=Sum('total'), shipping=Sum('shipping'))
    revenue = totals['revenue'] or Decimal('0.00')
    return revenue, revenue - (totals['shipping'] or Decimal('0.00'))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def order_stats(request):
    """Order counts per status plus today's and this month's revenue"""
    by_status = {key: 0 for key, _ in Order.STATUS_CHOICES}
    for row in Order.objects.values('status').annotate(count=Count('id')).order_by('status'):
        by_status[row['status']] = row['count']

    today = timezone.localdate()
    live = Order.objects.exclude(status='cancelled')
    today_revenue, today_profit = revenue_and_profit(live.filter(created_at__date=today))
    month_revenue, month_profit = revenue_and_profit(
        live.filter(created_at__date__gte=today.replace(day=1), created_at__date__lte=today)
    )
    return Response({
        'total_orders': sum(by_status.values()),
        'by_status': by_status,
        'today_revenue': today_revenue,
        'today_profit': today_profit,
        'month_revenue': month_revenue,
        'month_profit': month_profit,
    })


def unset_other_defaults(user, keep):
    Address.objects.filter(user=user, is_default=True).exclude(pk=keep.pk).update(is_default=False)


def duplicate_address(user, text, exclude=None):
    queryset = Address.objects.filter(user=user, address__iexact=text)
    if exclude is not None:
        queryset = queryset.exclude(pk=exclude.pk)
    return queryset.exists()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def address_list_create(request, user_id):
    """Saved delivery addresses of a user"""
    if not can_access_user(request, user_id):
        return forbidden()
    user = get_object_or_404(User, pk=user_id)

    if request.method == 'GET':
        return Response(AddressSerializer(user.addresses.all(), many=True).data)

    serializer = AddressSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if duplicate_address(user, serializer.validated_data['address']):
        return Response({'error': 'This address is already saved'}, status=status.HTTP_409_CONFLICT)

    with transaction.atomic():
        count = user.addresses.count()
        name = serializer.validated_data.get('name') or f"Address {count + 1}"
        # The first address is always the default one
        is_default = serializer.validated_data.get('is_default', False) or count == 0
        address = serializer.save(user=user, name=name, is_default=is_default)
        if address.is_default:
            unset_other_defaults(user, address)
    return Response(AddressSerializer(address).data, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def address_detail(request, user_id, address_id):
    if not can_access_user(request, user_id):
        return forbidden()
    address = get_object_or_404(Address, user_id=user_id, address_id=address_id)

    if request.method == 'DELETE':
        with transaction.atomic():
            was_default = address.is_default
            address.delete()
            if was_default:
                replacement = Address.objects.filter(user_id=user_id).order_by('created_at').first()
                if replacement:
                    replacement.is_default = True
                    replacement.save(update_fields=['is_default'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = AddressSerializer(address, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_text = serializer.validated_data.get('address')
    if new_text and duplicate_address(address.user, new_text, exclude=address):
        return Response({'error': 'This address is already saved'}, status=status.HTTP_409_CONFLICT)

    with transaction.atomic():
        address = serializer.save()
        if address.is_default:
            unset_other_defaults(address.user, address)
    return Response(AddressSerializer(address).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_profile(request, user_id):
    """User info with saved addresses, order history and order stats"""
    if not can_access_user(request, user_id):
        return forbidden()
    user = get_object_or_404(User, pk=user_id)
    orders = order_queryset().filter(user=user).order_by('-created_at')

    orders_count = orders.count()
    total_spent = orders.aggregate(total=Sum('total'))['total'] or Decimal('0.00')
    average = round(total_spent / orders_count) if orders_count else 0
    return Response({
        'user': UserSerializer(user).data,
        'addresses': AddressSerializer(user.addresses.all(), many=True).data,
        'orders': OrderSerializer(orders, many=True).data,
        'stats': {
            'orders_count': orders_count,
            'total_spent': total_spent,
            'average_order_value': average,
            'active_orders': orders.filter(status__in=Order.ACTIVE_STATUSES).count(),
        },
    })
