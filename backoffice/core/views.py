import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .models import AuditLog, UserPreference, EventLog
from .permissions import IsBackofficeStaff, is_backoffice_staff, can_edit_records, is_admin, user_role
from .serializers import (
    UserSerializer, UserCreateSerializer, AuditLogSerializer,
    UserPreferenceSerializer, EventLogSerializer
)
from .utils import create_audit_log, paginated_response

User = get_user_model()
logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user_role(user)
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Storefront registration; self-registered accounts are always customers"""
    data = request.data.copy()
    data.pop('role', None)
    serializer = UserCreateSerializer(data=data)
    if serializer.is_valid():
        user = serializer.save(role='customer')
        token = CustomTokenObtainPairSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role-derived access flags"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['role'] = user_role(user)
    user_data['is_admin'] = is_admin(user)
    user_data['is_backoffice_staff'] = is_backoffice_staff(user)
    user_data['can_edit_records'] = can_edit_records(user)
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def user_list_create(request):
    """List back-office and storefront users or create a new one"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        if request.data.get('role') not in (None, '', 'customer') and not is_admin(request.user):
            return Response({'error': 'Only administrators can assign roles'}, status=status.HTTP_403_FORBIDDEN)
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(
                request=request, action='create', model_name='User', object_id=user.id,
                object_name=user.username, changes={'role': user.role}
            )
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)

    # Staff accounts are managed by administrators only
    if is_backoffice_staff(user) and not is_admin(request.user):
        return Response({'error': 'Only administrators can change staff accounts'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        if ('role' in request.data or 'is_staff' in request.data) and not is_admin(request.user):
            return Response({'error': 'Only administrators can change roles'}, status=status.HTTP_403_FORBIDDEN)
        serializer = UserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request, action='update', model_name='User', object_id=user.id,
                object_name=user.username, changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request, action='delete', model_name='User', object_id=user.id, object_name=user.username
        )
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    # Non-staff only see their own actions
    if not is_backoffice_staff(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model_name')
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    user_filter = request.query_params.get('user')
    if user_filter:
        queryset = queryset.filter(user_id=user_filter)

    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at', '-id')
    return paginated_response(request, queryset, AuditLogSerializer, default_page_size=50)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not is_backoffice_staff(request.user) and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


# Preferences
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def preference_list(request):
    """All stored preferences of the current user as a ``{key: value}`` map"""
    preferences = UserPreference.objects.filter(user=request.user).order_by('key')
    return Response({pref.key: pref.value for pref in preferences})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def preference_detail(request, key):
    if request.method == 'GET':
        preference = get_object_or_404(UserPreference, user=request.user, key=key)
        return Response(UserPreferenceSerializer(preference).data)
    elif request.method == 'PUT':
        if 'value' not in request.data:
            return Response({'value': ['This field is required.']}, status=status.HTTP_400_BAD_REQUEST)
        preference, created = UserPreference.objects.update_or_create(
            user=request.user, key=key, defaults={'value': request.data['value']}
        )
        return Response(
            UserPreferenceSerializer(preference).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )
    else:  # DELETE
        deleted, _ = UserPreference.objects.filter(user=request.user, key=key).delete()
        if not deleted:
            return Response({'error': 'Preference not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Event feed
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsBackofficeStaff])
def event_list(request):
    """Events newer than ``after``, oldest first"""
    try:
        after = int(request.query_params.get('after', 0))
    except (TypeError, ValueError):
        return Response({'error': 'after must be an integer'}, status=status.HTTP_400_BAD_REQUEST)

    limit = settings.BACKOFFICE_EVENT_FEED_LIMIT
    queryset = EventLog.objects.filter(id__gt=after).order_by('id')

    types = request.query_params.get('types')
    if types:
        queryset = queryset.filter(event_type__in=[t.strip() for t in types.split(',') if t.strip()])

    events = list(queryset[:limit])
    return Response({
        'results': EventLogSerializer(events, many=True).data,
        'last_id': events[-1].id if events else after,
        'has_more': len(events) == limit,
    })
