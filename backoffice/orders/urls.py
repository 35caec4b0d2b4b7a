from django.urls import path
from . import views

urlpatterns = [
    path('orders/', views.order_list, name='order-list'),
    # Fixed paths before the <pk> route
    path('orders/my-orders/', views.my_orders, name='order-my-orders'),
    path('orders/stats/', views.order_stats, name='order-stats'),
    path('orders/bulk-update-status/', views.order_bulk_update_status, name='order-bulk-update-status'),
    path('orders/bulk-delete/', views.order_bulk_delete, name='order-bulk-delete'),
    path('orders/<int:pk>/', views.order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', views.order_status, name='order-status'),
    path('orders/<int:pk>/call-request/', views.order_call_request, name='order-call-request'),
    path('orders/<int:pk>/call-status/', views.order_call_status, name='order-call-status'),
    path('users/<int:user_id>/addresses/', views.address_list_create, name='user-address-list-create'),
    path('users/<int:user_id>/addresses/<uuid:address_id>/', views.address_detail, name='user-address-detail'),
    path('users/<int:user_id>/profile/', views.user_profile, name='user-profile'),
]
