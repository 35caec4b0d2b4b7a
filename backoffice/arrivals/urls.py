from django.urls import path
from .views import arrival_list_create, arrival_detail, arrival_clear_all, available_products_list

urlpatterns = [
    path('arrivals/', arrival_list_create, name='arrival-list-create'),
    # Fixed paths before the <pk> route
    path('arrivals/clear-all/', arrival_clear_all, name='arrival-clear-all'),
    path('arrivals/available-products/', available_products_list, name='arrival-available-products'),
    path('arrivals/<int:pk>/', arrival_detail, name='arrival-detail'),
]
