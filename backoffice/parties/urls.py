from django.urls import path
from .views import (
    supplier_list_create, supplier_detail,
    client_debt_list_create, client_debt_detail, client_debt_pay,
)

urlpatterns = [
    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),

    # Client debt endpoints
    path('client-debts/', client_debt_list_create, name='client-debt-list-create'),
    path('client-debts/<str:debt_id>/', client_debt_detail, name='client-debt-detail'),
    path('client-debts/<str:debt_id>/pay/', client_debt_pay, name='client-debt-pay'),
]
