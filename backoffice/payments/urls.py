from django.urls import path
from .views import (
    payment_list_create, payment_detail, payment_clear_all, cash_register,
    incassation, monthly_summary, payment_stats_summary
)

urlpatterns = [
    path('payments/', payment_list_create, name='payment-list-create'),
    # Fixed paths before the <payment_ref> route
    path('payments/clear-all/', payment_clear_all, name='payment-clear-all'),
    path('payments/cash-register/', cash_register, name='payment-cash-register'),
    path('payments/incassation/', incassation, name='payment-incassation'),
    path('payments/monthly-summary/', monthly_summary, name='payment-monthly-summary'),
    path('payments/stats/summary/', payment_stats_summary, name='payment-stats-summary'),
    path('payments/<str:payment_ref>/', payment_detail, name='payment-detail'),
]
