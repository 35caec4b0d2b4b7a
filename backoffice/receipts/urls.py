from django.urls import path
from .views import (
    receipt_list_create, receipt_detail, receipt_pay_debt, receipt_incassate,
    receipt_clear_all, receipt_stats_summary
)

urlpatterns = [
    path('receipts/', receipt_list_create, name='receipt-list-create'),
    # Fixed paths before the <pk> route
    path('receipts/incassate/', receipt_incassate, name='receipt-incassate'),
    path('receipts/clear-all/', receipt_clear_all, name='receipt-clear-all'),
    path('receipts/stats/summary/', receipt_stats_summary, name='receipt-stats-summary'),
    path('receipts/<int:pk>/', receipt_detail, name='receipt-detail'),
    path('receipts/<int:pk>/pay-debt/', receipt_pay_debt, name='receipt-pay-debt'),
]
