from django.urls import path
from .views import debt_list, debt_detail, debt_pay, debt_stats_summary

urlpatterns = [
    path('debts/', debt_list, name='debt-list'),
    path('debts/stats/summary/', debt_stats_summary, name='debt-stats-summary'),
    path('debts/<str:debt_ref>/', debt_detail, name='debt-detail'),
    path('debts/<str:debt_ref>/pay/', debt_pay, name='debt-pay'),
]
