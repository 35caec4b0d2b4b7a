from django.urls import path
from . import views

urlpatterns = [
    path('reports/analytics/', views.analytics, name='reports-analytics'),
    path('reports/dashboard/', views.dashboard, name='reports-dashboard'),
]
