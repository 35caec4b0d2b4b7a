"""
URL configuration for the back-office project.

Every application exposes its endpoints under ``/api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Retail Back-Office Admin Panel"
admin.site.site_title = "Retail Back-Office Admin Portal"
admin.site.index_title = "Back-office administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.parties.urls')),
    path('api/v1/', include('backoffice.arrivals.urls')),
    path('api/v1/', include('backoffice.debts.urls')),
    path('api/v1/', include('backoffice.receipts.urls')),
    path('api/v1/', include('backoffice.payments.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
    path('api/v1/', include('backoffice.orders.urls')),
]
