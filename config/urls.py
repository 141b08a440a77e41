"""URL configuration for the trek booking project.

Routes the Django admin, the API schema and the application-level URLs of
each domain app.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/v1/', include('apps.bookings.urls')),
    path('api/v1/payments/', include('apps.payments.urls')),
]
