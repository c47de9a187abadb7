"""
Scheduling URLs.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from apps.scheduling.views import (
    AvailabilityExceptionViewSet,
    AvailabilitySlotViewSet,
    ClinicSchedulingViewSet,
)

router = DefaultRouter()
router.register(r'clinics', ClinicSchedulingViewSet, basename='clinic-scheduling')
router.register(r'availability', AvailabilitySlotViewSet, basename='availability')
router.register(r'availability-exceptions', AvailabilityExceptionViewSet, basename='availability-exception')

urlpatterns = [
    path('', include(router.urls)),
]
