"""Booking endpoints: /bookings/, /bookings/<id>/cancel/, /bookings/<id>/participants/."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter  # type: ignore

from .views import BookingViewSet

router = SimpleRouter()
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = router.urls
