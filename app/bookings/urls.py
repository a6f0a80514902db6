"""
URL configuration for the bookings API.

URL Structure:
    /bookings/                       GET, POST
    /bookings/{id}/                  GET
    /bookings/{id}/start-work/       POST
    /bookings/{id}/proof/            POST
    /bookings/{id}/accept/           POST
    /bookings/{id}/dispute/          POST
    /bookings/{id}/cancel/           POST
    /bookings/{id}/force-release/    POST
    /bookings/{id}/force-refund/     POST
    /bookings/{id}/reviews/          GET, POST
    /disputes/                       GET
    /disputes/{id}/                  GET
    /disputes/{id}/resolve/          POST

All URLs are prefixed with /api/v1/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from bookings.views import BookingViewSet, DisputeViewSet

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"disputes", DisputeViewSet, basename="dispute")

app_name = "bookings"

urlpatterns = [
    path("", include(router.urls)),
]
