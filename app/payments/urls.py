"""
URL configuration for the payments app.

Routes:
    /payments/                        GET, POST
    /payments/{id}/                   GET
    /payments/{id}/verify/            POST
    /payments/{id}/reject/            POST
    /settlements/                     GET
    /settlements/{id}/                GET
    /settlements/{id}/mark-paid-out/  POST

All routes are prefixed with /api/v1/ when included in the main URLconf.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from payments.views import PaymentViewSet, SettlementViewSet

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"settlements", SettlementViewSet, basename="settlement")

app_name = "payments"

urlpatterns = [
    path("", include(router.urls)),
]
