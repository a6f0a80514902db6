"""
URL configuration for the escrow booking service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/token/            - Obtain JWT pair
    /api/v1/auth/token/refresh/    - Refresh JWT
    /api/v1/bookings/              - Booking list/create
        {id}/                      - Booking detail
        {id}/start-work/           - Creator marks work started
        {id}/proof/                - Creator submits proof of work
        {id}/accept/               - Client accepts delivery
        {id}/dispute/              - Client or creator opens dispute
        {id}/cancel/               - Cancel, request or confirm cancellation
        {id}/force-release/        - Admin releases escrow
        {id}/force-refund/         - Admin refunds client
        {id}/reviews/              - Review list/create
    /api/v1/disputes/              - Dispute list (admin)
        {id}/resolve/              - Admin resolves dispute
    /api/v1/payments/              - Payment list/submit
        {id}/verify/               - Admin verifies on-chain payment
        {id}/reject/               - Admin rejects payment
    /api/v1/settlements/           - Settlement list (admin)
        {id}/mark-paid-out/        - Admin records the payout transfer
    /api/v1/notifications/         - In-app notifications
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("", include("bookings.urls")),
    path("", include("payments.urls")),
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Escrow Admin"
admin.site.site_title = "Escrow Admin Portal"
admin.site.index_title = "Bookings, payments and disputes"
