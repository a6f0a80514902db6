"""
Payment API views.

URL Structure:
    /api/v1/payments/                       GET, POST
    /api/v1/payments/{id}/                  GET
    /api/v1/payments/{id}/verify/           POST (admin)
    /api/v1/payments/{id}/reject/           POST (admin)
    /api/v1/settlements/                    GET (admin)
    /api/v1/settlements/{id}/               GET (admin)
    /api/v1/settlements/{id}/mark-paid-out/ POST (admin)

Design Decisions:
    - Payers see their own payments; admins see every payment
    - The core never queries a chain: verify/reject record the decision of
      an admin or of an external verifier authenticated as an admin
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsPlatformAdmin
from core.views import service_error_response
from payments.models import Payment, Settlement
from payments.serializers import (
    MarkPaidOutSerializer,
    PaymentRejectSerializer,
    PaymentSerializer,
    PaymentSubmitSerializer,
    SettlementSerializer,
)
from payments.services import PaymentService, SettlementService

User = get_user_model()

ERROR_RESPONSES = {
    400: OpenApiResponse(description="Validation failed"),
    403: OpenApiResponse(description="Actor not allowed"),
    404: OpenApiResponse(description="Not found"),
    409: OpenApiResponse(description="Duplicate hash, illegal transition or concurrent update"),
}


@extend_schema_view(
    list=extend_schema(operation_id="list_payments", summary="List payments", tags=["Payments"]),
    retrieve=extend_schema(operation_id="get_payment", summary="Get payment", tags=["Payments"]),
)
class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for payment records.

    create:
        Submit an on-chain transfer for a booking. The booking moves to
        pending until an admin verifies or rejects the payment.

    verify / reject:
        Admin decision on a submitted payment.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer

    def get_queryset(self):
        user = self.request.user
        queryset = Payment.objects.all()
        if not user.is_platform_admin:
            queryset = queryset.filter(payer=user)
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def get_permissions(self):
        if self.action in ("verify", "reject"):
            return [IsAuthenticated(), IsPlatformAdmin()]
        return [IsAuthenticated()]

    @extend_schema(
        operation_id="submit_payment",
        summary="Submit payment",
        request=PaymentSubmitSerializer,
        responses={201: PaymentSerializer, **ERROR_RESPONSES},
        tags=["Payments"],
    )
    def create(self, request):
        serializer = PaymentSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        creator = None
        if data["creator_id"]:
            creator = User.objects.filter(pk=data["creator_id"]).first()
            if creator is None:
                return Response(
                    {"error": "Creator not found", "error_code": "NOT_FOUND"},
                    status=status.HTTP_404_NOT_FOUND,
                )

        result = PaymentService.submit_payment(
            payer=request.user,
            amount=data["amount"],
            network=data["network"],
            tx_hash=data["tx_hash"],
            payment_type=data["payment_type"],
            booking_id=data["booking_id"],
            service_id=data["service_id"],
            creator=creator,
        )
        if not result.success:
            return service_error_response(result)
        return Response(PaymentSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="verify_payment",
        summary="Verify payment (admin)",
        request=None,
        responses={200: PaymentSerializer, **ERROR_RESPONSES},
        tags=["Payments - Admin"],
    )
    @action(detail=True, methods=["post"])
    def verify(self, request, pk=None):
        result = PaymentService.verify_payment(pk, request.user)
        if not result.success:
            return service_error_response(result)
        return Response(PaymentSerializer(result.data).data)

    @extend_schema(
        operation_id="reject_payment",
        summary="Reject payment (admin)",
        request=PaymentRejectSerializer,
        responses={200: PaymentSerializer, **ERROR_RESPONSES},
        tags=["Payments - Admin"],
    )
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = PaymentRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = PaymentService.reject_payment(
            pk, request.user, serializer.validated_data["reason"]
        )
        if not result.success:
            return service_error_response(result)
        return Response(PaymentSerializer(result.data).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_settlements", summary="List settlements", tags=["Settlements"]
    ),
    retrieve=extend_schema(
        operation_id="get_settlement", summary="Get settlement", tags=["Settlements"]
    ),
)
class SettlementViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin view of settlements awaiting or done with payout."""

    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    serializer_class = SettlementSerializer

    def get_queryset(self):
        queryset = Settlement.objects.select_related("booking")
        payout_status = self.request.query_params.get("payout_status")
        if payout_status:
            queryset = queryset.filter(payout_status=payout_status)
        return queryset

    @extend_schema(
        operation_id="mark_settlement_paid_out",
        summary="Record payout",
        request=MarkPaidOutSerializer,
        responses={200: SettlementSerializer, **ERROR_RESPONSES},
        tags=["Settlements"],
    )
    @action(detail=True, methods=["post"], url_path="mark-paid-out")
    def mark_paid_out(self, request, pk=None):
        serializer = MarkPaidOutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = SettlementService.mark_paid_out(
            pk, request.user, serializer.validated_data["payout_tx_hash"]
        )
        if not result.success:
            return service_error_response(result)
        return Response(SettlementSerializer(result.data).data)
