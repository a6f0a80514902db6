"""
ViewSets for the bookings API.

URL Structure:
    /api/v1/bookings/                       GET, POST
    /api/v1/bookings/{id}/                  GET
    /api/v1/bookings/{id}/start-work/       POST (creator)
    /api/v1/bookings/{id}/proof/            POST (creator)
    /api/v1/bookings/{id}/accept/           POST (client)
    /api/v1/bookings/{id}/dispute/          POST (client or creator)
    /api/v1/bookings/{id}/cancel/           POST (party or admin)
    /api/v1/bookings/{id}/force-release/    POST (admin)
    /api/v1/bookings/{id}/force-refund/     POST (admin)
    /api/v1/bookings/{id}/reviews/          GET, POST
    /api/v1/disputes/                       GET (admin)
    /api/v1/disputes/{id}/                  GET (admin)
    /api/v1/disputes/{id}/resolve/          POST (admin)

Design Decisions:
    - Views only shape input and output; every transition goes through the
      service layer and the booking state machine
    - Failed ServiceResults map to HTTP status by error_code
      (core.views.service_error_response)
    - Users only see bookings they are a party to; admins see all
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models import Q
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bookings.models import Booking, Dispute
from bookings.serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    CancelSerializer,
    DisputeOpenSerializer,
    DisputeResolveSerializer,
    DisputeSerializer,
    ProofSubmitSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
)
from bookings.services import BookingService, DisputeService, ReviewService
from core.permissions import IsPlatformAdmin
from core.views import service_error_response

User = get_user_model()

ERROR_RESPONSES = {
    400: OpenApiResponse(description="Validation failed"),
    403: OpenApiResponse(description="Actor not allowed"),
    404: OpenApiResponse(description="Booking not found"),
    409: OpenApiResponse(description="Illegal transition or concurrent update"),
}


@extend_schema_view(
    list=extend_schema(
        operation_id="list_bookings",
        summary="List bookings",
        tags=["Bookings"],
    ),
    retrieve=extend_schema(
        operation_id="get_booking",
        summary="Get booking",
        tags=["Bookings"],
    ),
)
class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for the booking lifecycle.

    list:
        Bookings where the current user is client or creator. Admins see
        every booking. Filter with ?status=.

    create:
        Create a draft booking with a creator at a fixed USDC price.

    start_work / proof:
        Creator marks work started, then submits proof of delivery. Proof
        starts the auto-release window.

    accept / dispute:
        Client accepts (creator share released) or either party disputes.

    cancel:
        Cancels directly before funding. After funding the first call
        records a request and the other party's call confirms it.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = BookingSerializer

    def get_queryset(self):
        user = self.request.user
        queryset = Booking.objects.select_related("client", "creator", "settlement")
        if not user.is_platform_admin:
            queryset = queryset.filter(Q(client=user) | Q(creator=user))

        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    def get_permissions(self):
        if self.action in ("force_release", "force_refund"):
            return [IsAuthenticated(), IsPlatformAdmin()]
        return [IsAuthenticated()]

    def _booking_response(self, result, success_status=status.HTTP_200_OK):
        if not result.success:
            return service_error_response(result)
        return Response(
            BookingSerializer(result.data, context=self.get_serializer_context()).data,
            status=success_status,
        )

    @extend_schema(
        operation_id="create_booking",
        summary="Create booking",
        request=BookingCreateSerializer,
        responses={201: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def create(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        creator = User.objects.filter(pk=data["creator_id"], is_active=True).first()
        if creator is None:
            return Response(
                {"error": "Creator not found", "error_code": "NOT_FOUND"},
                status=status.HTTP_404_NOT_FOUND,
            )

        result = BookingService.create_booking(
            client=request.user,
            creator=creator,
            service_id=data["service_id"],
            usdc_amount=data["usdc_amount"],
            chain=data["chain"],
        )
        return self._booking_response(result, status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="start_booking_work",
        summary="Start work",
        request=None,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    @action(detail=True, methods=["post"], url_path="start-work")
    def start_work(self, request, pk=None):
        result = BookingService.start_work(pk, request.user)
        return self._booking_response(result)

    @extend_schema(
        operation_id="submit_booking_proof",
        summary="Submit proof of work",
        description=(
            "Creator delivers the work. At least one link, file URL or note is "
            "required. The booking auto-releases to the creator once the "
            "protection window passes unless the client accepts or disputes."
        ),
        request=ProofSubmitSerializer,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    @action(detail=True, methods=["post"])
    def proof(self, request, pk=None):
        serializer = ProofSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = BookingService.submit_proof(
            pk,
            request.user,
            links=serializer.validated_data["links"],
            file_urls=serializer.validated_data["file_urls"],
            note=serializer.validated_data["note"],
        )
        return self._booking_response(result)

    @extend_schema(
        operation_id="accept_booking",
        summary="Accept delivery",
        request=None,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        result = BookingService.accept_delivery(pk, request.user)
        return self._booking_response(result)

    @extend_schema(
        operation_id="dispute_booking",
        summary="Open dispute",
        request=DisputeOpenSerializer,
        responses={201: DisputeSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    @action(detail=True, methods=["post"])
    def dispute(self, request, pk=None):
        serializer = DisputeOpenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DisputeService.open_dispute(
            pk, request.user, serializer.validated_data["reason"]
        )
        if not result.success:
            return service_error_response(result)
        return Response(DisputeSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="cancel_booking",
        summary="Cancel booking",
        request=CancelSerializer,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = BookingService.cancel_booking(
            pk, request.user, serializer.validated_data["reason"]
        )
        return self._booking_response(result)

    @extend_schema(
        operation_id="force_release_booking",
        summary="Force release (admin)",
        request=None,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings - Admin"],
    )
    @action(detail=True, methods=["post"], url_path="force-release")
    def force_release(self, request, pk=None):
        result = BookingService.force_release(pk, request.user)
        return self._booking_response(result)

    @extend_schema(
        operation_id="force_refund_booking",
        summary="Force refund (admin)",
        request=None,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings - Admin"],
    )
    @action(detail=True, methods=["post"], url_path="force-refund")
    def force_refund(self, request, pk=None):
        result = BookingService.force_refund(pk, request.user)
        return self._booking_response(result)

    @extend_schema(
        operation_id="booking_reviews",
        summary="List or create reviews",
        request=ReviewCreateSerializer,
        responses={200: ReviewSerializer(many=True), 201: ReviewSerializer},
        tags=["Bookings - Reviews"],
    )
    @action(detail=True, methods=["get", "post"])
    def reviews(self, request, pk=None):
        booking = self.get_object()

        if request.method == "GET":
            reviews = booking.reviews.select_related("reviewer").order_by("created_at")
            return Response(ReviewSerializer(reviews, many=True).data)

        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ReviewService.create_review(
            booking.pk,
            request.user,
            serializer.validated_data["rating"],
            serializer.validated_data["comment"],
        )
        if not result.success:
            return service_error_response(result)
        return Response(ReviewSerializer(result.data).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_disputes",
        summary="List disputes (admin)",
        tags=["Disputes"],
    ),
    retrieve=extend_schema(
        operation_id="get_dispute",
        summary="Get dispute (admin)",
        tags=["Disputes"],
    ),
)
class DisputeViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin queue of disputes.

    resolve:
        Refund the client in full or release to the creator. The dispute,
        the booking's final status and the settlement are written together.
    """

    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    serializer_class = DisputeSerializer

    def get_queryset(self):
        queryset = Dispute.objects.select_related("booking")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @extend_schema(
        operation_id="resolve_dispute",
        summary="Resolve dispute",
        request=DisputeResolveSerializer,
        responses={200: DisputeSerializer, **ERROR_RESPONSES},
        tags=["Disputes"],
    )
    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        serializer = DisputeResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DisputeService.resolve_dispute(
            pk,
            request.user,
            serializer.validated_data["outcome"],
            serializer.validated_data["note"],
        )
        if not result.success:
            return service_error_response(result)
        return Response(DisputeSerializer(result.data).data)
