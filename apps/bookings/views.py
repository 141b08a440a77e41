"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .application.command_handlers import cancel_booking, create_booking, submit_participant_details
from .exceptions import (
    BatchNotFound,
    BookingError,
    BookingNotFound,
    CapacityExceeded,
    InvalidStateTransition,
)
from .models import Booking
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    CancelBookingSerializer,
    ParticipantDetailsSerializer,
)


def booking_error_response(error: BookingError) -> Response:
    if isinstance(error, (BookingNotFound, BatchNotFound)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (CapacityExceeded, InvalidStateTransition)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(error), "code": type(error).__name__}, status=code)


class IsBookingOwnerOrStaff(permissions.BasePermission):
    """The customer who booked and staff members may act on a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if user.is_staff:
            return True
        return obj.user_id == user.id


class BookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Viewset for creating and managing trek bookings."""

    queryset = Booking.objects.select_related("trek", "batch").prefetch_related("participants")
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingOwnerOrStaff]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if user.is_staff:
            return qs
        return qs.filter(user=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            booking = create_booking(
                user_id=request.user.id,
                trek_id=data["trek"],
                batch_id=data["batch"],
                number_of_participants=data["number_of_participants"],
                payment_mode=data["payment_mode"],
                promo_code=data["promo_code"],
            )
        except BookingError as e:
            return booking_error_response(e)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        company_initiated = serializer.validated_data["company_initiated"]
        if company_initiated and not request.user.is_staff:
            return Response(status=status.HTTP_403_FORBIDDEN)
        actor = Booking.CancelledBy.ADMIN if request.user.is_staff else Booking.CancelledBy.USER

        try:
            booking = cancel_booking(
                booking.pk,
                serializer.validated_data["reason"] or f"Cancelled by {actor}",
                actor,
                company_initiated=company_initiated,
            )
        except BookingError as e:
            return booking_error_response(e)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def participants(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ParticipantDetailsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = submit_participant_details(booking.pk, serializer.validated_data["participants"])
        except BookingError as e:
            return booking_error_response(e)
        booking.refresh_from_db()
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)
