"""Checkout, verification and webhook endpoints."""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse, JsonResponse  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django.views.decorators.csrf import csrf_exempt  # type: ignore
from django.views.decorators.http import require_POST  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.permissions import IsAuthenticated  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.exceptions import BookingError, BookingNotFound
from apps.bookings.models import Booking

from .exceptions import GatewayRejected, GatewayUnavailable, NothingToPay, SignatureInvalid
from .reconciler import PaymentReconciler
from .serializers import CreateOrderSerializer, PaymentOutcomeSerializer, VerifyPaymentSerializer

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "HTTP_X_RAZORPAY_SIGNATURE"


def get_owned_booking(request, booking_id: int) -> Booking:
    qs = Booking.objects.all()
    if not request.user.is_staff:
        qs = qs.filter(user=request.user)
    return get_object_or_404(qs, pk=booking_id)


class CreateOrderView(APIView):
    """Open a gateway order for whatever the booking owes next."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = get_owned_booking(request, serializer.validated_data["booking_id"])

        try:
            order = PaymentReconciler().create_order(booking.pk)
        except NothingToPay as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)
        except BookingNotFound as e:
            return Response({"detail": str(e)}, status=status.HTTP_404_NOT_FOUND)
        except BookingError as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except (GatewayUnavailable, GatewayRejected) as e:
            logger.error(f"Could not open order for booking {booking.booking_code}: {e}")
            return Response({"detail": "Payment gateway unavailable"}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(order, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    """Verify a completed checkout and apply it to the booking."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        booking = get_owned_booking(request, data["booking_id"])

        try:
            outcome = PaymentReconciler().verify_and_apply(
                booking.pk,
                data["payment_id"],
                data["amount_minor"],
                data["signature"],
                order_id=data["order_id"],
            )
        except SignatureInvalid as e:
            return Response({"detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except (GatewayUnavailable, GatewayRejected) as e:
            logger.error(f"Could not verify payment {data['payment_id']}: {e}")
            return Response({"detail": str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        except BookingError as e:
            return Response({"detail": str(e)}, status=status.HTTP_409_CONFLICT)
        return Response(PaymentOutcomeSerializer(outcome).data, status=status.HTTP_200_OK)


@csrf_exempt
@require_POST
def payment_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive gateway webhooks.

    The signature is computed over the raw body, so the request is read
    before any parsing. Unknown or unmatched events are acknowledged with 200
    to stop redelivery.
    """
    signature = request.META.get(SIGNATURE_HEADER, "")
    try:
        outcome = PaymentReconciler().handle_webhook(request.body, signature)
    except SignatureInvalid:
        return JsonResponse({"status": "error", "message": "Invalid signature"}, status=400)
    except ValueError as e:
        logger.error(f"Malformed webhook payload: {e}")
        return JsonResponse({"status": "error", "message": "Invalid payload"}, status=400)
    except (KeyError, TypeError) as e:
        logger.error(f"Webhook payload missing fields: {e}")
        return JsonResponse({"status": "error", "message": "Invalid payload"}, status=400)

    if outcome is None:
        return JsonResponse({"status": "ignored"}, status=200)
    return JsonResponse(
        {
            "status": "ok",
            "booking_status": outcome.status,
            "applied": outcome.applied,
            "duplicate": outcome.duplicate,
        },
        status=200,
    )
