"""Celery tasks for the payments domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.db.models import F, Sum  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.value_objects import Money
from apps.bookings.models import Booking

from .gateway import get_gateway
from .models import PaymentEvent

logger = logging.getLogger(__name__)


@shared_task(name="payments.process_refund")
def process_refund(booking_id: int) -> str:
    """
    Push the cash refund of a cancelled booking to the gateway.

    The refund is spread over the booking's applied payments, newest first,
    never refunding more than a payment captured. No lock is held while the
    gateway is called: each refunded chunk is written to its payment event as
    soon as the gateway accepts it, and whatever was already refunded is
    subtracted up front. Ends with the booking's refund status set to success
    or failed.
    """
    gateway = get_gateway()

    try:
        booking = Booking.objects.get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.warning(f"Refund skipped: booking {booking_id} not found")
        return "missing"

    if booking.refund_status != Booking.RefundStatus.PROCESSING:
        return booking.refund_status or "none"

    payments = booking.payment_events.filter(outcome=PaymentEvent.Outcome.APPLIED)
    already_refunded = payments.aggregate(total=Sum("refunded_amount"))["total"] or 0
    outstanding = Money(booking.refund_amount or 0, booking.currency).subtract_floor(
        Money(already_refunded, booking.currency)
    )

    try:
        for payment in payments.order_by("-created_at", "-id"):
            if outstanding.amount <= 0:
                break
            refundable = Money(payment.amount - payment.refunded_amount, booking.currency)
            chunk = outstanding.clamp(refundable)
            if chunk.amount <= 0:
                continue
            gateway.refund(payment.gateway_payment_id, chunk)
            PaymentEvent.objects.filter(pk=payment.pk).update(
                refunded_amount=F("refunded_amount") + chunk.amount
            )
            outstanding = outstanding - chunk
    except Exception as e:
        logger.error(f"Refund for booking {booking.booking_code} failed: {e}", exc_info=True)
        refund_status = Booking.RefundStatus.FAILED
    else:
        if outstanding.amount > 0:
            logger.error(
                f"Refund for booking {booking.booking_code} is short by {outstanding}: "
                f"no captured payment left to refund against"
            )
            refund_status = Booking.RefundStatus.FAILED
        else:
            refund_status = Booking.RefundStatus.SUCCESS
            logger.info(f"Refunded {booking.refund_amount} for booking {booking.booking_code}")

    Booking.objects.filter(pk=booking.pk, refund_status=Booking.RefundStatus.PROCESSING).update(
        refund_status=refund_status, updated_at=timezone.now()
    )
    return refund_status
