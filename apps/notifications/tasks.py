"""Celery tasks that deliver booking notifications.

Every task is best-effort: it returns False on failure and never touches
booking or payment state.
"""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from apps.bookings.models import Booking, FailedBooking
from apps.payments.models import PaymentEvent

from .invoices import invoice_number, render_invoice_pdf
from .services import Attachment, notifier

logger = logging.getLogger(__name__)


def booking_context(booking: Booking) -> dict:
    return {
        "booking_code": booking.booking_code,
        "customer_name": booking.user.get_full_name() or booking.user.get_username(),
        "trek_name": booking.trek.name,
        "start_date": booking.batch.start_date,
        "end_date": booking.batch.end_date,
        "participants": booking.number_of_participants,
        "currency": booking.currency,
        "total_price": booking.total_price,
        "amount_paid": booking.amount_paid,
        "remaining_amount": booking.remaining_amount,
        "final_payment_due_date": booking.final_payment_due_date,
        "status": booking.get_status_display(),
    }


def _load_booking(booking_id: int) -> Booking | None:
    try:
        return Booking.objects.select_related("user", "trek", "batch").get(pk=booking_id)
    except Booking.DoesNotExist:
        logger.warning(f"Notification skipped: booking {booking_id} no longer exists")
        return None


@shared_task(name="notifications.send_payment_received")
def send_payment_received(payment_event_id: int, final_settlement: bool) -> bool:
    """Payment receipt; a full settlement also gets the PDF invoice."""
    try:
        payment = PaymentEvent.objects.get(pk=payment_event_id)
    except PaymentEvent.DoesNotExist:
        logger.warning(f"Notification skipped: payment event {payment_event_id} not found")
        return False

    booking = _load_booking(payment.booking_id) if payment.booking_id else None
    if booking is None:
        return False

    attachments = []
    if final_settlement:
        try:
            attachments.append(Attachment(
                filename=f"{invoice_number(booking, payment)}.pdf",
                content=render_invoice_pdf(booking, payment),
            ))
        except Exception as e:
            logger.warning(
                f"Degraded delivery: invoice for booking {booking.booking_code} failed: {e}",
                exc_info=True,
            )

    context = booking_context(booking)
    context.update(payment_amount=payment.amount, payment_id=payment.gateway_payment_id,
                   final_settlement=final_settlement)
    return notifier.send("payment_received", booking.user.email, context, attachments=attachments)


@shared_task(name="notifications.send_booking_confirmed")
def send_booking_confirmed(booking_id: int) -> bool:
    booking = _load_booking(booking_id)
    if booking is None:
        return False
    context = booking_context(booking)
    context["participant_names"] = [p.name for p in booking.participants.all()]
    return notifier.send("booking_confirmed", booking.user.email, context)


@shared_task(name="notifications.send_booking_cancelled")
def send_booking_cancelled(booking_id: int) -> bool:
    booking = _load_booking(booking_id)
    if booking is None:
        return False
    context = booking_context(booking)
    context.update(
        cancellation_reason=booking.cancellation_reason,
        refund_amount=booking.refund_amount,
        refund_credit_amount=booking.refund_credit_amount,
    )
    return notifier.send("booking_cancelled", booking.user.email, context)


@shared_task(name="notifications.send_booking_expired")
def send_booking_expired(failed_booking_id: int) -> bool:
    try:
        failed = FailedBooking.objects.select_related("user", "trek", "batch").get(pk=failed_booking_id)
    except FailedBooking.DoesNotExist:
        logger.warning(f"Notification skipped: failed booking {failed_booking_id} not found")
        return False
    context = {
        "booking_code": failed.booking_code,
        "customer_name": failed.user.get_full_name() or failed.user.get_username(),
        "trek_name": failed.trek.name,
        "start_date": failed.batch.start_date,
        "participants": failed.number_of_participants,
    }
    return notifier.send("booking_expired", failed.user.email, context)


@shared_task(name="notifications.send_partial_payment_reminder")
def send_partial_payment_reminder(booking_id: int) -> bool:
    booking = _load_booking(booking_id)
    if booking is None:
        return False
    return notifier.send("partial_payment_reminder", booking.user.email, booking_context(booking))
