"""Message bus handlers owned by the payments app."""

from __future__ import annotations

from shared.application.message_bus import MessageBus, message_bus
from apps.bookings.domain.events import BookingCancelled

from .tasks import process_refund


def refund_cancelled_booking(event: BookingCancelled) -> None:
    if event.refund_amount and event.refund_amount > 0:
        process_refund.delay(event.booking_id)


def register_handlers(bus: MessageBus = message_bus) -> None:
    bus.register_event_handler(BookingCancelled, refund_cancelled_booking)
