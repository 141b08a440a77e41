"""Message bus handlers that turn booking events into notification tasks."""

from __future__ import annotations

from shared.application.message_bus import MessageBus, message_bus
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingConfirmed,
    BookingExpired,
    PartialPaymentReminderDue,
    PaymentApplied,
)

from . import tasks


def notify_payment_applied(event: PaymentApplied) -> None:
    tasks.send_payment_received.delay(event.payment_event_id, event.final_settlement)


def notify_booking_confirmed(event: BookingConfirmed) -> None:
    tasks.send_booking_confirmed.delay(event.booking_id)


def notify_booking_cancelled(event: BookingCancelled) -> None:
    tasks.send_booking_cancelled.delay(event.booking_id)


def notify_booking_expired(event: BookingExpired) -> None:
    tasks.send_booking_expired.delay(event.failed_booking_id)


def notify_partial_payment_due(event: PartialPaymentReminderDue) -> None:
    tasks.send_partial_payment_reminder.delay(event.booking_id)


def register_handlers(bus: MessageBus = message_bus) -> None:
    bus.register_event_handler(PaymentApplied, notify_payment_applied)
    bus.register_event_handler(BookingConfirmed, notify_booking_confirmed)
    bus.register_event_handler(BookingCancelled, notify_booking_cancelled)
    bus.register_event_handler(BookingExpired, notify_booking_expired)
    bus.register_event_handler(PartialPaymentReminderDue, notify_partial_payment_due)
