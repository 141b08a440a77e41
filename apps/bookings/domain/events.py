"""
Booking Domain Events

Published through the message bus after the transaction that produced
them has committed. Handlers live in the notifications and payments apps.
"""

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.base import DomainEvent


@dataclass
class PaymentApplied(DomainEvent):
    """
    Event: A verified gateway payment was applied to a booking

    Triggers:
    - Payment-received email
    - Invoice document when the booking is fully settled
    """
    booking_id: int
    payment_event_id: int
    status: str
    final_settlement: bool


@dataclass
class BookingConfirmed(DomainEvent):
    """
    Event: Booking reached CONFIRMED

    Triggers:
    - Booking confirmation email with participant list
    """
    booking_id: int


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled by the user, an admin or a sweep

    Triggers:
    - Cancellation email
    - Gateway refund when a cash refund is owed
    """
    booking_id: int
    cancelled_by: str
    refund_amount: Decimal
    previous_status: str


@dataclass
class BookingExpired(DomainEvent):
    """
    Event: Unpaid booking was archived by the expiry sweep

    The live booking row no longer exists; handlers work from the archive.
    """
    failed_booking_id: int
    booking_code: str


@dataclass
class PartialPaymentReminderDue(DomainEvent):
    """Event: Balance of a partially paid booking falls due soon"""
    booking_id: int
