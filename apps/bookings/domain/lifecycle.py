"""
Booking Lifecycle State Machine

State transitions:
- PENDING_PAYMENT -> PAYMENT_COMPLETED (full amount verified)
- PENDING_PAYMENT -> PAYMENT_CONFIRMED_PARTIAL (initial tranche verified)
- PENDING_PAYMENT -> PENDING_PAYMENT (payment below the initial tranche, re-armed)
- PAYMENT_CONFIRMED_PARTIAL -> CONFIRMED (balance paid, participants known)
- PAYMENT_CONFIRMED_PARTIAL -> PAYMENT_COMPLETED (balance paid, participants missing)
- PAYMENT_COMPLETED -> CONFIRMED (participant details supplied)
- CONFIRMED -> TREK_COMPLETED (batch has ended)
- any of the above except TREK_COMPLETED -> CANCELLED

Every status write in the project goes through ``ensure_transition``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.exceptions import InvalidStateTransition


class BookingStatus(models.TextChoices):
    PENDING_PAYMENT = "pending_payment", _("Pending payment")
    PAYMENT_CONFIRMED_PARTIAL = "payment_confirmed_partial", _("Partially paid")
    PAYMENT_COMPLETED = "payment_completed", _("Payment completed")
    CONFIRMED = "confirmed", _("Confirmed")
    TREK_COMPLETED = "trek_completed", _("Trek completed")
    CANCELLED = "cancelled", _("Cancelled")


class PaymentMode(models.TextChoices):
    FULL = "full", _("Full payment")
    PARTIAL = "partial", _("Partial payment")


TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
        BookingStatus.PAYMENT_COMPLETED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL: frozenset({
        BookingStatus.PAYMENT_COMPLETED,
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.PAYMENT_COMPLETED: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.TREK_COMPLETED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.TREK_COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Statuses whose seats count as sold.
COMMITTED_STATUSES = (
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
    BookingStatus.PAYMENT_COMPLETED,
    BookingStatus.CONFIRMED,
    BookingStatus.TREK_COMPLETED,
)

# Statuses that still hold a seat and may be cancelled.
CANCELLABLE_STATUSES = (
    BookingStatus.PENDING_PAYMENT,
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
    BookingStatus.PAYMENT_COMPLETED,
    BookingStatus.CONFIRMED,
)

# Statuses in which a verified payment can still move the booking forward.
PAYABLE_STATUSES = (
    BookingStatus.PENDING_PAYMENT,
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    """Raise ``InvalidStateTransition`` unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidStateTransition(current, target)


def is_terminal(status: str) -> bool:
    return not TRANSITIONS.get(status)


@dataclass(frozen=True)
class PaymentDecision:
    """Outcome of applying one verified payment to a booking."""

    status: str
    amount_paid: Decimal
    remaining_amount: Decimal | None
    final_settlement: bool

    @property
    def settled(self) -> bool:
        return self.status in (BookingStatus.PAYMENT_COMPLETED, BookingStatus.CONFIRMED)


def decide_payment(
    *,
    status: str,
    payment_mode: str,
    total: Decimal,
    amount_paid: Decimal,
    payment: Decimal,
    initial_amount: Decimal | None,
    has_participants: bool,
) -> PaymentDecision:
    """
    Work out where a verified payment takes the booking.

    ``amount_paid`` is what was already applied before this payment.
    Payments accumulate: the initial tranche counts as met once the running
    total reaches it, and the outstanding balance is always
    ``total - paid so far``.
    """
    if status not in PAYABLE_STATUSES:
        raise InvalidStateTransition(status, BookingStatus.PAYMENT_COMPLETED)

    paid_so_far = amount_paid + payment
    outstanding = max(total - paid_so_far, Decimal("0"))
    settled_status = BookingStatus.CONFIRMED if has_participants else BookingStatus.PAYMENT_COMPLETED

    if payment_mode == PaymentMode.FULL:
        if paid_so_far >= total:
            return PaymentDecision(BookingStatus.PAYMENT_COMPLETED, paid_so_far, None, True)
        return PaymentDecision(BookingStatus.PENDING_PAYMENT, paid_so_far, None, False)

    if paid_so_far >= total:
        target = settled_status
        if status == BookingStatus.PENDING_PAYMENT:
            # Paid everything in one go; participant details are collected next.
            target = BookingStatus.PAYMENT_COMPLETED
        return PaymentDecision(target, paid_so_far, Decimal("0"), True)

    if status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL:
        return PaymentDecision(status, paid_so_far, outstanding, False)

    if paid_so_far >= (initial_amount or Decimal("0")):
        return PaymentDecision(BookingStatus.PAYMENT_CONFIRMED_PARTIAL, paid_so_far, outstanding, False)

    return PaymentDecision(BookingStatus.PENDING_PAYMENT, paid_so_far, outstanding, False)
