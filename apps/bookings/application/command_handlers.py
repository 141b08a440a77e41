"""
Booking Command Handlers

Use cases of the booking domain. Each handler runs inside a unit of work,
so seat changes, booking rows and the events they raise commit together.

Commands:
- CreateBookingCommand: Reserve seats and open a pending booking
- CancelBookingCommand: Cancel a booking, release seats, quote the refund
- SubmitParticipantsCommand: Store participant details, confirm if fully paid
- RestoreFailedBookingCommand: Re-open an archived (expired) booking
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable
import logging

from django.conf import settings
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money
from apps.bookings.domain.events import BookingCancelled, BookingConfirmed
from apps.bookings.domain.lifecycle import BookingStatus, PaymentMode
from apps.bookings.domain.refunds import calculate_refund, days_until_departure
from apps.bookings.exceptions import (
    ActiveBookingExists,
    BatchNotBookable,
    BatchNotFound,
    BookingError,
    BookingNotFound,
    ParticipantDetailsInvalid,
)
from apps.bookings.models import Booking, FailedBooking, Participant
from apps.promotions.services import validate_promo_code
from apps.treks.ledger import SeatLedger, seat_ledger
from apps.treks.models import Batch, Trek

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    user_id: int
    trek_id: int
    batch_id: int
    number_of_participants: int
    payment_mode: str = PaymentMode.FULL
    promo_code: str = ''


@dataclass
class CancelBookingCommand:
    """
    Command to cancel a booking

    ``expected_statuses`` makes the cancellation conditional: if the booking
    has moved on by the time its row is locked, nothing happens.
    """
    booking_id: int
    reason: str
    cancelled_by: str
    company_initiated: bool = False
    expected_statuses: tuple = ()


@dataclass
class ParticipantData:
    name: str
    age: int
    gender: str
    contact_number: str = ''
    medical_conditions: str = ''


@dataclass
class SubmitParticipantsCommand:
    booking_id: int
    participants: list = field(default_factory=list)


@dataclass
class RestoreFailedBookingCommand:
    failed_booking_id: int


# ===== Helpers =====

def session_expiry(now: datetime) -> datetime:
    return now + timedelta(minutes=settings.BOOKING_SESSION_MINUTES)


def final_payment_due(start_date: date, days_before: int) -> datetime:
    """End of the day ``days_before`` days ahead of departure."""
    due_day = start_date - timedelta(days=days_before)
    return timezone.make_aware(datetime.combine(due_day, time(23, 59, 59)))


def apply_payment_plan(booking: Booking, trek: Trek, batch: Batch) -> None:
    """Fill in the partial-payment fields on a new booking."""
    if booking.payment_mode != PaymentMode.PARTIAL:
        return
    total = Money(booking.total_price, booking.currency)
    initial = total.percent(trek.initial_payment_percent)
    booking.initial_amount = initial.amount
    booking.remaining_amount = (total - initial).amount
    booking.final_payment_due_date = final_payment_due(batch.start_date, trek.final_payment_days_before)
    booking.auto_cancel_on_due_date = True


def refund_deposit(booking: Booking) -> Money:
    """Part of the price that is never refunded to the customer."""
    if booking.is_partial and booking.initial_amount is not None:
        return Money(booking.initial_amount, booking.currency)
    return Money(booking.total_price, booking.currency).percent(settings.BOOKING_DEPOSIT_PERCENT)


def lock_booking(booking_id: int) -> Booking:
    try:
        return Booking.objects.select_for_update().get(pk=booking_id)
    except Booking.DoesNotExist:
        raise BookingNotFound(f"Booking {booking_id} not found")


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    The seat reservation and the booking insert share one transaction:
    if the insert fails the counter increment is rolled back with it.
    """

    def __init__(self, ledger: SeatLedger = seat_ledger):
        self.ledger = ledger

    def handle(self, command: CreateBookingCommand) -> Booking:
        logger.info(
            f"Creating booking for user {command.user_id}, batch {command.batch_id}, "
            f"{command.number_of_participants} participant(s), {command.payment_mode} payment"
        )
        if command.number_of_participants < 1:
            raise BookingError("At least one participant is required")

        try:
            batch = Batch.objects.select_related("trek").get(pk=command.batch_id, trek_id=command.trek_id)
        except Batch.DoesNotExist:
            raise BatchNotFound(f"Batch {command.batch_id} not found for trek {command.trek_id}")

        trek = batch.trek
        if not batch.is_bookable:
            raise BatchNotBookable(f"Batch {batch.pk} is not open for booking")
        if command.payment_mode == PaymentMode.PARTIAL and not trek.partial_payment_enabled:
            raise BookingError(f"Partial payment is not available for {trek}")

        now = timezone.now()
        holding = Booking.objects.filter(
            user_id=command.user_id,
            batch_id=batch.pk,
            status=BookingStatus.PENDING_PAYMENT,
            session_expires_at__gt=now,
        )
        if holding.exists():
            raise ActiveBookingExists(
                f"User {command.user_id} already has an unpaid booking for batch {batch.pk}"
            )

        order_value = batch.price * command.number_of_participants
        promo = None
        discount = Decimal("0.00")
        if command.promo_code:
            promo = validate_promo_code(command.promo_code, trek, order_value, now=now)
            discount = promo.discount_for(order_value)

        with DjangoUnitOfWork():
            self.ledger.reserve(batch.pk, command.number_of_participants)

            booking = Booking(
                user_id=command.user_id,
                trek=trek,
                batch=batch,
                number_of_participants=command.number_of_participants,
                payment_mode=command.payment_mode,
                currency=settings.BOOKING_CURRENCY,
                total_price=order_value - discount,
                discount_amount=discount,
                promo_code=promo,
                promo_code_value=promo.code if promo else '',
                session_expires_at=session_expiry(now),
                created_at=now,
            )
            apply_payment_plan(booking, trek, batch)
            booking.save()

        logger.info(f"Booking {booking.booking_code} created, seats held until {booking.session_expires_at}")
        return booking


class CancelBookingHandler:
    def __init__(self, ledger: SeatLedger = seat_ledger):
        self.ledger = ledger

    def handle(self, command: CancelBookingCommand) -> Booking:
        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)

            if booking.status == BookingStatus.CANCELLED:
                logger.info(f"Booking {booking.booking_code} is already cancelled")
                return booking

            if command.expected_statuses and booking.status not in command.expected_statuses:
                logger.info(
                    f"Skipping cancellation of {booking.booking_code}: status is now {booking.status}"
                )
                return booking

            previous_status = booking.status
            hold_lapsed = booking.session_expired()
            booking.transition_to(BookingStatus.CANCELLED)

            paid = Money(booking.amount_paid, booking.currency)
            quote = calculate_refund(
                total_paid=paid,
                trip_total=Money(booking.total_price, booking.currency),
                days_to_departure=days_until_departure(booking.batch.start_date, timezone.localdate()),
                deposit=refund_deposit(booking),
                company_initiated=command.company_initiated,
            )

            booking.cancellation_reason = command.reason[:255]
            booking.cancelled_by = command.cancelled_by
            booking.cancelled_at = timezone.now()
            booking.refund_amount = quote.cash.amount
            booking.refund_credit_amount = quote.credit.amount
            booking.refund_status = Booking.RefundStatus.PROCESSING if quote.cash.amount > 0 else ''
            booking.save()

            if hold_lapsed:
                # The lapsed hold may already be gone from the counter
                self.ledger.reconcile(booking.batch_id)
            else:
                self.ledger.release(booking.batch_id, booking.number_of_participants)

            uow.add_event(BookingCancelled(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                cancelled_by=booking.cancelled_by,
                refund_amount=quote.cash.amount,
                previous_status=previous_status,
            ))

        logger.info(
            f"Booking {booking.booking_code} cancelled by {command.cancelled_by} "
            f"(was {previous_status}), refund {quote.cash}, credit {quote.credit}"
        )
        return booking


class SubmitParticipantsHandler:
    """Store participant details; a fully paid booking becomes CONFIRMED."""

    ACCEPTING_STATUSES = (BookingStatus.PAYMENT_CONFIRMED_PARTIAL, BookingStatus.PAYMENT_COMPLETED)

    def handle(self, command: SubmitParticipantsCommand) -> Booking:
        participants = [
            p if isinstance(p, ParticipantData) else ParticipantData(**p)
            for p in command.participants
        ]

        with DjangoUnitOfWork() as uow:
            booking = lock_booking(command.booking_id)

            if booking.status not in self.ACCEPTING_STATUSES:
                raise ParticipantDetailsInvalid(
                    f"Participant details cannot be submitted while booking is {booking.status}"
                )
            if len(participants) != booking.number_of_participants:
                raise ParticipantDetailsInvalid(
                    f"Expected {booking.number_of_participants} participant(s), got {len(participants)}"
                )

            booking.participants.all().delete()
            Participant.objects.bulk_create([
                Participant(booking=booking, **vars(p)) for p in participants
            ])

            if booking.status == BookingStatus.PAYMENT_COMPLETED:
                booking.transition_to(BookingStatus.CONFIRMED)
                booking.save(update_fields=["status", "updated_at"])
                uow.add_event(BookingConfirmed(aggregate_id=booking.pk, booking_id=booking.pk))
                logger.info(f"Booking {booking.booking_code} confirmed with participant details")

        return booking


class RestoreFailedBookingHandler:
    """
    Re-open an expired booking from its archive

    Seats are reserved again (which can fail with CapacityExceeded), a new
    pending booking gets a fresh session, and the archive row is removed.
    """

    def __init__(self, ledger: SeatLedger = seat_ledger):
        self.ledger = ledger

    def handle(self, command: RestoreFailedBookingCommand) -> Booking:
        with DjangoUnitOfWork():
            try:
                failed = FailedBooking.objects.select_for_update().select_related(
                    "batch__trek"
                ).get(pk=command.failed_booking_id)
            except FailedBooking.DoesNotExist:
                raise BookingNotFound(f"Failed booking {command.failed_booking_id} not found")

            batch = failed.batch
            self.ledger.reserve(batch.pk, failed.number_of_participants)

            now = timezone.now()
            booking = Booking(
                user_id=failed.user_id,
                trek_id=failed.trek_id,
                batch=batch,
                number_of_participants=failed.number_of_participants,
                payment_mode=failed.payment_mode,
                currency=settings.BOOKING_CURRENCY,
                total_price=failed.total_price,
                discount_amount=failed.discount_amount,
                promo_code_value=failed.promo_code_value,
                session_expires_at=session_expiry(now),
                created_at=now,
            )
            if failed.promo_code_value:
                from apps.promotions.models import PromoCode

                booking.promo_code = PromoCode.objects.filter(code=failed.promo_code_value).first()
            apply_payment_plan(booking, batch.trek, batch)
            booking.save()
            failed.delete()

        logger.info(f"Restored failed booking {failed.booking_code} as {booking.booking_code}")
        return booking


# ===== Entry points =====

def create_booking(
    user_id: int,
    trek_id: int,
    batch_id: int,
    number_of_participants: int,
    payment_mode: str = PaymentMode.FULL,
    promo_code: str = '',
) -> Booking:
    return CreateBookingHandler().handle(CreateBookingCommand(
        user_id=user_id,
        trek_id=trek_id,
        batch_id=batch_id,
        number_of_participants=number_of_participants,
        payment_mode=payment_mode,
        promo_code=promo_code,
    ))


def cancel_booking(
    booking_id: int,
    reason: str,
    actor: str,
    *,
    company_initiated: bool = False,
    expected_statuses: Iterable[str] = (),
) -> Booking:
    return CancelBookingHandler().handle(CancelBookingCommand(
        booking_id=booking_id,
        reason=reason,
        cancelled_by=actor,
        company_initiated=company_initiated,
        expected_statuses=tuple(expected_statuses),
    ))


def submit_participant_details(booking_id: int, participants: list) -> Booking:
    return SubmitParticipantsHandler().handle(
        SubmitParticipantsCommand(booking_id=booking_id, participants=participants)
    )


def restore_failed_booking(failed_booking_id: int) -> Booking:
    return RestoreFailedBookingHandler().handle(
        RestoreFailedBookingCommand(failed_booking_id=failed_booking_id)
    )
