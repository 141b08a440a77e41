"""
Periodic sweeps over bookings.

Each sweep selects candidates with a plain query, then handles every
booking in its own transaction with the row locked and the selection
condition re-checked, so a payment that lands mid-sweep wins. An error on
one booking is logged and the sweep carries on with the next.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.conf import settings  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from apps.treks.ledger import SeatLedger, seat_ledger
from apps.treks.models import Batch

from .application.command_handlers import cancel_booking
from .domain.events import BookingExpired, PartialPaymentReminderDue
from .domain.lifecycle import BookingStatus, PaymentMode
from .models import Booking, FailedBooking

logger = logging.getLogger(__name__)

EXPIRY_DETAILS = "Booking session expired without payment completion"
AUTO_CANCEL_REASON = "non-payment of remaining balance"


def expired_bookings(now: datetime):
    fallback_cutoff = now - timedelta(minutes=settings.BOOKING_SESSION_FALLBACK_MINUTES)
    return Booking.objects.filter(status=BookingStatus.PENDING_PAYMENT).filter(
        Q(session_expires_at__lte=now)
        | Q(session_expires_at__isnull=True, created_at__lte=fallback_cutoff)
    )


def overdue_partial_bookings(now: datetime):
    # Both the booking and its batch must opt in.
    return Booking.objects.filter(
        payment_mode=PaymentMode.PARTIAL,
        status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
        final_payment_due_date__lt=now,
        auto_cancel_on_due_date=True,
        batch__auto_cancel_on_due_date=True,
    )


class ExpirySweep:
    """Archive unpaid bookings whose hold has lapsed and heal batch counters."""

    def __init__(self, ledger: SeatLedger = seat_ledger):
        self.ledger = ledger

    def run(self, now: datetime | None = None) -> dict[str, int]:
        now = now or timezone.now()
        reconciled: set[int] = set()
        expired = errors = 0

        for booking_id in list(expired_bookings(now).values_list("pk", flat=True)):
            try:
                if self._expire(booking_id, now, reconciled):
                    expired += 1
            except Exception as e:
                errors += 1
                logger.error(f"Error expiring booking {booking_id}: {e}", exc_info=True)

        summary = {"expired": expired, "errors": errors, "batches_reconciled": len(reconciled)}
        if expired or errors:
            logger.info(f"Expiry sweep finished: {summary}")
        return summary

    def _expire(self, booking_id: int, now: datetime, reconciled: set[int]) -> bool:
        batch_reconciled = False
        with DjangoUnitOfWork() as uow:
            booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
            if booking is None or not booking.session_expired(now):
                return False

            if booking.batch_id not in reconciled:
                self.ledger.reconcile(booking.batch_id, now=now)
                batch_reconciled = True

            failed = FailedBooking.archive(
                booking,
                reason=FailedBooking.FailureReason.SESSION_EXPIRED,
                details=EXPIRY_DETAILS,
                archived_by=FailedBooking.ArchivedBy.SYSTEM,
            )
            booking.delete()
            uow.add_event(BookingExpired(
                aggregate_id=failed.original_booking_id,
                failed_booking_id=failed.pk,
                booking_code=failed.booking_code,
            ))

        if batch_reconciled:
            reconciled.add(failed.batch_id)
        logger.info(f"Booking {failed.booking_code} expired and archived as failed booking {failed.pk}")
        return True


class AutoCancelSweep:
    """Cancel partially paid bookings whose balance is overdue."""

    def run(self, now: datetime | None = None) -> dict[str, int]:
        now = now or timezone.now()
        cancelled = skipped = errors = 0

        for booking_id in list(overdue_partial_bookings(now).values_list("pk", flat=True)):
            try:
                booking = cancel_booking(
                    booking_id,
                    AUTO_CANCEL_REASON,
                    Booking.CancelledBy.SYSTEM,
                    expected_statuses=(BookingStatus.PAYMENT_CONFIRMED_PARTIAL,),
                )
            except Exception as e:
                errors += 1
                logger.error(f"Error auto-cancelling booking {booking_id}: {e}", exc_info=True)
                continue

            if booking.status == BookingStatus.CANCELLED:
                cancelled += 1
            else:
                skipped += 1

        summary = {"cancelled": cancelled, "skipped": skipped, "errors": errors}
        if cancelled or skipped or errors:
            logger.info(f"Auto-cancel sweep finished: {summary}")
        return summary


class PartialPaymentReminderSweep:
    """Remind customers once when their balance falls due within the reminder window."""

    def run(self, now: datetime | None = None) -> dict[str, int]:
        now = now or timezone.now()
        window_end = now + timedelta(days=settings.PARTIAL_PAYMENT_REMINDER_DAYS)
        reminded = errors = 0

        candidates = Booking.objects.filter(
            payment_mode=PaymentMode.PARTIAL,
            status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
            final_payment_due_date__gt=now,
            final_payment_due_date__lte=window_end,
            reminder_sent_at__isnull=True,
        ).values_list("pk", flat=True)

        for booking_id in list(candidates):
            try:
                with DjangoUnitOfWork() as uow:
                    booking = Booking.objects.select_for_update().get(pk=booking_id)
                    if booking.status != BookingStatus.PAYMENT_CONFIRMED_PARTIAL or booking.reminder_sent_at:
                        continue
                    booking.reminder_sent_at = now
                    booking.save(update_fields=["reminder_sent_at", "updated_at"])
                    uow.add_event(PartialPaymentReminderDue(aggregate_id=booking.pk, booking_id=booking.pk))
                reminded += 1
            except Exception as e:
                errors += 1
                logger.error(f"Error sending balance reminder for booking {booking_id}: {e}", exc_info=True)

        summary = {"reminded": reminded, "errors": errors}
        if reminded or errors:
            logger.info(f"Partial payment reminders finished: {summary}")
        return summary


class TrekCompletionSweep:
    """Advance batch statuses by date and close out bookings of finished treks."""

    def run(self, now: datetime | None = None) -> dict[str, int]:
        today = timezone.localdate(now or timezone.now())

        Batch.objects.filter(
            status=Batch.Status.UPCOMING, start_date__lte=today, end_date__gte=today,
        ).update(status=Batch.Status.ONGOING)
        Batch.objects.filter(
            status__in=(Batch.Status.UPCOMING, Batch.Status.ONGOING), end_date__lt=today,
        ).update(status=Batch.Status.COMPLETED)

        completed = errors = 0
        candidates = Booking.objects.filter(
            status=BookingStatus.CONFIRMED, batch__end_date__lt=today,
        ).values_list("pk", flat=True)

        for booking_id in list(candidates):
            try:
                with DjangoUnitOfWork():
                    booking = Booking.objects.select_for_update().get(pk=booking_id)
                    if booking.status != BookingStatus.CONFIRMED:
                        continue
                    booking.transition_to(BookingStatus.TREK_COMPLETED)
                    booking.save(update_fields=["status", "updated_at"])
                completed += 1
            except Exception as e:
                errors += 1
                logger.error(f"Error completing booking {booking_id}: {e}", exc_info=True)

        summary = {"completed": completed, "errors": errors}
        if completed or errors:
            logger.info(f"Trek completion sweep finished: {summary}")
        return summary


def run_expiry_sweep() -> dict[str, int]:
    return ExpirySweep().run()


def run_auto_cancel_sweep() -> dict[str, int]:
    return AutoCancelSweep().run()


def run_partial_payment_reminders() -> dict[str, int]:
    return PartialPaymentReminderSweep().run()


def run_trek_completion_sweep() -> dict[str, int]:
    return TrekCompletionSweep().run()
