"""Tests for the periodic booking sweeps."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.test import TestCase  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings import tasks
from apps.bookings.domain.lifecycle import BookingStatus, PaymentMode
from apps.bookings.models import Booking, FailedBooking
from apps.bookings.sweeps import (
    AUTO_CANCEL_REASON,
    AutoCancelSweep,
    ExpirySweep,
    PartialPaymentReminderSweep,
    TrekCompletionSweep,
)
from apps.treks.models import Batch
from apps.treks.tests.factories import make_batch, make_booking


class ExpirySweepTests(TestCase):
    def setUp(self) -> None:
        self.now = timezone.now()
        self.batch = make_batch(max_participants=10)

    def test_expired_booking_is_archived_and_seats_healed(self) -> None:
        stale = make_booking(self.batch, seats=3, session_expires_at=self.now - timedelta(minutes=1))
        live = make_booking(self.batch, seats=2, session_expires_at=self.now + timedelta(minutes=10))
        Batch.objects.filter(pk=self.batch.pk).update(current_participants=5)

        with self.captureOnCommitCallbacks() as callbacks:
            summary = ExpirySweep().run(now=self.now)

        self.assertEqual(summary, {"expired": 1, "errors": 0, "batches_reconciled": 1})
        self.assertFalse(Booking.objects.filter(pk=stale.pk).exists())
        self.assertTrue(Booking.objects.filter(pk=live.pk).exists())
        failed = FailedBooking.objects.get(booking_code=stale.booking_code)
        self.assertEqual(failed.failure_reason, FailedBooking.FailureReason.SESSION_EXPIRED)
        self.assertEqual(failed.original_booking_id, stale.pk)
        self.assertEqual(failed.number_of_participants, 3)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 2)
        self.assertEqual(len(callbacks), 1)

    def test_batch_is_reconciled_once_per_run(self) -> None:
        for _ in range(3):
            make_booking(self.batch, session_expires_at=self.now - timedelta(minutes=5))

        summary = ExpirySweep().run(now=self.now)

        self.assertEqual(summary["expired"], 3)
        self.assertEqual(summary["batches_reconciled"], 1)

    def test_booking_paid_in_time_is_left_alone(self) -> None:
        make_booking(
            self.batch,
            status=BookingStatus.PAYMENT_COMPLETED,
            session_expires_at=self.now - timedelta(minutes=5),
        )

        summary = ExpirySweep().run(now=self.now)

        self.assertEqual(summary["expired"], 0)
        self.assertEqual(FailedBooking.objects.count(), 0)

    def test_session_ending_exactly_now_counts_as_expired(self) -> None:
        make_booking(self.batch, session_expires_at=self.now)

        self.assertEqual(ExpirySweep().run(now=self.now)["expired"], 1)

    def test_task_wrapper_returns_summary(self) -> None:
        make_booking(self.batch, session_expires_at=timezone.now() - timedelta(minutes=1))

        result = tasks.expire_pending_bookings.delay().get()

        self.assertEqual(result["expired"], 1)


class AutoCancelSweepTests(TestCase):
    def setUp(self) -> None:
        self.now = timezone.now()
        self.batch = make_batch(days_ahead=5, auto_cancel_on_due_date=True)
        Batch.objects.filter(pk=self.batch.pk).update(current_participants=4)

    def overdue(self, **kwargs) -> Booking:
        kwargs.setdefault("status", BookingStatus.PAYMENT_CONFIRMED_PARTIAL)
        kwargs.setdefault("auto_cancel_on_due_date", True)
        return make_booking(
            kwargs.pop("batch", self.batch),
            payment_mode=PaymentMode.PARTIAL,
            total_price=Decimal("1000.00"),
            amount_paid=Decimal("200.00"),
            initial_amount=Decimal("200.00"),
            remaining_amount=Decimal("800.00"),
            final_payment_due_date=self.now - timedelta(hours=1),
            **kwargs,
        )

    def test_overdue_partial_booking_is_cancelled(self) -> None:
        booking = self.overdue()

        summary = AutoCancelSweep().run(now=self.now)

        self.assertEqual(summary, {"cancelled": 1, "skipped": 0, "errors": 0})
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.CANCELLED)
        self.assertEqual(booking.cancelled_by, Booking.CancelledBy.SYSTEM)
        self.assertEqual(booking.cancellation_reason, AUTO_CANCEL_REASON)
        # the initial tranche is the deposit and is kept
        self.assertEqual(booking.refund_amount, Decimal("0.00"))
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 3)

    def test_batch_must_opt_in(self) -> None:
        batch = make_batch(days_ahead=5, auto_cancel_on_due_date=False)
        booking = self.overdue(batch=batch)

        summary = AutoCancelSweep().run(now=self.now)

        self.assertEqual(summary["cancelled"], 0)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PAYMENT_CONFIRMED_PARTIAL)

    def test_booking_must_opt_in(self) -> None:
        booking = self.overdue(auto_cancel_on_due_date=False)

        AutoCancelSweep().run(now=self.now)

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PAYMENT_CONFIRMED_PARTIAL)

    def test_settled_booking_is_not_touched(self) -> None:
        booking = self.overdue(status=BookingStatus.PAYMENT_COMPLETED)

        AutoCancelSweep().run(now=self.now)

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PAYMENT_COMPLETED)

    def test_not_yet_due(self) -> None:
        booking = self.overdue()
        Booking.objects.filter(pk=booking.pk).update(final_payment_due_date=self.now + timedelta(days=1))

        self.assertEqual(AutoCancelSweep().run(now=self.now)["cancelled"], 0)


class ReminderSweepTests(TestCase):
    def test_reminds_once_inside_window(self) -> None:
        now = timezone.now()
        batch = make_batch(days_ahead=10)
        due_soon = make_booking(
            batch,
            status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
            payment_mode=PaymentMode.PARTIAL,
            final_payment_due_date=now + timedelta(days=2),
        )
        make_booking(
            batch,
            status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
            payment_mode=PaymentMode.PARTIAL,
            final_payment_due_date=now + timedelta(days=9),
        )

        first = PartialPaymentReminderSweep().run(now=now)
        second = PartialPaymentReminderSweep().run(now=now)

        self.assertEqual(first["reminded"], 1)
        self.assertEqual(second["reminded"], 0)
        due_soon.refresh_from_db()
        self.assertEqual(due_soon.reminder_sent_at, now)


class TrekCompletionSweepTests(TestCase):
    def test_finished_batches_close_out_confirmed_bookings(self) -> None:
        past = make_batch(days_ahead=-10, length=3)
        current = make_batch(days_ahead=-1, length=3)
        confirmed = make_booking(past, status=BookingStatus.CONFIRMED)
        cancelled = make_booking(past, status=BookingStatus.CANCELLED)

        summary = TrekCompletionSweep().run()

        self.assertEqual(summary, {"completed": 1, "errors": 0})
        confirmed.refresh_from_db()
        cancelled.refresh_from_db()
        self.assertEqual(confirmed.status, BookingStatus.TREK_COMPLETED)
        self.assertEqual(cancelled.status, BookingStatus.CANCELLED)
        past.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(past.status, Batch.Status.COMPLETED)
        self.assertEqual(current.status, Batch.Status.ONGOING)


@pytest.mark.django_db
def test_empty_sweeps_report_zeroes() -> None:
    assert ExpirySweep().run() == {"expired": 0, "errors": 0, "batches_reconciled": 0}
    assert AutoCancelSweep().run() == {"cancelled": 0, "skipped": 0, "errors": 0}
