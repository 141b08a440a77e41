"""Tests for booking creation, cancellation and participant submission."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.application.command_handlers import (
    cancel_booking,
    create_booking,
    restore_failed_booking,
    submit_participant_details,
)
from apps.bookings.domain.lifecycle import BookingStatus, PaymentMode
from apps.bookings.exceptions import (
    ActiveBookingExists,
    BatchNotBookable,
    BookingError,
    CapacityExceeded,
    InvalidStateTransition,
    ParticipantDetailsInvalid,
    PromoCodeInvalid,
)
from apps.bookings.models import Booking, FailedBooking
from apps.promotions.models import PromoCode
from apps.treks.ledger import seat_ledger
from apps.treks.models import Batch
from apps.treks.tests.factories import make_batch, make_booking, make_trek, make_user

PARTICIPANT = {"name": "Asha Rao", "age": 29, "gender": "female"}


class CreateBookingTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user()
        self.trek = make_trek(partial_payment_enabled=True, initial_payment_percent=20, final_payment_days_before=7)
        self.batch = make_batch(self.trek, max_participants=5, price=Decimal("1000.00"))

    def create(self, seats=2, **kwargs) -> Booking:
        return create_booking(
            user_id=kwargs.pop("user_id", self.user.id),
            trek_id=self.trek.id,
            batch_id=self.batch.id,
            number_of_participants=seats,
            **kwargs,
        )

    def test_reserves_seats_and_opens_session(self) -> None:
        before = timezone.now()
        booking = self.create(seats=2)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 2)
        self.assertEqual(booking.status, BookingStatus.PENDING_PAYMENT)
        self.assertEqual(booking.total_price, Decimal("2000.00"))
        self.assertTrue(booking.booking_code.startswith("TRK"))
        self.assertGreaterEqual(booking.session_expires_at, before + timedelta(minutes=15))

    def test_partial_plan_fields(self) -> None:
        booking = self.create(seats=1, payment_mode=PaymentMode.PARTIAL)

        self.assertEqual(booking.initial_amount, Decimal("200.00"))
        self.assertEqual(booking.remaining_amount, Decimal("800.00"))
        self.assertTrue(booking.auto_cancel_on_due_date)
        due = timezone.localtime(booking.final_payment_due_date)
        self.assertEqual(due.date(), self.batch.start_date - timedelta(days=7))
        self.assertEqual((due.hour, due.minute), (23, 59))

    def test_partial_requires_trek_opt_in(self) -> None:
        self.trek.partial_payment_enabled = False
        self.trek.save()

        with self.assertRaises(BookingError):
            self.create(payment_mode=PaymentMode.PARTIAL)

    def test_capacity_exceeded_creates_nothing(self) -> None:
        self.create(seats=4)

        with self.assertRaises(CapacityExceeded):
            self.create(seats=2, user_id=make_user().id)

        self.assertEqual(Booking.objects.count(), 1)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 4)

    def test_second_unpaid_booking_for_same_batch_is_refused(self) -> None:
        self.create(seats=1)

        with self.assertRaises(ActiveBookingExists):
            self.create(seats=1)

    def test_closed_batch(self) -> None:
        Batch.objects.filter(pk=self.batch.pk).update(status=Batch.Status.ONGOING)

        with self.assertRaises(BatchNotBookable):
            self.create()

    def test_promo_code_discount(self) -> None:
        PromoCode.objects.create(
            code="monsoon10",
            discount_type=PromoCode.DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            valid_until=timezone.now() + timedelta(days=30),
        )

        booking = self.create(seats=2, promo_code="MONSOON10")

        self.assertEqual(booking.discount_amount, Decimal("200.00"))
        self.assertEqual(booking.total_price, Decimal("1800.00"))
        self.assertEqual(booking.promo_code_value, "MONSOON10")

    def test_invalid_promo_code_leaves_seats_alone(self) -> None:
        with self.assertRaises(PromoCodeInvalid):
            self.create(promo_code="NOPE")

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 0)


class CancelBookingTests(TestCase):
    def setUp(self) -> None:
        self.batch = make_batch(days_ahead=25, max_participants=10)
        Batch.objects.filter(pk=self.batch.pk).update(current_participants=2)

    def test_customer_cancellation_quotes_refund_and_releases_seats(self) -> None:
        booking = make_booking(
            self.batch, seats=2, status=BookingStatus.PAYMENT_COMPLETED,
            total_price=Decimal("1000.00"), amount_paid=Decimal("1000.00"),
        )

        booking = cancel_booking(booking.pk, "Change of plans", Booking.CancelledBy.USER)

        self.assertEqual(booking.status, BookingStatus.CANCELLED)
        self.assertEqual(booking.refund_amount, Decimal("800.00"))
        self.assertEqual(booking.refund_status, Booking.RefundStatus.PROCESSING)
        self.assertEqual(booking.cancelled_by, Booking.CancelledBy.USER)
        self.assertIsNotNone(booking.cancelled_at)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 0)

    def test_unpaid_cancellation_has_no_refund(self) -> None:
        booking = make_booking(self.batch, seats=2)

        booking = cancel_booking(booking.pk, "Not going", Booking.CancelledBy.USER)

        self.assertEqual(booking.refund_amount, Decimal("0"))
        self.assertEqual(booking.refund_status, "")

    def test_company_cancellation_uses_company_schedule(self) -> None:
        batch = make_batch(days_ahead=20)
        booking = make_booking(
            batch, status=BookingStatus.CONFIRMED,
            total_price=Decimal("1000.00"), amount_paid=Decimal("1000.00"),
        )

        booking = cancel_booking(booking.pk, "Weather", Booking.CancelledBy.ADMIN, company_initiated=True)

        self.assertEqual(booking.refund_amount, Decimal("500.00"))
        self.assertEqual(booking.refund_credit_amount, Decimal("500.00"))

    def test_cancelling_twice_is_a_no_op(self) -> None:
        booking = make_booking(self.batch, seats=2)
        cancel_booking(booking.pk, "first", Booking.CancelledBy.USER)

        again = cancel_booking(booking.pk, "second", Booking.CancelledBy.USER)

        self.assertEqual(again.cancellation_reason, "first")
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 0)

    def test_finished_trek_cannot_be_cancelled(self) -> None:
        booking = make_booking(self.batch, status=BookingStatus.TREK_COMPLETED)

        with self.assertRaises(InvalidStateTransition):
            cancel_booking(booking.pk, "late", Booking.CancelledBy.USER)

        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.TREK_COMPLETED)

    def test_expected_status_guard_skips_moved_booking(self) -> None:
        booking = make_booking(self.batch, status=BookingStatus.PAYMENT_COMPLETED)

        result = cancel_booking(
            booking.pk, "overdue", Booking.CancelledBy.SYSTEM,
            expected_statuses=(BookingStatus.PAYMENT_CONFIRMED_PARTIAL,),
        )

        self.assertEqual(result.status, BookingStatus.PAYMENT_COMPLETED)

    def test_cancelling_lapsed_hold_after_reconcile_keeps_other_seats(self) -> None:
        make_booking(self.batch, seats=2, status=BookingStatus.PAYMENT_COMPLETED)
        lapsed = make_booking(self.batch, seats=1, session_expires_at=timezone.now() - timedelta(minutes=1))
        seat_ledger.reconcile(self.batch.pk)

        cancel_booking(lapsed.pk, "Changed mind", Booking.CancelledBy.USER)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 2)

    def test_cancelling_lapsed_hold_still_counted_frees_its_seats(self) -> None:
        make_booking(self.batch, seats=2, status=BookingStatus.PAYMENT_COMPLETED)
        lapsed = make_booking(self.batch, seats=1, session_expires_at=timezone.now() - timedelta(minutes=1))
        Batch.objects.filter(pk=self.batch.pk).update(current_participants=3)

        cancel_booking(lapsed.pk, "Changed mind", Booking.CancelledBy.USER)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 2)


class SubmitParticipantsTests(TestCase):
    def setUp(self) -> None:
        self.batch = make_batch()

    def test_completed_booking_becomes_confirmed(self) -> None:
        booking = make_booking(self.batch, seats=2, status=BookingStatus.PAYMENT_COMPLETED)

        with self.captureOnCommitCallbacks() as callbacks:
            booking = submit_participant_details(booking.pk, [PARTICIPANT, {**PARTICIPANT, "name": "Vikram"}])

        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(booking.participants.count(), 2)
        self.assertEqual(len(callbacks), 1)

    def test_partial_booking_stores_details_without_confirming(self) -> None:
        booking = make_booking(self.batch, status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL)

        booking = submit_participant_details(booking.pk, [PARTICIPANT])

        self.assertEqual(booking.status, BookingStatus.PAYMENT_CONFIRMED_PARTIAL)
        self.assertTrue(booking.has_participant_details)

    def test_resubmission_replaces_details(self) -> None:
        booking = make_booking(self.batch, status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL)
        submit_participant_details(booking.pk, [PARTICIPANT])
        submit_participant_details(booking.pk, [{**PARTICIPANT, "name": "Meera"}])

        self.assertEqual(list(booking.participants.values_list("name", flat=True)), ["Meera"])

    def test_count_must_match(self) -> None:
        booking = make_booking(self.batch, seats=2, status=BookingStatus.PAYMENT_COMPLETED)

        with self.assertRaises(ParticipantDetailsInvalid):
            submit_participant_details(booking.pk, [PARTICIPANT])

    def test_unpaid_booking_is_refused(self) -> None:
        booking = make_booking(self.batch)

        with self.assertRaises(ParticipantDetailsInvalid):
            submit_participant_details(booking.pk, [PARTICIPANT])


class RestoreFailedBookingTests(TestCase):
    def setUp(self) -> None:
        self.batch = make_batch(max_participants=3)
        expired = make_booking(self.batch, seats=2, session_expires_at=timezone.now() - timedelta(minutes=1))
        self.failed = FailedBooking.archive(
            expired,
            reason=FailedBooking.FailureReason.SESSION_EXPIRED,
            details="expired",
            archived_by=FailedBooking.ArchivedBy.SYSTEM,
        )
        expired.delete()

    def test_restore_reopens_booking_and_removes_archive(self) -> None:
        booking = restore_failed_booking(self.failed.pk)

        self.assertEqual(booking.status, BookingStatus.PENDING_PAYMENT)
        self.assertEqual(booking.number_of_participants, 2)
        self.assertNotEqual(booking.booking_code, self.failed.booking_code)
        self.assertGreater(booking.session_expires_at, timezone.now())
        self.assertFalse(FailedBooking.objects.filter(pk=self.failed.pk).exists())
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.current_participants, 2)

    def test_restore_fails_when_seats_are_gone(self) -> None:
        Batch.objects.filter(pk=self.batch.pk).update(current_participants=3)

        with self.assertRaises(CapacityExceeded):
            restore_failed_booking(self.failed.pk)

        self.assertTrue(FailedBooking.objects.filter(pk=self.failed.pk).exists())

    def test_archive_rows_are_immutable(self) -> None:
        self.failed.failure_details = "edited"
        with self.assertRaises(ValueError):
            self.failed.save()
