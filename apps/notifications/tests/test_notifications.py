"""Tests for booking notifications and invoices."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core import mail  # type: ignore
from django.test import TestCase  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.application.command_handlers import cancel_booking
from apps.bookings.domain.lifecycle import BookingStatus, PaymentMode
from apps.bookings.models import Booking
from apps.bookings.sweeps import ExpirySweep
from apps.notifications import tasks
from apps.notifications.invoices import invoice_number, render_invoice_pdf
from apps.notifications.services import notifier, send_email_notification
from apps.payments.models import PaymentEvent
from apps.payments.reconciler import PaymentReconciler
from apps.treks.tests.factories import make_batch, make_booking, make_user
from shared.domain.value_objects import Money


class PaymentNotificationTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user(first_name="Asha", last_name="Rao")
        self.batch = make_batch()

    def test_full_payment_sends_receipt_with_invoice(self) -> None:
        booking = make_booking(self.batch, self.user, total_price=Decimal("1000.00"))

        with self.captureOnCommitCallbacks(execute=True):
            PaymentReconciler().apply_payment(booking.pk, "pay_1", Money(Decimal("1000.00")))

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertIn(booking.booking_code, message.subject)
        self.assertEqual(message.to, [self.user.email])
        self.assertIn("Asha Rao", message.body)
        self.assertEqual(len(message.attachments), 1)
        filename, content, mimetype = message.attachments[0]
        self.assertTrue(filename.startswith(f"INV-{booking.booking_code}-"))
        self.assertTrue(content.startswith(b"%PDF"))
        self.assertEqual(mimetype, "application/pdf")

    def test_initial_tranche_receipt_has_no_invoice(self) -> None:
        booking = make_booking(
            self.batch,
            self.user,
            payment_mode=PaymentMode.PARTIAL,
            total_price=Decimal("1000.00"),
            initial_amount=Decimal("200.00"),
            remaining_amount=Decimal("800.00"),
        )

        with self.captureOnCommitCallbacks(execute=True):
            PaymentReconciler().apply_payment(booking.pk, "pay_1", Money(Decimal("200.00")))

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].attachments, [])
        self.assertIn("800.00", mail.outbox[0].body)

    def test_invoice_failure_still_sends_receipt(self) -> None:
        booking = make_booking(self.batch, self.user, total_price=Decimal("1000.00"))

        with patch("apps.notifications.tasks.render_invoice_pdf", side_effect=RuntimeError("font missing")):
            with self.captureOnCommitCallbacks(execute=True):
                PaymentReconciler().apply_payment(booking.pk, "pay_1", Money(Decimal("1000.00")))

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].attachments, [])

    def test_mail_failure_does_not_undo_payment(self) -> None:
        booking = make_booking(self.batch, self.user, total_price=Decimal("1000.00"))

        with patch("apps.notifications.services.EmailMessage.send", side_effect=OSError("smtp down")):
            with self.captureOnCommitCallbacks(execute=True):
                outcome = PaymentReconciler().apply_payment(booking.pk, "pay_1", Money(Decimal("1000.00")))

        self.assertTrue(outcome.settled)
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.PAYMENT_COMPLETED)


class LifecycleNotificationTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user()
        self.batch = make_batch(days_ahead=40)

    def test_cancellation_email(self) -> None:
        booking = make_booking(self.batch, self.user)

        with self.captureOnCommitCallbacks(execute=True):
            cancel_booking(booking.pk, "Knee injury", Booking.CancelledBy.USER)

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("cancelled", mail.outbox[0].subject)
        self.assertIn("Knee injury", mail.outbox[0].body)

    def test_expiry_email(self) -> None:
        booking = make_booking(self.batch, self.user, session_expires_at=timezone.now() - timedelta(minutes=1))

        with self.captureOnCommitCallbacks(execute=True):
            ExpirySweep().run()

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(booking.booking_code, mail.outbox[0].subject)
        self.assertIn("expired", mail.outbox[0].subject)

    def test_reminder_task(self) -> None:
        booking = make_booking(
            self.batch,
            self.user,
            status=BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
            payment_mode=PaymentMode.PARTIAL,
            remaining_amount=Decimal("800.00"),
            final_payment_due_date=timezone.now() + timedelta(days=2),
        )

        self.assertTrue(tasks.send_partial_payment_reminder(booking.pk))
        self.assertIn("Balance due", mail.outbox[0].subject)

    def test_task_for_missing_booking_returns_false(self) -> None:
        self.assertFalse(tasks.send_booking_confirmed(987654))
        self.assertEqual(mail.outbox, [])


class NotifierTests(TestCase):
    def test_recipient_without_email_is_skipped(self) -> None:
        self.assertFalse(send_email_notification("", "Subject", "notifications/booking_expired.txt", {}))
        self.assertEqual(mail.outbox, [])

    def test_subject_is_formatted_from_context(self) -> None:
        sent = notifier.send(
            "booking_expired",
            "hiker@example.com",
            {"booking_code": "TRK12345678", "customer_name": "Hiker", "trek_name": "Hampta Pass"},
        )

        self.assertTrue(sent)
        self.assertEqual(mail.outbox[0].subject, "Your booking TRK12345678 has expired")


class InvoiceTests(TestCase):
    def test_partial_plan_invoice_number(self) -> None:
        booking = make_booking(make_batch(), payment_mode=PaymentMode.PARTIAL, remaining_amount=Decimal("0"))
        payment = PaymentEvent.objects.create(
            booking=booking,
            booking_code=booking.booking_code,
            gateway_payment_id="pay_inv",
            amount=Decimal("800.00"),
            source=PaymentEvent.Source.VERIFY,
            outcome=PaymentEvent.Outcome.APPLIED,
            status_before=BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
            status_after=BookingStatus.PAYMENT_COMPLETED,
        )

        self.assertEqual(invoice_number(booking, payment), f"FP-INV-{booking.booking_code}-{payment.pk}")
        self.assertTrue(render_invoice_pdf(booking, payment).startswith(b"%PDF"))
