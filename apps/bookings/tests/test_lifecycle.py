"""Unit tests for the booking state machine and payment decisions."""

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase  # type: ignore

from apps.bookings.domain.lifecycle import (
    BookingStatus,
    PaymentMode,
    can_transition,
    decide_payment,
    ensure_transition,
    is_terminal,
)
from apps.bookings.exceptions import InvalidStateTransition

S = BookingStatus


class TransitionTableTests(SimpleTestCase):
    def test_forward_paths_are_allowed(self) -> None:
        allowed = [
            (S.PENDING_PAYMENT, S.PAYMENT_COMPLETED),
            (S.PENDING_PAYMENT, S.PAYMENT_CONFIRMED_PARTIAL),
            (S.PENDING_PAYMENT, S.PENDING_PAYMENT),
            (S.PAYMENT_CONFIRMED_PARTIAL, S.CONFIRMED),
            (S.PAYMENT_CONFIRMED_PARTIAL, S.PAYMENT_COMPLETED),
            (S.PAYMENT_COMPLETED, S.CONFIRMED),
            (S.CONFIRMED, S.TREK_COMPLETED),
        ]
        for current, target in allowed:
            with self.subTest(current=current, target=target):
                self.assertTrue(can_transition(current, target))

    def test_everything_but_finished_treks_can_be_cancelled(self) -> None:
        for status in (S.PENDING_PAYMENT, S.PAYMENT_CONFIRMED_PARTIAL, S.PAYMENT_COMPLETED, S.CONFIRMED):
            with self.subTest(status=status):
                self.assertTrue(can_transition(status, S.CANCELLED))
        self.assertFalse(can_transition(S.TREK_COMPLETED, S.CANCELLED))

    def test_no_way_back(self) -> None:
        with self.assertRaises(InvalidStateTransition) as ctx:
            ensure_transition(S.PAYMENT_COMPLETED, S.PENDING_PAYMENT)
        self.assertEqual(ctx.exception.current, S.PAYMENT_COMPLETED)
        self.assertEqual(ctx.exception.target, S.PENDING_PAYMENT)

    def test_terminal_statuses(self) -> None:
        self.assertTrue(is_terminal(S.CANCELLED))
        self.assertTrue(is_terminal(S.TREK_COMPLETED))
        self.assertFalse(is_terminal(S.CONFIRMED))


class DecidePaymentTests(SimpleTestCase):
    total = Decimal("1000.00")
    initial = Decimal("200.00")

    def decide(self, status, paid, payment, *, mode=PaymentMode.PARTIAL, participants=False):
        return decide_payment(
            status=status,
            payment_mode=mode,
            total=self.total,
            amount_paid=Decimal(paid),
            payment=Decimal(payment),
            initial_amount=self.initial if mode == PaymentMode.PARTIAL else None,
            has_participants=participants,
        )

    def test_full_payment_completes(self) -> None:
        decision = self.decide(S.PENDING_PAYMENT, "0", "1000", mode=PaymentMode.FULL)
        self.assertEqual(decision.status, S.PAYMENT_COMPLETED)
        self.assertTrue(decision.final_settlement)
        self.assertTrue(decision.settled)

    def test_short_full_payment_stays_pending(self) -> None:
        decision = self.decide(S.PENDING_PAYMENT, "0", "400", mode=PaymentMode.FULL)
        self.assertEqual(decision.status, S.PENDING_PAYMENT)
        self.assertEqual(decision.amount_paid, Decimal("400"))
        self.assertFalse(decision.final_settlement)

    def test_partial_progression(self) -> None:
        first = self.decide(S.PENDING_PAYMENT, "0", "150")
        self.assertEqual(first.status, S.PENDING_PAYMENT)
        self.assertEqual(first.remaining_amount, Decimal("850"))

        second = self.decide(first.status, first.amount_paid, "50")
        self.assertEqual(second.status, S.PAYMENT_CONFIRMED_PARTIAL)
        self.assertEqual(second.remaining_amount, Decimal("800"))

        third = self.decide(second.status, second.amount_paid, "800")
        self.assertEqual(third.status, S.PAYMENT_COMPLETED)
        self.assertEqual(third.remaining_amount, Decimal("0"))
        self.assertTrue(third.final_settlement)

    def test_balance_with_participants_confirms(self) -> None:
        decision = self.decide(S.PAYMENT_CONFIRMED_PARTIAL, "200", "800", participants=True)
        self.assertEqual(decision.status, S.CONFIRMED)

    def test_part_of_the_balance_keeps_booking_partial(self) -> None:
        decision = self.decide(S.PAYMENT_CONFIRMED_PARTIAL, "200", "300")
        self.assertEqual(decision.status, S.PAYMENT_CONFIRMED_PARTIAL)
        self.assertEqual(decision.remaining_amount, Decimal("500"))
        self.assertFalse(decision.final_settlement)

    def test_paying_everything_upfront_on_partial_plan(self) -> None:
        decision = self.decide(S.PENDING_PAYMENT, "0", "1000", participants=True)
        self.assertEqual(decision.status, S.PAYMENT_COMPLETED)

    def test_unpayable_status_raises(self) -> None:
        with self.assertRaises(InvalidStateTransition):
            self.decide(S.CANCELLED, "0", "100")
