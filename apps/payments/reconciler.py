"""
Payment Reconciler

Turns verified gateway payments into booking state changes.

Both entry points (the client's verify call and the gateway webhook) end in
``apply_payment``, which:

1. locks the booking row, serialising every payment for that booking
   (and any concurrent auto-cancel) behind one transaction;
2. refuses a (booking, gateway payment id) pair it has already recorded;
3. takes the seats back through the ledger when the hold lapsed first;
4. advances the lifecycle, updates the running totals and counts promo usage;
5. queues notification/invoice events for after the commit.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money
from apps.bookings.application.command_handlers import lock_booking, session_expiry
from apps.bookings.domain.events import BookingConfirmed, PaymentApplied
from apps.bookings.domain.lifecycle import (
    PAYABLE_STATUSES,
    BookingStatus,
    PaymentMode,
    decide_payment,
)
from apps.bookings.exceptions import BatchNotBookable, BookingError, BookingNotFound, CapacityExceeded
from apps.bookings.models import Booking
from apps.promotions.services import record_promo_usage
from apps.treks.ledger import seat_ledger

from .exceptions import AlreadySettled, GatewayRejected, NothingToPay, SignatureInvalid
from .gateway import PaymentGateway, get_gateway
from .models import PaymentEvent

logger = logging.getLogger(__name__)

SETTLED_STATUSES = (
    BookingStatus.PAYMENT_COMPLETED,
    BookingStatus.CONFIRMED,
    BookingStatus.TREK_COMPLETED,
)
CAPTURED_PAYMENT_STATUSES = ("captured", "authorized")
APPLIED_WEBHOOK_EVENTS = ("payment.captured", "order.paid")


@dataclass(frozen=True)
class PaymentOutcome:
    """Definitive answer for the caller, independent of notification delivery."""

    booking_id: int | None
    status: str
    settled: bool
    applied: bool
    duplicate: bool = False
    remaining_amount: Decimal | None = None

    @classmethod
    def for_booking(cls, booking: Booking, *, applied: bool, duplicate: bool = False) -> "PaymentOutcome":
        return cls(
            booking_id=booking.pk,
            status=booking.status,
            settled=booking.status in SETTLED_STATUSES,
            applied=applied,
            duplicate=duplicate,
            remaining_amount=booking.remaining_amount,
        )


def payable_amount(booking: Booking) -> Decimal:
    """Amount the next checkout for this booking should charge."""
    if booking.status not in PAYABLE_STATUSES:
        return Decimal("0.00")
    if booking.payment_mode == PaymentMode.FULL:
        return max(booking.total_price - booking.amount_paid, Decimal("0.00"))
    if booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL:
        return booking.remaining_amount or Decimal("0.00")
    return max((booking.initial_amount or Decimal("0.00")) - booking.amount_paid, Decimal("0.00"))


class PaymentReconciler:
    def __init__(self, gateway: PaymentGateway | None = None):
        self.gateway = gateway or get_gateway()

    # ----- orders -----

    def create_order(self, booking_id: int) -> dict:
        try:
            booking = Booking.objects.get(pk=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFound(f"Booking {booking_id} not found")

        if booking.session_expired():
            raise BookingError(f"Booking {booking.booking_code} session has expired")

        amount = payable_amount(booking)
        if amount <= 0:
            raise NothingToPay(f"Booking {booking.booking_code} has nothing left to pay")

        balance = booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL
        receipt = f"{'rb' if balance else 'booking'}_{booking.booking_code}"
        order = self.gateway.create_order(
            Money(amount, booking.currency),
            receipt=receipt,
            notes={
                "booking_id": str(booking.pk),
                "booking_code": booking.booking_code,
                "payment_stage": "balance" if balance else booking.payment_mode,
            },
        )
        return {
            "order_id": order["id"],
            "amount": str(amount),
            "amount_minor": order["amount"],
            "currency": order["currency"],
            "key_id": self.gateway.key_id,
            "booking_id": booking.pk,
        }

    # ----- verification -----

    def verify_and_apply(
        self,
        booking_id: int,
        gateway_payment_id: str,
        amount_minor: int | None,
        signature: str,
        *,
        order_id: str,
    ) -> PaymentOutcome:
        """Verify a checkout signature and apply the payment.

        Outside the sandbox the payment is fetched from the gateway and its
        captured amount wins over the amount reported by the client.
        """
        if not self.gateway.verify_payment_signature(order_id, gateway_payment_id, signature):
            logger.warning(
                f"Invalid payment signature for booking {booking_id}, payment {gateway_payment_id}"
            )
            raise SignatureInvalid("Payment signature verification failed")

        method = ""
        currency = settings.BOOKING_CURRENCY
        if not self.gateway.sandbox:
            payment = self.gateway.fetch_payment(gateway_payment_id)
            if payment["status"] not in CAPTURED_PAYMENT_STATUSES:
                raise GatewayRejected(f"Payment {gateway_payment_id} is {payment['status']}")
            if amount_minor is not None and payment["amount"] != amount_minor:
                logger.warning(
                    f"Client reported {amount_minor} for payment {gateway_payment_id}, "
                    f"gateway says {payment['amount']}"
                )
            amount_minor = payment["amount"]
            method = payment["method"]
            currency = payment["currency"]

        if amount_minor is None:
            raise GatewayRejected(f"Amount for payment {gateway_payment_id} is unknown")

        try:
            return self.apply_payment(
                booking_id,
                gateway_payment_id,
                Money.from_minor_units(amount_minor, currency),
                order_id=order_id,
                method=method,
                source=PaymentEvent.Source.VERIFY,
            )
        except AlreadySettled as e:
            logger.info(str(e))
            return PaymentOutcome.for_booking(Booking.objects.get(pk=booking_id), applied=False, duplicate=True)

    def handle_webhook(self, raw_body: bytes, signature: str) -> PaymentOutcome | None:
        """Apply a signed gateway webhook. Returns None when there is nothing to apply."""
        if not self.gateway.verify_webhook_signature(raw_body, signature):
            logger.warning("Rejected webhook with invalid signature")
            raise SignatureInvalid("Webhook signature verification failed")

        payload = json.loads(raw_body)
        event_type = payload.get("event")
        if event_type not in APPLIED_WEBHOOK_EVENTS:
            logger.info(f"Ignoring webhook event {event_type}")
            return None

        entity = payload["payload"]["payment"]["entity"]
        booking_id = (entity.get("notes") or {}).get("booking_id")
        if not booking_id:
            logger.warning(f"Webhook payment {entity.get('id')} carries no booking reference")
            return None

        try:
            return self.apply_payment(
                int(booking_id),
                entity["id"],
                Money.from_minor_units(entity["amount"], entity.get("currency", "INR")),
                order_id=entity.get("order_id") or "",
                method=entity.get("method") or "",
                source=PaymentEvent.Source.WEBHOOK,
            )
        except BookingNotFound:
            # Acknowledge anyway so the gateway stops redelivering
            logger.error(f"Webhook payment {entity['id']} references missing booking {booking_id}")
            return None
        except AlreadySettled as e:
            logger.info(str(e))
            return PaymentOutcome.for_booking(Booking.objects.get(pk=booking_id), applied=False, duplicate=True)

    # ----- application -----

    def apply_payment(
        self,
        booking_id: int,
        gateway_payment_id: str,
        amount: Money,
        *,
        order_id: str = "",
        method: str = "",
        source: str = PaymentEvent.Source.VERIFY,
    ) -> PaymentOutcome:
        with DjangoUnitOfWork() as uow:
            booking = lock_booking(booking_id)

            if PaymentEvent.objects.filter(
                booking_code=booking.booking_code,
                gateway_payment_id=gateway_payment_id,
            ).exists():
                raise AlreadySettled(booking.booking_code, gateway_payment_id)

            status_before = booking.status

            if status_before not in PAYABLE_STATUSES:
                self._record_event(
                    booking, gateway_payment_id, amount, order_id, method, source,
                    outcome=PaymentEvent.Outcome.IGNORED, status_before=status_before,
                )
                logger.warning(
                    f"Payment {gateway_payment_id} of {amount} arrived for booking "
                    f"{booking.booking_code} in status {status_before}; needs manual refund"
                )
                return PaymentOutcome.for_booking(booking, applied=False)

            if status_before == BookingStatus.PENDING_PAYMENT and booking.session_expired():
                try:
                    self._readmit(booking)
                except (CapacityExceeded, BatchNotBookable) as e:
                    self._record_event(
                        booking, gateway_payment_id, amount, order_id, method, source,
                        outcome=PaymentEvent.Outcome.IGNORED, status_before=status_before,
                    )
                    logger.warning(
                        f"Payment {gateway_payment_id} of {amount} arrived after the hold on "
                        f"booking {booking.booking_code} lapsed and its seats are gone ({e}); "
                        f"needs manual refund"
                    )
                    return PaymentOutcome.for_booking(booking, applied=False)

            decision = decide_payment(
                status=booking.status,
                payment_mode=booking.payment_mode,
                total=booking.total_price,
                amount_paid=booking.amount_paid,
                payment=amount.amount,
                initial_amount=booking.initial_amount,
                has_participants=booking.has_participant_details,
            )

            status_changed = decision.status != status_before
            if status_changed or status_before == BookingStatus.PENDING_PAYMENT:
                booking.transition_to(decision.status)

            booking.amount_paid = decision.amount_paid
            if booking.payment_mode == PaymentMode.PARTIAL:
                booking.remaining_amount = decision.remaining_amount
                if decision.final_settlement:
                    booking.final_payment_date = timezone.now()
            if decision.status == BookingStatus.PENDING_PAYMENT:
                # Re-armed: the customer gets a fresh hold to pay the shortfall
                booking.session_expires_at = session_expiry(timezone.now())
            booking.save()

            payment_event = self._record_event(
                booking, gateway_payment_id, amount, order_id, method, source,
                outcome=PaymentEvent.Outcome.APPLIED, status_before=status_before,
            )

            record_promo_usage(booking)

            uow.add_event(PaymentApplied(
                aggregate_id=booking.pk,
                booking_id=booking.pk,
                payment_event_id=payment_event.pk,
                status=booking.status,
                final_settlement=decision.final_settlement,
            ))
            if booking.status == BookingStatus.CONFIRMED and status_changed:
                uow.add_event(BookingConfirmed(aggregate_id=booking.pk, booking_id=booking.pk))

        logger.info(
            f"Applied payment {gateway_payment_id} ({amount}) to booking {booking.booking_code}: "
            f"{status_before} -> {booking.status}, paid {booking.amount_paid}"
        )
        return PaymentOutcome.for_booking(booking, applied=True)

    def _readmit(self, booking: Booking) -> None:
        """Take seats again for a booking whose hold lapsed before the payment arrived.

        The lapsed hold may or may not still be counted, depending on whether
        the batch was reconciled since it expired, so the counter is rebuilt
        under the batch lock before the seats go back through ``reserve``.
        """
        seat_ledger.reconcile(booking.batch_id)
        seat_ledger.reserve(booking.batch_id, booking.number_of_participants)
        logger.info(f"Re-admitted lapsed booking {booking.booking_code} on payment")

    def _record_event(
        self, booking, gateway_payment_id, amount, order_id, method, source, *, outcome, status_before
    ) -> PaymentEvent:
        try:
            with transaction.atomic():
                return PaymentEvent.objects.create(
                    booking=booking,
                    booking_code=booking.booking_code,
                    gateway_payment_id=gateway_payment_id,
                    gateway_order_id=order_id,
                    amount=amount.amount,
                    currency=amount.currency,
                    method=method,
                    source=source,
                    outcome=outcome,
                    status_before=status_before,
                    status_after=booking.status,
                )
        except IntegrityError:
            raise AlreadySettled(booking.booking_code, gateway_payment_id)


def verify_and_apply(
    booking_id: int,
    gateway_payment_id: str,
    amount_minor: int | None,
    signature: str,
    *,
    order_id: str,
) -> PaymentOutcome:
    return PaymentReconciler().verify_and_apply(
        booking_id, gateway_payment_id, amount_minor, signature, order_id=order_id
    )
