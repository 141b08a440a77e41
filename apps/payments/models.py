"""Append-only record of verified gateway payments."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class PaymentEvent(models.Model):
    """One verified payment from the gateway.

    The (booking_code, gateway_payment_id) pair is the idempotency key: a
    retried verify call or a redelivered webhook hits the unique constraint
    instead of being applied twice.
    """

    class Source(models.TextChoices):
        VERIFY = "verify", _("Client verification")
        WEBHOOK = "webhook", _("Gateway webhook")

    class Outcome(models.TextChoices):
        APPLIED = "applied", _("Applied to booking")
        IGNORED = "ignored", _("Booking no longer payable")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_events",
    )
    booking_code = models.CharField(max_length=16)
    gateway_payment_id = models.CharField(max_length=64)
    gateway_order_id = models.CharField(max_length=64, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="INR")
    method = models.CharField(max_length=32, blank=True)
    source = models.CharField(max_length=16, choices=Source.choices)
    outcome = models.CharField(max_length=16, choices=Outcome.choices)
    status_before = models.CharField(max_length=32)
    status_after = models.CharField(max_length=32)
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking_code", "gateway_payment_id"],
                name="uniq_payment_event_per_booking",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.gateway_payment_id} -> {self.booking_code} ({self.outcome})"
