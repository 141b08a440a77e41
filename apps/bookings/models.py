"""Booking domain models."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.lifecycle import BookingStatus, PaymentMode, ensure_transition


def generate_booking_code() -> str:
    return f"TRK{secrets.token_hex(4).upper()}"


class Booking(models.Model):
    """One customer's claim on seats of a batch."""

    Status = BookingStatus
    PaymentMode = PaymentMode

    class CancelledBy(models.TextChoices):
        USER = "user", _("User")
        ADMIN = "admin", _("Admin")
        SYSTEM = "system", _("System")

    class RefundStatus(models.TextChoices):
        PROCESSING = "processing", _("Processing")
        SUCCESS = "success", _("Success")
        FAILED = "failed", _("Failed")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="trek_bookings",
    )
    trek = models.ForeignKey("treks.Trek", on_delete=models.PROTECT, related_name="bookings")
    batch = models.ForeignKey("treks.Batch", on_delete=models.PROTECT, related_name="bookings")
    booking_code = models.CharField(
        max_length=16, unique=True, editable=False, default=generate_booking_code
    )
    number_of_participants = models.PositiveSmallIntegerField(default=1)
    status = models.CharField(
        max_length=32,
        choices=BookingStatus.choices,
        default=BookingStatus.PENDING_PAYMENT,
    )
    payment_mode = models.CharField(
        max_length=16,
        choices=PaymentMode.choices,
        default=PaymentMode.FULL,
    )
    currency = models.CharField(max_length=3, default="INR")
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Partial payment plan
    initial_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    remaining_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    final_payment_due_date = models.DateTimeField(null=True, blank=True)
    final_payment_date = models.DateTimeField(null=True, blank=True)
    auto_cancel_on_due_date = models.BooleanField(default=False)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)

    session_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Seats are held until this moment unless payment arrives."),
    )

    promo_code = models.ForeignKey(
        "promotions.PromoCode",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    promo_code_value = models.CharField(max_length=32, blank=True)

    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.CharField(max_length=16, choices=CancelledBy.choices, blank=True)
    refund_status = models.CharField(max_length=16, choices=RefundStatus.choices, blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    refund_credit_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(number_of_participants__gte=1),
                name="booking_has_participants",
            ),
            models.CheckConstraint(
                condition=models.Q(remaining_amount__isnull=True) | models.Q(remaining_amount__gte=0),
                name="booking_remaining_not_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "session_expires_at"], name="booking_status_expiry_idx"),
            models.Index(fields=["batch", "status"], name="booking_batch_status_idx"),
            models.Index(fields=["status", "final_payment_due_date"], name="booking_status_due_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_code} ({self.status})"

    @property
    def is_partial(self) -> bool:
        return self.payment_mode == PaymentMode.PARTIAL

    @property
    def has_participant_details(self) -> bool:
        return self.participants.exists()

    def session_expired(self, now: datetime | None = None) -> bool:
        if self.status != BookingStatus.PENDING_PAYMENT:
            return False
        now = now or timezone.now()
        if self.session_expires_at is not None:
            return self.session_expires_at <= now
        fallback = timedelta(minutes=settings.BOOKING_SESSION_FALLBACK_MINUTES)
        return self.created_at <= now - fallback

    def transition_to(self, status: str) -> None:
        """Change status through the lifecycle table; the caller saves."""
        ensure_transition(self.status, status)
        self.status = status


class Participant(models.Model):
    class Gender(models.TextChoices):
        MALE = "male", _("Male")
        FEMALE = "female", _("Female")
        OTHER = "other", _("Other")

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name="participants")
    name = models.CharField(max_length=120)
    age = models.PositiveSmallIntegerField()
    gender = models.CharField(max_length=8, choices=Gender.choices)
    contact_number = models.CharField(max_length=20, blank=True)
    medical_conditions = models.TextField(blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.booking.booking_code})"


class FailedBooking(models.Model):
    """Archive of a reservation that expired without payment. Rows are write-once."""

    class FailureReason(models.TextChoices):
        SESSION_EXPIRED = "session_expired", _("Session expired")

    class ArchivedBy(models.TextChoices):
        SYSTEM = "system", _("System")

    original_booking_id = models.PositiveBigIntegerField()
    booking_code = models.CharField(max_length=16)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="failed_trek_bookings",
    )
    trek = models.ForeignKey("treks.Trek", on_delete=models.PROTECT, related_name="failed_bookings")
    batch = models.ForeignKey("treks.Batch", on_delete=models.PROTECT, related_name="failed_bookings")
    number_of_participants = models.PositiveSmallIntegerField()
    payment_mode = models.CharField(max_length=16, choices=PaymentMode.choices)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    promo_code_value = models.CharField(max_length=32, blank=True)
    failure_reason = models.CharField(max_length=32, choices=FailureReason.choices)
    failure_details = models.TextField(blank=True)
    original_created_at = models.DateTimeField()
    original_expires_at = models.DateTimeField()
    archived_at = models.DateTimeField(auto_now_add=True)
    archived_by = models.CharField(max_length=16, choices=ArchivedBy.choices, default=ArchivedBy.SYSTEM)

    class Meta:
        ordering = ["-archived_at"]
        indexes = [models.Index(fields=["booking_code"], name="failedbooking_code_idx")]

    def __str__(self) -> str:
        return f"Failed booking {self.booking_code} ({self.failure_reason})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("FailedBooking records are immutable")
        super().save(*args, **kwargs)

    @classmethod
    def archive(cls, booking: Booking, *, reason: str, details: str, archived_by: str) -> "FailedBooking":
        return cls.objects.create(
            original_booking_id=booking.pk,
            booking_code=booking.booking_code,
            user_id=booking.user_id,
            trek_id=booking.trek_id,
            batch_id=booking.batch_id,
            number_of_participants=booking.number_of_participants,
            payment_mode=booking.payment_mode,
            total_price=booking.total_price,
            discount_amount=booking.discount_amount,
            amount_paid=booking.amount_paid,
            promo_code_value=booking.promo_code_value,
            failure_reason=reason,
            failure_details=details,
            original_created_at=booking.created_at,
            original_expires_at=booking.session_expires_at or booking.created_at,
            archived_by=archived_by,
        )
