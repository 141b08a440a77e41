"""Trek catalogue and dated departures (batches)."""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Trek(models.Model):
    """A trek offered on the platform."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    is_enabled = models.BooleanField(default=True)
    partial_payment_enabled = models.BooleanField(
        default=False,
        help_text=_("Allow customers to pay an initial tranche and the balance later."),
    )
    initial_payment_percent = models.PositiveSmallIntegerField(
        default=20,
        validators=[MinValueValidator(1), MaxValueValidator(100)],
    )
    final_payment_days_before = models.PositiveSmallIntegerField(
        default=7,
        help_text=_("Days before departure when the remaining balance falls due."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Batch(models.Model):
    """A dated departure of a trek with a fixed number of seats.

    ``current_participants`` is owned by :mod:`apps.treks.ledger`; nothing
    else writes it.
    """

    class Status(models.TextChoices):
        UPCOMING = "upcoming", _("Upcoming")
        ONGOING = "ongoing", _("Ongoing")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    trek = models.ForeignKey(Trek, on_delete=models.CASCADE, related_name="batches")
    start_date = models.DateField()
    end_date = models.DateField()
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    max_participants = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    current_participants = models.PositiveIntegerField(default=0, editable=False)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.UPCOMING)
    auto_cancel_on_due_date = models.BooleanField(
        default=False,
        help_text=_("Cancel partially paid bookings whose balance is overdue."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date"]
        verbose_name_plural = "batches"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_participants__gte=1),
                name="batch_has_capacity",
            ),
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="batch_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["trek", "start_date"], name="batch_trek_start_idx"),
            models.Index(fields=["status"], name="batch_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.trek} ({self.start_date:%Y-%m-%d})"

    @property
    def available_seats(self) -> int:
        return max(self.max_participants - self.current_participants, 0)

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.UPCOMING and self.trek.is_enabled
