"""Seat inventory ledger.

Single write path for ``Batch.current_participants``:

* ``reserve`` is the admission gate. It is one conditional UPDATE, so two
  concurrent requests can never both take the last seat.
* ``release`` gives seats back and never lets the counter go negative.
* ``reconcile`` recomputes the counter from the bookings that actually hold
  seats and overwrites it. The expiry sweep uses it to heal drift.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import F, IntegerField, Q, Sum, Value  # type: ignore
from django.db.models.functions import Greatest  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.domain.lifecycle import COMMITTED_STATUSES, BookingStatus
from apps.bookings.exceptions import BatchNotBookable, BatchNotFound, CapacityExceeded

from .models import Batch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeatReservation:
    batch_id: int
    count: int
    reserved_at: datetime


def seat_holding_filter(now: datetime) -> Q:
    """Bookings that currently occupy seats: committed or still within their hold."""
    fallback_cutoff = now - timedelta(minutes=settings.BOOKING_SESSION_FALLBACK_MINUTES)
    live_hold = Q(status=BookingStatus.PENDING_PAYMENT) & (
        Q(session_expires_at__gt=now)
        | Q(session_expires_at__isnull=True, created_at__gt=fallback_cutoff)
    )
    return Q(status__in=COMMITTED_STATUSES) | live_hold


class SeatLedger:
    """Reserve, release and reconcile seats on a batch."""

    def reserve(self, batch_id: int, count: int) -> SeatReservation:
        if count < 1:
            raise ValueError("Seat count must be at least 1")

        updated = Batch.objects.filter(
            pk=batch_id,
            status=Batch.Status.UPCOMING,
            current_participants__lte=F("max_participants") - count,
        ).update(current_participants=F("current_participants") + count)

        if not updated:
            try:
                batch = Batch.objects.get(pk=batch_id)
            except Batch.DoesNotExist:
                raise BatchNotFound(f"Batch {batch_id} not found")
            if batch.status != Batch.Status.UPCOMING:
                raise BatchNotBookable(f"Batch {batch_id} is {batch.status}")
            logger.info(
                f"Seat reservation refused for batch {batch_id}: "
                f"{count} requested, {batch.available_seats} available"
            )
            raise CapacityExceeded(batch_id, count, batch.available_seats)

        logger.info(f"Reserved {count} seat(s) on batch {batch_id}")
        return SeatReservation(batch_id=batch_id, count=count, reserved_at=timezone.now())

    def release(self, batch_id: int, count: int) -> int:
        """Give ``count`` seats back. Returns the new counter value."""
        with transaction.atomic():
            try:
                batch = Batch.objects.select_for_update().get(pk=batch_id)
            except Batch.DoesNotExist:
                raise BatchNotFound(f"Batch {batch_id} not found")

            if batch.current_participants < count:
                logger.warning(
                    f"Releasing {count} seat(s) on batch {batch_id} would go below zero "
                    f"(current {batch.current_participants}); clamping to 0"
                )

            Batch.objects.filter(pk=batch_id).update(
                current_participants=Greatest(F("current_participants") - count, Value(0), output_field=IntegerField())
            )
            batch.refresh_from_db(fields=["current_participants"])

        logger.info(f"Released {count} seat(s) on batch {batch_id}, now {batch.current_participants}")
        return batch.current_participants

    def reconcile(self, batch_id: int, *, now: datetime | None = None) -> int:
        """Overwrite the counter with the seats held by live bookings. Returns the new value.

        The stored counter never exceeds capacity. An oversold batch is
        stored as full and the true total goes to the error log.
        """
        from apps.bookings.models import Booking

        now = now or timezone.now()
        with transaction.atomic():
            try:
                batch = Batch.objects.select_for_update().get(pk=batch_id)
            except Batch.DoesNotExist:
                raise BatchNotFound(f"Batch {batch_id} not found")

            held = (
                Booking.objects.filter(batch_id=batch_id)
                .filter(seat_holding_filter(now))
                .aggregate(total=Sum("number_of_participants"))["total"]
            ) or 0

            if held > batch.max_participants:
                logger.error(
                    f"Batch {batch_id} is oversold: {held} seats held, "
                    f"capacity {batch.max_participants}"
                )
                held = batch.max_participants

            if held != batch.current_participants:
                logger.warning(
                    f"Reconciled batch {batch_id}: counter {batch.current_participants} -> {held}"
                )
                Batch.objects.filter(pk=batch_id).update(current_participants=held)

        return held


seat_ledger = SeatLedger()
