"""Celery tasks for the booking domain.

Thin wrappers around :mod:`apps.bookings.sweeps`; the schedule lives in
``config/celery.py``.
"""

from __future__ import annotations

from celery import shared_task  # type: ignore

from . import sweeps


@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Archive unpaid bookings whose seat hold has lapsed.

    Runs every 15 minutes via Celery Beat.

    Returns:
        dict: {"expired", "errors", "batches_reconciled"}
    """
    return sweeps.run_expiry_sweep()


@shared_task(name="bookings.auto_cancel_overdue_partial_bookings")
def auto_cancel_overdue_partial_bookings() -> dict[str, int]:
    """
    Cancel partially paid bookings whose balance due date has passed,
    where both the booking and its batch opted in.

    Runs daily at 10:00.
    """
    return sweeps.run_auto_cancel_sweep()


@shared_task(name="bookings.send_partial_payment_reminders")
def send_partial_payment_reminders() -> dict[str, int]:
    """Runs daily at 09:00."""
    return sweeps.run_partial_payment_reminders()


@shared_task(name="bookings.complete_finished_treks")
def complete_finished_treks() -> dict[str, int]:
    """Runs hourly."""
    return sweeps.run_trek_completion_sweep()
