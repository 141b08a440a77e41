import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("trek_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Archive unpaid bookings whose seat hold lapsed - every 15 minutes
    "expire-pending-bookings": {
        "task": "bookings.expire_pending_bookings",
        "schedule": 15 * 60.0,
        "options": {"expires": 14 * 60},
    },
    # Balance reminders for partially paid bookings - daily at 09:00
    "send-partial-payment-reminders": {
        "task": "bookings.send_partial_payment_reminders",
        "schedule": crontab(hour=9, minute=0),
    },
    # Cancel overdue partial bookings - daily at 10:00
    "auto-cancel-overdue-partial-bookings": {
        "task": "bookings.auto_cancel_overdue_partial_bookings",
        "schedule": crontab(hour=10, minute=0),
    },
    # Close out finished treks - hourly
    "complete-finished-treks": {
        "task": "bookings.complete_finished_treks",
        "schedule": crontab(minute=30),
    },
}

app.conf.timezone = "Asia/Kolkata"
