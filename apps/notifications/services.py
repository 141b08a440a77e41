"""Email notifications for booking and payment events."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings  # type: ignore
from django.core.mail import EmailMessage  # type: ignore
from django.template.loader import render_to_string  # type: ignore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mimetype: str = "application/pdf"


# template name -> subject line (formatted with the template context)
SUBJECTS = {
    "payment_received": "Payment received for booking {booking_code}",
    "booking_confirmed": "Your trek booking {booking_code} is confirmed",
    "booking_cancelled": "Booking {booking_code} has been cancelled",
    "booking_expired": "Your booking {booking_code} has expired",
    "partial_payment_reminder": "Balance due for booking {booking_code}",
}


def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str,
    context: dict,
    *,
    attachments: list[Attachment] | None = None,
) -> bool:
    """
    Render ``template_name`` and send it to ``recipient_email``.

    Returns:
        bool: True if the message was handed to the mail backend. Failures
        are logged and reported as False; they never propagate.
    """
    if not recipient_email:
        logger.warning(f"Skipping '{subject}': recipient has no email address")
        return False

    try:
        body = render_to_string(template_name, context)
        message = EmailMessage(
            subject=subject,
            body=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[recipient_email],
        )
        for attachment in attachments or []:
            message.attach(attachment.filename, attachment.content, attachment.mimetype)
        message.send(fail_silently=False)
        logger.info(f"Email '{subject}' sent to {recipient_email}")
        return True
    except Exception as e:
        logger.warning(f"Degraded delivery: email '{subject}' to {recipient_email} failed: {e}", exc_info=True)
        return False


class Notifier:
    """Sends one of the named notification templates."""

    def send(
        self,
        template: str,
        recipient: str,
        data: dict,
        *,
        attachments: list[Attachment] | None = None,
    ) -> bool:
        subject = SUBJECTS[template].format(**data)
        return send_email_notification(
            recipient,
            subject,
            f"notifications/{template}.txt",
            data,
            attachments=attachments,
        )


notifier = Notifier()
