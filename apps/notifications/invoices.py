"""PDF invoices for trek bookings."""

from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking
    from apps.payments.models import PaymentEvent

TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 10),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
    ]
)


def invoice_number(booking: "Booking", payment: "PaymentEvent") -> str:
    """INV for bookings paid in one go, FP-INV when a partial plan is settled."""
    prefix = "FP-INV" if booking.is_partial else "INV"
    return f"{prefix}-{booking.booking_code}-{payment.pk}"


def render_invoice_pdf(booking: "Booking", payment: "PaymentEvent") -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=invoice_number(booking, payment))
    styles = getSampleStyleSheet()
    story = []

    story.append(Paragraph(f"<b>{settings.INVOICE_COMPANY_NAME}</b>", styles["Title"]))
    story.append(Paragraph(f"Invoice {invoice_number(booking, payment)}", styles["Heading2"]))
    story.append(Paragraph(f"Issued {timezone.localdate():%d %b %Y}", styles["Normal"]))
    story.append(Spacer(1, 16))

    customer = booking.user.get_full_name() or booking.user.get_username()
    details = [
        ["Booking", booking.booking_code],
        ["Customer", customer],
        ["Trek", booking.trek.name],
        ["Departure", f"{booking.batch.start_date:%d %b %Y} - {booking.batch.end_date:%d %b %Y}"],
        ["Participants", str(booking.number_of_participants)],
        ["Payment ID", payment.gateway_payment_id],
    ]
    story.append(Table(details, colWidths=[150, 300]))
    story.append(Spacer(1, 16))

    currency = booking.currency
    rows = [
        ["Description", "Amount"],
        ["Trip price", f"{booking.total_price + booking.discount_amount:,.2f} {currency}"],
    ]
    if booking.discount_amount:
        rows.append([f"Promo {booking.promo_code_value}", f"-{booking.discount_amount:,.2f} {currency}"])
    rows.append(["Total", f"{booking.total_price:,.2f} {currency}"])
    rows.append(["This payment", f"{payment.amount:,.2f} {currency}"])
    rows.append(["Paid to date", f"{booking.amount_paid:,.2f} {currency}"])
    if booking.is_partial and booking.remaining_amount:
        rows.append(["Balance due", f"{booking.remaining_amount:,.2f} {currency}"])

    table = Table(rows, colWidths=[300, 150])
    table.setStyle(TABLE_STYLE)
    story.append(table)

    doc.build(story)
    return buffer.getvalue()
