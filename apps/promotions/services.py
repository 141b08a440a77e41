"""Promo code validation and usage counting."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.exceptions import PromoCodeInvalid

from .models import PromoCode

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking
    from apps.treks.models import Trek

logger = logging.getLogger(__name__)


def validate_promo_code(
    code: str,
    trek: "Trek",
    order_value: Decimal,
    *,
    now: datetime | None = None,
) -> PromoCode:
    """Return the promo code if it can be applied to this order, else raise ``PromoCodeInvalid``."""
    now = now or timezone.now()
    try:
        promo = PromoCode.objects.get(code=code.strip().upper())
    except PromoCode.DoesNotExist:
        raise PromoCodeInvalid(f"Promo code {code} does not exist")

    if not promo.is_active:
        raise PromoCodeInvalid(f"Promo code {promo.code} is inactive")
    if not (promo.valid_from <= now <= promo.valid_until):
        raise PromoCodeInvalid(f"Promo code {promo.code} is not valid at this time")
    if promo.is_exhausted:
        raise PromoCodeInvalid(f"Promo code {promo.code} has reached its usage limit")
    if order_value < promo.min_order_value:
        raise PromoCodeInvalid(
            f"Promo code {promo.code} requires a minimum order of {promo.min_order_value}"
        )
    if promo.applicable_treks.exists() and not promo.applicable_treks.filter(pk=trek.pk).exists():
        raise PromoCodeInvalid(f"Promo code {promo.code} does not apply to {trek}")
    return promo


def record_promo_usage(booking: "Booking") -> bool:
    """Increment ``used_count`` for the code the booking was made with.

    Looks the code up by id first and falls back to the code string, in case
    the original row was recreated. Runs once for every applied payment
    event, including shortfall and balance payments that leave the status
    unchanged. The payment event key keeps replays from counting twice.
    """
    if not booking.promo_code_value:
        return False

    updated = 0
    if booking.promo_code_id:
        updated = PromoCode.objects.filter(pk=booking.promo_code_id).update(used_count=F("used_count") + 1)
    if not updated:
        updated = PromoCode.objects.filter(code=booking.promo_code_value).update(used_count=F("used_count") + 1)

    if not updated:
        logger.warning(
            f"Promo code {booking.promo_code_value} on booking {booking.booking_code} no longer exists"
        )
        return False
    logger.info(f"Recorded usage of promo code {booking.promo_code_value} for booking {booking.booking_code}")
    return True
