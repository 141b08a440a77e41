"""
Cancellation refund policy.

Customer cancellations are tiered by days to departure:

    >= 21 days   everything paid, less the non-refundable deposit
    15-20 days   paid - 25% of the trip amount
    8-14 days    paid - 50% of the trip amount
    0-7 days     nothing

The deposit is forfeited in every tier, so the amount kept is never less
than the deposit.

Company cancellations (trek called off, batch merged) follow a separate
schedule that pays out in cash and credit notes:

    >= 30 days   full cash refund
    15-29 days   half cash, half credit note
    0-14 days    full credit note

Whatever the tier, cash + credit stays within [0, total paid].
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from shared.domain.value_objects import Money

CUSTOMER_TIERS: tuple[tuple[int, Decimal], ...] = (
    (21, Decimal("0")),
    (15, Decimal("25")),
    (8, Decimal("50")),
)


@dataclass(frozen=True)
class RefundQuote:
    cash: Money
    credit: Money

    @property
    def total(self) -> Money:
        return self.cash + self.credit


def days_until_departure(start_date: date, today: date) -> int:
    return (start_date - today).days


def customer_refund(
    total_paid: Money,
    trip_total: Money,
    days_to_departure: int,
    deposit: Money | None = None,
) -> Money:
    deposit = deposit or Money.zero(total_paid.currency)
    for min_days, charge_percent in CUSTOMER_TIERS:
        if days_to_departure >= min_days:
            charge = trip_total.percent(charge_percent)
            retained = charge if deposit <= charge else deposit
            return total_paid.subtract_floor(retained)
    return Money.zero(total_paid.currency)


def company_refund(total_paid: Money, days_to_departure: int) -> RefundQuote:
    zero = Money.zero(total_paid.currency)
    if days_to_departure >= 30:
        return RefundQuote(cash=total_paid, credit=zero)
    if days_to_departure >= 15:
        cash = total_paid.percent(50)
        return RefundQuote(cash=cash, credit=total_paid - cash)
    return RefundQuote(cash=zero, credit=total_paid)


def calculate_refund(
    *,
    total_paid: Money,
    trip_total: Money,
    days_to_departure: int,
    deposit: Money | None = None,
    company_initiated: bool = False,
) -> RefundQuote:
    """Quote the refund owed for a cancellation made ``days_to_departure`` days out."""
    if company_initiated:
        quote = company_refund(total_paid, days_to_departure)
    else:
        quote = RefundQuote(
            cash=customer_refund(total_paid, trip_total, days_to_departure, deposit),
            credit=Money.zero(total_paid.currency),
        )
    cash = quote.cash.clamp(total_paid)
    credit = quote.credit.clamp(total_paid.subtract_floor(cash))
    return RefundQuote(cash=cash, credit=credit)
