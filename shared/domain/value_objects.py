"""
Common Value Objects

- Money: Represents monetary amounts with currency, with conversion
  from and to the payment gateway's minor units (paise, cents)
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('INR', 'USD', 'EUR')
MINOR_UNITS_PER_MAJOR = 100
CENT = Decimal('0.01')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'INR'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'INR') -> 'Money':
        return cls(Decimal('0'), currency)

    @classmethod
    def from_minor_units(cls, value: int, currency: str = 'INR') -> 'Money':
        """Build Money from an integer amount in minor units (e.g. 15000 paise)."""
        return cls(Decimal(int(value)) / MINOR_UNITS_PER_MAJOR, currency).quantized()

    def to_minor_units(self) -> int:
        return int((self.amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    def quantized(self) -> 'Money':
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def percent(self, value) -> 'Money':
        """Return ``value`` percent of this amount, rounded to cents."""
        return Money(self.amount * Decimal(str(value)) / 100, self.currency).quantized()

    def clamp(self, upper: 'Money') -> 'Money':
        self._check_currency(upper)
        return self if self.amount <= upper.amount else upper

    def subtract_floor(self, other: 'Money') -> 'Money':
        """Subtract, flooring the result at zero."""
        self._check_currency(other)
        return Money(max(self.amount - other.amount, Decimal('0')), self.currency)

    def _check_currency(self, other: 'Money'):
        if not isinstance(other, Money):
            raise TypeError("Can only combine Money with Money")
        if self.currency != other.currency:
            raise ValueError(f"Currency mismatch: {self.currency} and {other.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"
