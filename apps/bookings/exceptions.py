"""Errors raised by the booking core."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking domain errors."""


class CapacityExceeded(BookingError):
    """Raised when a batch has fewer free seats than requested."""

    def __init__(self, batch_id: int, requested: int, available: int):
        self.batch_id = batch_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Batch {batch_id} has {available} seat(s) left, {requested} requested."
        )


class BatchNotFound(BookingError):
    """Raised when the batch does not exist."""


class BatchNotBookable(BookingError):
    """Raised when the batch or its trek is not open for booking."""


class InvalidStateTransition(BookingError):
    """Raised for a status change the lifecycle does not allow."""

    def __init__(self, current: str, target: str):
        self.current = str(current)
        self.target = str(target)
        super().__init__(f"Cannot move booking from {self.current} to {self.target}.")


class BookingNotFound(BookingError):
    """Raised when the booking does not exist (or was archived)."""


class ActiveBookingExists(BookingError):
    """Raised when the user already holds an unpaid booking for the batch."""


class PromoCodeInvalid(BookingError):
    """Raised when a promo code cannot be applied to the order."""


class ParticipantDetailsInvalid(BookingError):
    """Raised when participant details do not match the booking."""
