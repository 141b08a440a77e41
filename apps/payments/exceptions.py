"""Errors raised while talking to the payment gateway or applying its events."""


class PaymentError(Exception):
    """Base class for payment errors."""


class SignatureInvalid(PaymentError):
    """Raised when a gateway signature does not match the configured secret."""


class GatewayUnavailable(PaymentError):
    """Raised when the gateway cannot be reached or answers with a server error."""


class GatewayRejected(PaymentError):
    """Raised when the gateway refuses a request (4xx)."""


class AlreadySettled(PaymentError):
    """Raised when a payment event was already applied to the booking."""

    def __init__(self, booking_code: str, gateway_payment_id: str):
        self.booking_code = booking_code
        self.gateway_payment_id = gateway_payment_id
        super().__init__(f"Payment {gateway_payment_id} already applied to booking {booking_code}")


class NothingToPay(PaymentError):
    """Raised when an order is requested for a booking with no outstanding amount."""
