"""
Payment gateway client (Razorpay-compatible REST API).

Orders are created server-side; the checkout returns
``(order_id, payment_id, signature)`` which is verified with
HMAC-SHA256(key_secret, "order_id|payment_id"). Webhooks are signed with
HMAC-SHA256(webhook_secret, raw_body).

With ``PAYMENT_GATEWAY_SANDBOX`` enabled (or no API key configured) order
creation and refunds are emulated locally and no HTTP call is made.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import uuid

import requests
from django.conf import settings

from shared.domain.value_objects import Money

from .exceptions import GatewayRejected, GatewayUnavailable

logger = logging.getLogger(__name__)


def hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class PaymentGateway:
    def __init__(
        self,
        *,
        key_id: str,
        key_secret: str,
        webhook_secret: str,
        base_url: str,
        timeout: float,
        sandbox: bool = False,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.sandbox = sandbox or not key_id

    @classmethod
    def from_settings(cls) -> "PaymentGateway":
        return cls(
            key_id=settings.PAYMENT_GATEWAY_KEY_ID,
            key_secret=settings.PAYMENT_GATEWAY_KEY_SECRET,
            webhook_secret=settings.PAYMENT_GATEWAY_WEBHOOK_SECRET,
            base_url=settings.PAYMENT_GATEWAY_BASE_URL,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
            sandbox=settings.PAYMENT_GATEWAY_SANDBOX,
        )

    # ----- signatures -----

    def verify_payment_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        expected = hmac_sha256(self.key_secret, f"{order_id}|{payment_id}".encode())
        return hmac.compare_digest(expected, signature or "")

    def verify_webhook_signature(self, raw_body: bytes, signature: str) -> bool:
        expected = hmac_sha256(self.webhook_secret, raw_body)
        return hmac.compare_digest(expected, signature or "")

    # ----- API calls -----

    def create_order(self, amount: Money, receipt: str, notes: dict | None = None) -> dict:
        payload = {
            "amount": amount.to_minor_units(),
            "currency": amount.currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        logger.info(f"Creating gateway order {receipt} for {amount}")

        if self.sandbox:
            order = {
                "id": f"order_{uuid.uuid4().hex[:14]}",
                "entity": "order",
                "status": "created",
                **payload,
            }
            logger.warning(f"Gateway sandbox: emulated order {order['id']}")
            return order

        return self._request("POST", "/orders", json=payload)

    def fetch_payment(self, payment_id: str) -> dict:
        """Return ``{"amount", "currency", "method", "status", "order_id"}`` for a payment."""
        data = self._request("GET", f"/payments/{payment_id}")
        return {
            "amount": int(data["amount"]),
            "currency": data.get("currency", "INR"),
            "method": data.get("method", ""),
            "status": data.get("status", ""),
            "order_id": data.get("order_id", ""),
        }

    def refund(self, payment_id: str, amount: Money) -> dict:
        logger.info(f"Refunding {amount} on payment {payment_id}")
        if self.sandbox:
            refund = {
                "id": f"rfnd_{uuid.uuid4().hex[:14]}",
                "payment_id": payment_id,
                "amount": amount.to_minor_units(),
                "status": "processed",
            }
            logger.warning(f"Gateway sandbox: emulated refund {refund['id']}")
            return refund
        return self._request(
            "POST",
            f"/payments/{payment_id}/refund",
            json={"amount": amount.to_minor_units()},
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method,
                url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error(f"Gateway request {method} {path} failed: {e}")
            raise GatewayUnavailable(str(e)) from e

        if response.status_code >= 500:
            logger.error(f"Gateway {method} {path} returned {response.status_code}")
            raise GatewayUnavailable(f"Gateway returned {response.status_code}")
        if response.status_code >= 400:
            logger.warning(f"Gateway rejected {method} {path}: {response.status_code} {response.text}")
            raise GatewayRejected(response.text)
        return response.json()


def get_gateway() -> PaymentGateway:
    return PaymentGateway.from_settings()
