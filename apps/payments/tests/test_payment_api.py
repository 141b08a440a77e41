"""Integration tests for the checkout and webhook endpoints."""

from __future__ import annotations

import json
from decimal import Decimal

from django.urls import reverse  # type: ignore
from rest_framework import status  # type: ignore
from rest_framework.test import APIClient, APITestCase  # type: ignore

from apps.bookings.domain.lifecycle import BookingStatus
from apps.payments.gateway import hmac_sha256
from apps.payments.models import PaymentEvent
from apps.treks.tests.factories import make_batch, make_booking, make_user


class CheckoutAPITests(APITestCase):
    def setUp(self) -> None:
        self.customer = make_user()
        self.booking = make_booking(make_batch(), self.customer, total_price=Decimal("1000.00"))
        self.client.force_authenticate(self.customer)

    def test_create_order(self) -> None:
        response = self.client.post(reverse("payment-order"), {"booking_id": self.booking.id}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["amount_minor"], 100000)
        self.assertEqual(response.data["booking_id"], self.booking.id)

    def test_order_for_someone_elses_booking(self) -> None:
        self.client.force_authenticate(make_user())

        response = self.client.post(reverse("payment-order"), {"booking_id": self.booking.id}, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_verify_applies_payment(self) -> None:
        payload = {
            "booking_id": self.booking.id,
            "order_id": "order_X",
            "payment_id": "pay_X",
            "signature": hmac_sha256("test-key-secret", b"order_X|pay_X"),
            "amount_minor": 100000,
        }

        response = self.client.post(reverse("payment-verify"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], BookingStatus.PAYMENT_COMPLETED)
        self.assertTrue(response.data["settled"])

        again = self.client.post(reverse("payment-verify"), payload, format="json")
        self.assertEqual(again.status_code, status.HTTP_200_OK)
        self.assertTrue(again.data["duplicate"])

    def test_verify_with_bad_signature(self) -> None:
        payload = {
            "booking_id": self.booking.id,
            "order_id": "order_X",
            "payment_id": "pay_X",
            "signature": "forged",
            "amount_minor": 100000,
        }

        response = self.client.post(reverse("payment-verify"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PaymentEvent.objects.exists())


class WebhookAPITests(APITestCase):
    def setUp(self) -> None:
        self.booking = make_booking(make_batch(), total_price=Decimal("1000.00"))
        # CSRF is enforced so the webhook proves it is exempt
        self.client = APIClient(enforce_csrf_checks=True)

    def post_webhook(self, body: bytes, signature: str):
        return self.client.generic(
            "POST",
            reverse("payment-webhook"),
            body,
            content_type="application/json",
            HTTP_X_RAZORPAY_SIGNATURE=signature,
        )

    def test_signed_webhook_is_applied(self) -> None:
        body = json.dumps({
            "event": "payment.captured",
            "payload": {"payment": {"entity": {
                "id": "pay_H",
                "order_id": "order_H",
                "amount": 100000,
                "currency": "INR",
                "notes": {"booking_id": str(self.booking.id)},
            }}},
        }).encode()

        response = self.post_webhook(body, hmac_sha256("test-webhook-secret", body))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["booking_status"], BookingStatus.PAYMENT_COMPLETED)

    def test_unsigned_webhook_is_rejected(self) -> None:
        response = self.post_webhook(b'{"event": "payment.captured"}', "bad")

        self.assertEqual(response.status_code, 400)

    def test_malformed_body(self) -> None:
        body = b"not json"
        response = self.post_webhook(body, hmac_sha256("test-webhook-secret", body))

        self.assertEqual(response.status_code, 400)

    def test_irrelevant_event_is_acknowledged(self) -> None:
        body = json.dumps({"event": "order.created", "payload": {}}).encode()
        response = self.post_webhook(body, hmac_sha256("test-webhook-secret", body))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ignored")
