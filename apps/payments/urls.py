"""URL routing for payments."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import CreateOrderView, VerifyPaymentView, payment_webhook

urlpatterns = [
    path("orders/", CreateOrderView.as_view(), name="payment-order"),
    path("verify/", VerifyPaymentView.as_view(), name="payment-verify"),
    path("webhook/", payment_webhook, name="payment-webhook"),
]
