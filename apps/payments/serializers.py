"""Serializers for the payment endpoints."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore


class CreateOrderSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)


class VerifyPaymentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)
    order_id = serializers.CharField(max_length=64)
    payment_id = serializers.CharField(max_length=64)
    signature = serializers.CharField(max_length=128)
    amount_minor = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)


class PaymentOutcomeSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(allow_null=True)
    status = serializers.CharField()
    settled = serializers.BooleanField()
    applied = serializers.BooleanField()
    duplicate = serializers.BooleanField()
    remaining_amount = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
