"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.lifecycle import PaymentMode
from .models import Booking, Participant


class ParticipantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Participant
        fields = ["name", "age", "gender", "contact_number", "medical_conditions"]
        extra_kwargs = {
            "contact_number": {"required": False, "allow_blank": True},
            "medical_conditions": {"required": False, "allow_blank": True},
        }


class BookingSerializer(serializers.ModelSerializer):
    participants = ParticipantSerializer(many=True, read_only=True)
    trek_name = serializers.CharField(source="trek.name", read_only=True)
    start_date = serializers.DateField(source="batch.start_date", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "trek",
            "trek_name",
            "batch",
            "start_date",
            "number_of_participants",
            "status",
            "payment_mode",
            "currency",
            "total_price",
            "discount_amount",
            "amount_paid",
            "initial_amount",
            "remaining_amount",
            "final_payment_due_date",
            "session_expires_at",
            "promo_code_value",
            "participants",
            "cancellation_reason",
            "cancelled_at",
            "cancelled_by",
            "refund_status",
            "refund_amount",
            "refund_credit_amount",
            "created_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    trek = serializers.IntegerField(min_value=1)
    batch = serializers.IntegerField(min_value=1)
    number_of_participants = serializers.IntegerField(min_value=1, max_value=50)
    payment_mode = serializers.ChoiceField(choices=PaymentMode.choices, default=PaymentMode.FULL)
    promo_code = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")


class CancelBookingSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    company_initiated = serializers.BooleanField(required=False, default=False)


class ParticipantDetailsSerializer(serializers.Serializer):
    participants = ParticipantSerializer(many=True, allow_empty=False)
