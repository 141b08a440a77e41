from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import PaymentEvent


@admin.register(PaymentEvent)
class PaymentEventAdmin(admin.ModelAdmin):
    list_display = (
        "gateway_payment_id",
        "booking_code",
        "amount",
        "currency",
        "source",
        "outcome",
        "status_before",
        "status_after",
        "created_at",
    )
    list_filter = ("source", "outcome")
    search_fields = ("booking_code", "gateway_payment_id", "gateway_order_id")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
