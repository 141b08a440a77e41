"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin, messages  # type: ignore

from .application.command_handlers import cancel_booking, restore_failed_booking
from .exceptions import BookingError
from .models import Booking, FailedBooking, Participant


class ParticipantInline(admin.TabularInline):
    model = Participant
    extra = 0


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "user",
        "batch",
        "number_of_participants",
        "status",
        "payment_mode",
        "total_price",
        "amount_paid",
        "remaining_amount",
        "created_at",
    )
    list_filter = ("status", "payment_mode", "refund_status", "batch__trek")
    search_fields = ("booking_code", "user__email", "user__username", "promo_code_value")
    readonly_fields = (
        "booking_code",
        "status",
        "total_price",
        "discount_amount",
        "amount_paid",
        "initial_amount",
        "remaining_amount",
        "session_expires_at",
        "refund_status",
        "refund_amount",
        "refund_credit_amount",
        "created_at",
        "updated_at",
    )
    inlines = [ParticipantInline]
    actions = ["cancel_by_company"]

    @admin.action(description="Cancel selected bookings (company initiated)")
    def cancel_by_company(self, request, queryset):
        for booking in queryset:
            try:
                cancel_booking(
                    booking.pk,
                    "Cancelled by operator",
                    Booking.CancelledBy.ADMIN,
                    company_initiated=True,
                )
            except BookingError as e:
                self.message_user(request, f"{booking.booking_code}: {e}", messages.ERROR)


@admin.register(FailedBooking)
class FailedBookingAdmin(admin.ModelAdmin):
    list_display = ("booking_code", "user", "batch", "failure_reason", "archived_by", "archived_at")
    list_filter = ("failure_reason", "archived_by")
    search_fields = ("booking_code", "user__email")
    actions = ["restore"]

    def has_change_permission(self, request, obj=None):
        return False

    @admin.action(description="Restore as a fresh pending booking")
    def restore(self, request, queryset):
        for failed in queryset:
            try:
                booking = restore_failed_booking(failed.pk)
            except BookingError as e:
                self.message_user(request, f"{failed.booking_code}: {e}", messages.ERROR)
                continue
            self.message_user(request, f"{failed.booking_code} restored as {booking.booking_code}")
