"""Admin registration for treks and batches."""

from __future__ import annotations

from django.contrib import admin, messages  # type: ignore

from .ledger import seat_ledger
from .models import Batch, Trek


class BatchInline(admin.TabularInline):
    model = Batch
    extra = 0
    fields = ("start_date", "end_date", "price", "max_participants", "current_participants", "status")
    readonly_fields = ("current_participants",)


@admin.register(Trek)
class TrekAdmin(admin.ModelAdmin):
    list_display = ("name", "is_enabled", "partial_payment_enabled", "initial_payment_percent")
    list_filter = ("is_enabled", "partial_payment_enabled")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [BatchInline]


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    list_display = (
        "trek",
        "start_date",
        "end_date",
        "status",
        "max_participants",
        "current_participants",
        "available_seats",
    )
    list_filter = ("status", "trek", "auto_cancel_on_due_date")
    date_hierarchy = "start_date"
    readonly_fields = ("current_participants", "created_at", "updated_at")
    actions = ["reconcile_seats"]

    @admin.action(description="Recount seats from live bookings")
    def reconcile_seats(self, request, queryset):
        for batch in queryset:
            count = seat_ledger.reconcile(batch.pk)
            self.message_user(request, f"{batch}: {count} seats held", messages.INFO)
