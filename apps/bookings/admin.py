"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, BookingReferenceSequence


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_reference",
        "customer_id",
        "car_id",
        "status",
        "start_date",
        "end_date",
        "total_estimated_cost",
        "expires_at",
        "created_at",
    )
    list_filter = ("status", "deposit_paid", "start_date", "end_date")
    search_fields = ("booking_reference", "customer_id", "car_id")
    readonly_fields = (
        "booking_reference",
        "status",
        "created_at",
        "updated_at",
        "total_estimated_cost",
        "deposit_amount",
        "daily_rate",
        "contract_id",
    )


@admin.register(BookingReferenceSequence)
class BookingReferenceSequenceAdmin(admin.ModelAdmin):
    list_display = ("year", "last_value")
