"""Admin registration for contracts."""

from __future__ import annotations

from django.contrib import admin

from .models import Contract


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ("id", "customer_id", "car_id", "start_date", "end_date", "status", "total_amount")
    list_filter = ("status",)
    search_fields = ("customer_id", "car_id")
    readonly_fields = ("source_booking_id", "created_at", "updated_at")
