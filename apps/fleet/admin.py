"""Admin registration for fleet records."""

from __future__ import annotations

from django.contrib import admin

from .models import Car, Customer


@admin.register(Car)
class CarAdmin(admin.ModelAdmin):
    list_display = ("license_plate", "make", "model", "status", "daily_rate", "currency")
    list_filter = ("status", "make")
    search_fields = ("license_plate", "make", "model")


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "email", "phone", "created_at")
    search_fields = ("full_name", "email", "phone")
