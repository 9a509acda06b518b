"""Booking persistence models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.state_machine import BLOCKING_STATUSES, TERMINAL_STATUSES, BookingStatus


class Booking(models.Model):
    """Tentative reservation of a car, later confirmed and converted into a contract."""

    class Status(models.TextChoices):
        PENDING = BookingStatus.PENDING.value, _("Pending")
        CONFIRMED = BookingStatus.CONFIRMED.value, _("Confirmed")
        CANCELLED = BookingStatus.CANCELLED.value, _("Cancelled")
        EXPIRED = BookingStatus.EXPIRED.value, _("Expired")
        CONVERTED = BookingStatus.CONVERTED.value, _("Converted to contract")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_reference = models.CharField(max_length=20, unique=True, editable=False)
    customer_id = models.CharField(max_length=64)
    car_id = models.CharField(max_length=64)
    start_date = models.DateField()
    end_date = models.DateField()
    pickup_location = models.CharField(max_length=255, blank=True)
    dropoff_location = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    additional_drivers = models.JSONField(default=list, blank=True)
    extras = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Rented extras: type, quantity and price per day."),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    daily_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Car daily rate captured when the booking was priced."),
    )
    currency = models.CharField(max_length=3, default="EUR")
    total_estimated_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_paid = models.BooleanField(default=False)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("A booking still pending after this moment is expired by the sweep."),
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    converted_at = models.DateTimeField(null=True, blank=True)
    contract_id = models.CharField(max_length=64, blank=True)
    created_by = models.CharField(max_length=64, blank=True)
    updated_by = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["car_id", "start_date", "end_date"], name="booking_car_window_idx"),
            models.Index(fields=["status", "expires_at"], name="booking_status_expiry_idx"),
            models.Index(fields=["customer_id"], name="booking_customer_idx"),
            models.Index(fields=["start_date"], name="booking_start_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_reference} ({self.status})"

    @property
    def lifecycle_status(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.lifecycle_status in TERMINAL_STATUSES

    @property
    def blocks_car(self) -> bool:
        return self.lifecycle_status in BLOCKING_STATUSES


class CarReservationLock(models.Model):
    """
    One row per car, locked with SELECT ... FOR UPDATE while a booking
    for that car is checked and written. Serialises concurrent writers
    for the same car even when no booking row exists yet to lock.
    """

    car_id = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Reservation lock for car {self.car_id}"


class BookingReferenceSequence(models.Model):
    """Per-year counter behind ``BKG-<year>-<sequence>`` references."""

    year = models.PositiveSmallIntegerField(primary_key=True)
    last_value = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.year}: {self.last_value}"
