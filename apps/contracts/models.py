"""Rental contract model."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Contract(models.Model):
    """Binding rental agreement, usually created from a confirmed booking."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        ACTIVE = "active", _("Active")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_id = models.CharField(max_length=64, db_index=True)
    car_id = models.CharField(max_length=64)
    start_date = models.DateField()
    end_date = models.DateField()
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_paid = models.BooleanField(default=False)
    currency = models.CharField(max_length=3, default="EUR")
    pickup_location = models.CharField(max_length=255, blank=True)
    dropoff_location = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    additional_drivers = models.JSONField(default=list, blank=True)
    extras = models.JSONField(default=list, blank=True)
    source_booking_id = models.UUIDField(null=True, blank=True, unique=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    created_by = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Contract")
        verbose_name_plural = _("Contracts")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="contract_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["car_id", "start_date", "end_date"], name="contract_car_window_idx"),
            models.Index(fields=["status"], name="contract_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Contract {self.id} for car {self.car_id}"
