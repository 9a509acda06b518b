"""Fleet models: rentable cars and the customers who book them."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def _new_id() -> str:
    return str(uuid.uuid4())


class Car(models.Model):
    """Vehicle available for rental."""

    class Status(models.TextChoices):
        AVAILABLE = "available", _("Available")
        MAINTENANCE = "maintenance", _("In maintenance")
        RETIRED = "retired", _("Retired")

    id = models.CharField(primary_key=True, max_length=64, default=_new_id, editable=False)
    license_plate = models.CharField(max_length=20, unique=True)
    make = models.CharField(max_length=64)
    model = models.CharField(max_length=64)
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="EUR")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AVAILABLE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Car")
        verbose_name_plural = _("Cars")
        ordering = ["license_plate"]

    def __str__(self) -> str:
        return f"{self.make} {self.model} ({self.license_plate})"


class Customer(models.Model):
    """Person or company renting cars."""

    id = models.CharField(primary_key=True, max_length=64, default=_new_id, editable=False)
    full_name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Customer")
        verbose_name_plural = _("Customers")
        ordering = ["full_name"]

    def __str__(self) -> str:
        return self.full_name
