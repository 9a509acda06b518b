"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.bookings.cache import DjangoBookingCache
from apps.bookings.services import BookingService, BookingSettings
from apps.fleet.models import Car, Customer
from shared.application.context import CallerContext

FIXED_NOW = datetime(2026, 1, 15, 10, 0, tzinfo=dt_timezone.utc)


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def booking_settings():
    return BookingSettings()


@pytest.fixture
def service(now, booking_settings):
    return BookingService(
        cache=DjangoBookingCache(timeout=booking_settings.cache_timeout),
        clock=lambda: now,
        config=booking_settings,
    )


@pytest.fixture
def car(db):
    return Car.objects.create(
        id="car-123",
        license_plate="AB-123-CD",
        make="Toyota",
        model="Corolla",
        year=2024,
        daily_rate=Decimal("50.00"),
        currency="EUR",
    )


@pytest.fixture
def other_car(db):
    return Car.objects.create(
        id="car-456",
        license_plate="XY-456-ZZ",
        make="Skoda",
        model="Octavia",
        year=2023,
        daily_rate=Decimal("65.00"),
        currency="EUR",
    )


@pytest.fixture
def customer(db):
    return Customer.objects.create(id="user-456", full_name="Ana Pereira", email="ana@example.com")


@pytest.fixture
def other_customer(db):
    return Customer.objects.create(id="customer-789", full_name="Rui Costa", email="rui@example.com")


@pytest.fixture
def admin_context():
    return CallerContext(user_id="admin-1", role="admin")


@pytest.fixture
def employee_context():
    return CallerContext(user_id="employee-1", role="employee")


@pytest.fixture
def customer_context(customer):
    return CallerContext(user_id=customer.id, role="customer")


@pytest.fixture
def make_booking(service, car, customer, admin_context):
    """Create a pending booking through the service."""

    def _make(start: date, end: date, *, car_id=None, customer_id=None, context=None, **extra):
        return service.create(
            customer_id=customer_id or customer.id,
            car_id=car_id or car.id,
            start_date=start,
            end_date=end,
            pickup_location=extra.pop("pickup_location", "Lisbon Airport"),
            dropoff_location=extra.pop("dropoff_location", "Lisbon Airport"),
            context=context or admin_context,
            **extra,
        )

    return _make
