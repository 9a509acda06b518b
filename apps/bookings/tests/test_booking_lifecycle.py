"""Confirm, cancel, convert and expire through BookingService."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.bookings.cache import NullBookingCache
from apps.bookings.models import Booking
from apps.bookings.repository import DjangoBookingRepository
from apps.bookings.services import BookingService, BookingSettings
from apps.bookings.tasks import expire_pending_bookings
from apps.contracts.models import Contract
from shared.domain.exceptions import AuthorizationError, ConflictError, InvalidTransitionError

pytestmark = pytest.mark.django_db


@pytest.fixture
def booking(make_booking):
    return make_booking(date(2026, 3, 1), date(2026, 3, 5))


def _service_at(moment, **kwargs):
    return BookingService(clock=lambda: moment, config=BookingSettings(), cache=NullBookingCache(), **kwargs)


def test_confirm_stamps_confirmation_time(service, booking, admin_context, now):
    confirmed = service.confirm_booking(booking.pk, admin_context)
    confirmed.refresh_from_db()

    assert confirmed.status == Booking.Status.CONFIRMED
    assert confirmed.confirmed_at == now
    assert confirmed.updated_by == "admin-1"


def test_confirming_a_lapsed_hold_expires_it(service, booking, admin_context, now):
    Booking.objects.filter(pk=booking.pk).update(expires_at=now - timedelta(minutes=1))

    with pytest.raises(InvalidTransitionError, match="has expired"):
        service.confirm_booking(booking.pk, admin_context)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.EXPIRED
    assert booking.expired_at == now
    assert booking.confirmed_at is None
    assert booking.updated_by == "system"


@pytest.mark.parametrize("operation", ["confirm_booking", "convert_to_contract"])
def test_lifecycle_operations_are_privileged(service, booking, customer_context, operation):
    with pytest.raises(AuthorizationError):
        getattr(service, operation)(booking.pk, customer_context)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.PENDING


def test_cancel_is_privileged(service, booking, customer_context):
    with pytest.raises(AuthorizationError):
        service.cancel_booking(booking.pk, "mine", customer_context)


def test_employee_can_confirm(service, booking, employee_context):
    assert service.confirm_booking(booking.pk, employee_context).status == Booking.Status.CONFIRMED


def test_confirm_then_cancel(service, booking, admin_context, now):
    service.confirm_booking(booking.pk, admin_context)
    cancelled = service.cancel_booking(booking.pk, "Customer called", admin_context)
    cancelled.refresh_from_db()

    assert cancelled.status == Booking.Status.CANCELLED
    assert cancelled.cancelled_at == now
    assert cancelled.cancellation_reason == "Customer called"


def test_cancel_then_confirm_fails(service, booking, admin_context):
    service.cancel_booking(booking.pk, "No show", admin_context)

    with pytest.raises(InvalidTransitionError):
        service.confirm_booking(booking.pk, admin_context)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CANCELLED


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_blank_cancellation_reason_gets_placeholder(service, booking, admin_context, reason):
    cancelled = service.cancel_booking(booking.pk, reason, admin_context)

    assert cancelled.cancellation_reason == "Cancelled by admin"


def test_convert_pending_booking_fails(service, booking, admin_context):
    with pytest.raises(InvalidTransitionError, match="must be confirmed first"):
        service.convert_to_contract(booking.pk, admin_context)

    assert Contract.objects.count() == 0
    booking.refresh_from_db()
    assert booking.status == Booking.Status.PENDING
    assert booking.contract_id == ""


def test_convert_confirmed_booking_creates_contract(service, booking, admin_context, now):
    service.confirm_booking(booking.pk, admin_context)

    result = service.convert_to_contract(booking.pk, admin_context)
    converted = Booking.objects.get(pk=booking.pk)
    contract = Contract.objects.get()

    assert result.contract_id == str(contract.id)
    assert converted.status == Booking.Status.CONVERTED
    assert converted.contract_id == str(contract.id)
    assert converted.converted_at == now
    assert contract.status == Contract.Status.ACTIVE
    assert contract.source_booking_id == booking.pk
    assert contract.customer_id == booking.customer_id
    assert contract.car_id == booking.car_id
    assert (contract.start_date, contract.end_date) == (date(2026, 3, 1), date(2026, 3, 5))
    assert contract.total_amount == booking.total_estimated_cost
    assert contract.deposit_amount == booking.deposit_amount
    assert contract.created_by == "admin-1"


def test_convert_carries_extras_drivers_and_deposit_state(service, make_booking, admin_context):
    seats = {"type": "child_seat", "quantity": 1, "price_per_day": "5.00"}
    booking = make_booking(
        date(2026, 6, 1), date(2026, 6, 3), extras=[seats], additional_drivers=["Rui Costa"]
    )
    service.update(booking.pk, {"deposit_paid": True}, admin_context)
    service.confirm_booking(booking.pk, admin_context)

    service.convert_to_contract(booking.pk, admin_context)
    contract = Contract.objects.get()

    assert contract.extras == [seats]
    assert contract.additional_drivers == ["Rui Costa"]
    assert contract.deposit_paid is True
    assert contract.total_amount == Decimal("110.00")


def test_converted_booking_keeps_car_blocked_through_contract(service, booking, admin_context, make_booking):
    service.confirm_booking(booking.pk, admin_context)
    service.convert_to_contract(booking.pk, admin_context)

    with pytest.raises(ConflictError):
        make_booking(date(2026, 3, 3), date(2026, 3, 4))


def test_convert_twice_fails(service, booking, admin_context):
    service.confirm_booking(booking.pk, admin_context)
    service.convert_to_contract(booking.pk, admin_context)

    with pytest.raises(InvalidTransitionError):
        service.convert_to_contract(booking.pk, admin_context)
    assert Contract.objects.count() == 1


def test_contract_failure_leaves_booking_confirmed(booking, service, admin_context, now):
    class BrokenContracts:
        def create(self, request):
            raise RuntimeError("contract store unavailable")

    service.confirm_booking(booking.pk, admin_context)

    with pytest.raises(RuntimeError):
        _service_at(now, contracts=BrokenContracts()).convert_to_contract(booking.pk, admin_context)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.CONFIRMED


# --- expiry ---------------------------------------------------------------


def test_expire_overdue_only_touches_lapsed_pending_bookings(service, make_booking, admin_context, now):
    lapsed = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    confirmed = make_booking(date(2026, 4, 1), date(2026, 4, 5))
    service.confirm_booking(confirmed.pk, admin_context)
    fresh = make_booking(date(2026, 5, 1), date(2026, 5, 5))
    Booking.objects.filter(pk=fresh.pk).update(expires_at=now + timedelta(days=30))

    later = now + timedelta(days=8)
    expired = _service_at(later).expire_overdue()

    assert expired == 1
    lapsed.refresh_from_db()
    assert lapsed.status == Booking.Status.EXPIRED
    assert lapsed.expired_at == later
    assert lapsed.updated_by == "system"
    assert Booking.objects.get(pk=confirmed.pk).status == Booking.Status.CONFIRMED
    assert Booking.objects.get(pk=fresh.pk).status == Booking.Status.PENDING
    assert _service_at(later).expire_overdue() == 0


def test_expired_booking_frees_the_car(make_booking, now, admin_context, car, customer):
    make_booking(date(2026, 3, 1), date(2026, 3, 5))
    later_service = _service_at(now + timedelta(days=8))
    later_service.expire_overdue()

    booking = later_service.create(
        customer_id=customer.id,
        car_id=car.id,
        start_date=date(2026, 3, 1),
        end_date=date(2026, 3, 5),
        pickup_location="",
        dropoff_location="",
        context=admin_context,
    )

    assert booking.status == Booking.Status.PENDING


def test_expire_overdue_skips_failures(make_booking, now):
    first = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    second = make_booking(date(2026, 4, 1), date(2026, 4, 5))

    class FlakyRepository(DjangoBookingRepository):
        def save(self, booking, fields=None):
            if booking.pk == first.pk:
                raise RuntimeError("disk full")
            return super().save(booking, fields)

    expired = _service_at(now + timedelta(days=8), repository=FlakyRepository()).expire_overdue()

    assert expired == 1
    assert Booking.objects.get(pk=first.pk).status == Booking.Status.PENDING
    assert Booking.objects.get(pk=second.pk).status == Booking.Status.EXPIRED


def test_expiry_task_reports_count(booking):
    Booking.objects.filter(pk=booking.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

    assert expire_pending_bookings() == {"expired": 1}
    assert Booking.objects.get(pk=booking.pk).status == Booking.Status.EXPIRED


def test_expiry_sweep_runs_at_the_configured_interval(settings):
    from config.celery import app

    entry = settings.CELERY_BEAT_SCHEDULE["expire-pending-bookings"]

    assert entry["task"] == expire_pending_bookings.name
    assert entry["schedule"] == settings.BOOKING_EXPIRY_SWEEP_SECONDS
    assert entry["options"]["expires"] == settings.BOOKING_EXPIRY_SWEEP_SECONDS
    assert app.conf.beat_schedule["expire-pending-bookings"]["schedule"] == settings.BOOKING_EXPIRY_SWEEP_SECONDS
