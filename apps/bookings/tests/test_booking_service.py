"""Booking creation, lookup, update and deletion through BookingService."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from apps.bookings.models import Booking
from apps.bookings.services import format_reference
from apps.contracts.models import Contract
from apps.fleet.models import Car
from shared.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

pytestmark = pytest.mark.django_db

REFERENCE_RE = re.compile(r"^BKG-\d{4}-\d{5}$")


def test_create_persists_pending_booking(make_booking, now):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5), notes="Child seat")
    booking.refresh_from_db()

    assert booking.status == Booking.Status.PENDING
    assert booking.booking_reference == "BKG-2026-00001"
    assert REFERENCE_RE.match(booking.booking_reference)
    assert booking.daily_rate == Decimal("50.00")
    assert booking.total_estimated_cost == Decimal("200.00")
    assert booking.deposit_amount == Decimal("60.00")
    assert booking.expires_at == now + timedelta(hours=168)
    assert booking.created_by == "admin-1"
    assert booking.notes == "Child seat"


def test_references_are_sequential_and_unique(make_booking):
    first = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    second = make_booking(date(2026, 4, 1), date(2026, 4, 5))

    assert first.booking_reference == "BKG-2026-00001"
    assert second.booking_reference == "BKG-2026-00002"


def test_reference_sequence_is_capped_at_five_digits():
    assert format_reference(2026, 99999) == "BKG-2026-99999"
    with pytest.raises(ConflictError, match="exhausted"):
        format_reference(2026, 100000)


def test_hold_never_outlives_the_day_before_pickup(make_booking):
    booking = make_booking(date(2026, 1, 17), date(2026, 1, 19))

    assert booking.expires_at == datetime(2026, 1, 16, 0, 0, tzinfo=timezone.utc)


def test_same_day_booking_gets_minimum_hold(make_booking, now):
    booking = make_booking(date(2026, 1, 15), date(2026, 1, 16))

    assert booking.expires_at == now + timedelta(minutes=30)


def test_overlap_with_confirmed_booking_is_rejected(service, make_booking, admin_context):
    existing = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    service.confirm_booking(existing.pk, admin_context)

    with pytest.raises(ConflictError):
        make_booking(date(2026, 3, 4), date(2026, 3, 8))
    with pytest.raises(ConflictError):
        make_booking(date(2026, 3, 5), date(2026, 3, 9))

    accepted = make_booking(date(2026, 3, 6), date(2026, 3, 10))

    assert accepted.status == Booking.Status.PENDING
    assert Booking.objects.filter(car_id="car-123").count() == 2


def test_conflict_writes_nothing(make_booking):
    make_booking(date(2026, 3, 1), date(2026, 3, 5))

    with pytest.raises(ConflictError):
        make_booking(date(2026, 3, 2), date(2026, 3, 3))

    assert Booking.objects.count() == 1
    assert make_booking(date(2026, 5, 1), date(2026, 5, 2)).booking_reference == "BKG-2026-00002"


def test_start_date_in_the_past_is_rejected(make_booking):
    with pytest.raises(ValidationError, match="past"):
        make_booking(date(2020, 5, 1), date(2020, 5, 4))


def test_duration_over_one_year_is_rejected(make_booking):
    with pytest.raises(ValidationError, match="exceed 1 year"):
        make_booking(date(2026, 3, 1), date(2028, 3, 1))


def test_exactly_one_year_is_allowed(make_booking):
    booking = make_booking(date(2026, 3, 1), date(2027, 3, 1))

    assert booking.total_estimated_cost == Decimal("18250.00")


@pytest.mark.parametrize("start,end", [(date(2026, 3, 5), date(2026, 3, 5)), (date(2026, 3, 5), date(2026, 3, 1))])
def test_end_must_follow_start(make_booking, start, end):
    with pytest.raises(ValidationError, match="after start"):
        make_booking(start, end)


def test_customer_cannot_book_for_someone_else(make_booking, customer_context, other_customer):
    with pytest.raises(AuthorizationError):
        make_booking(
            date(2026, 3, 1), date(2026, 3, 5), customer_id=other_customer.id, context=customer_context
        )

    assert Booking.objects.count() == 0


def test_authorization_is_checked_before_anything_else(make_booking, customer_context):
    with pytest.raises(AuthorizationError):
        make_booking(date(2020, 1, 1), date(2020, 1, 2), customer_id="ghost", context=customer_context)


def test_customer_can_book_for_themselves(make_booking, customer_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5), context=customer_context)

    assert booking.customer_id == "user-456"
    assert booking.created_by == "user-456"


def test_unknown_customer_and_car_are_not_found(make_booking):
    with pytest.raises(NotFoundError, match="Customer"):
        make_booking(date(2026, 3, 1), date(2026, 3, 5), customer_id="nobody")
    with pytest.raises(NotFoundError, match="Car"):
        make_booking(date(2026, 3, 1), date(2026, 3, 5), car_id="car-000")


def test_car_in_maintenance_cannot_be_booked(make_booking, car):
    Car.objects.filter(pk=car.pk).update(status=Car.Status.MAINTENANCE)

    with pytest.raises(ValidationError, match="not available"):
        make_booking(date(2026, 3, 1), date(2026, 3, 5))


def test_cancelled_booking_frees_the_car(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    service.cancel_booking(booking.pk, "Plans changed", admin_context)

    assert make_booking(date(2026, 3, 1), date(2026, 3, 5)).status == Booking.Status.PENDING


def test_active_contract_blocks_the_car(make_booking, car, customer):
    Contract.objects.create(
        customer_id=customer.id,
        car_id=car.id,
        start_date=date(2026, 3, 1),
        end_date=date(2026, 3, 5),
        status=Contract.Status.ACTIVE,
    )
    Contract.objects.create(
        customer_id=customer.id,
        car_id=car.id,
        start_date=date(2026, 4, 1),
        end_date=date(2026, 4, 5),
        status=Contract.Status.COMPLETED,
    )

    with pytest.raises(ConflictError):
        make_booking(date(2026, 3, 5), date(2026, 3, 7))
    assert make_booking(date(2026, 4, 2), date(2026, 4, 4)).status == Booking.Status.PENDING


# --- get ------------------------------------------------------------------


def test_get_enforces_ownership(service, make_booking, admin_context, customer_context, other_customer):
    own = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    foreign = make_booking(date(2026, 4, 1), date(2026, 4, 5), customer_id=other_customer.id)

    assert service.get(own.pk, customer_context).pk == own.pk
    assert service.get(foreign.pk, admin_context).pk == foreign.pk
    with pytest.raises(AuthorizationError):
        service.get(foreign.pk, customer_context)


@pytest.mark.parametrize("booking_id", ["9b1deb4d-3b7d-4bad-9bdd-2b0d7b3dcb6d", "not-a-uuid"])
def test_get_unknown_booking(service, admin_context, booking_id):
    with pytest.raises(NotFoundError):
        service.get(booking_id, admin_context)


def test_get_by_reference(service, make_booking, customer_context, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    assert service.get_by_reference("BKG-2026-00001", customer_context).pk == booking.pk
    with pytest.raises(NotFoundError):
        service.get_by_reference("BKG-2026-99999", admin_context)


# --- update ---------------------------------------------------------------


def test_owner_updates_notes_and_locations(service, make_booking, customer_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    updated = service.update(
        booking.pk, {"notes": "Late arrival", "dropoff_location": "Porto"}, customer_context
    )
    updated.refresh_from_db()

    assert updated.notes == "Late arrival"
    assert updated.dropoff_location == "Porto"
    assert updated.updated_by == "user-456"
    assert updated.total_estimated_cost == Decimal("200.00")


def test_rescheduling_overlapping_its_own_window_is_allowed(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    updated = service.update(
        booking.pk, {"start_date": date(2026, 3, 2), "end_date": date(2026, 3, 8)}, admin_context
    )
    updated.refresh_from_db()

    assert (updated.start_date, updated.end_date) == (date(2026, 3, 2), date(2026, 3, 8))
    assert updated.total_estimated_cost == Decimal("300.00")
    assert updated.deposit_amount == Decimal("90.00")


def test_rescheduling_into_another_booking_conflicts(service, make_booking, admin_context):
    make_booking(date(2026, 3, 1), date(2026, 3, 5))
    later = make_booking(date(2026, 3, 10), date(2026, 3, 12))

    with pytest.raises(ConflictError):
        service.update(later.pk, {"start_date": date(2026, 3, 5)}, admin_context)

    later.refresh_from_db()
    assert later.start_date == date(2026, 3, 10)


def test_switching_car_reprices(service, make_booking, admin_context, other_car):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    updated = service.update(booking.pk, {"car_id": other_car.id}, admin_context)

    assert updated.car_id == "car-456"
    assert updated.daily_rate == Decimal("65.00")
    assert updated.total_estimated_cost == Decimal("260.00")


def test_rescheduling_into_the_past_is_rejected(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    with pytest.raises(ValidationError, match="past"):
        service.update(booking.pk, {"start_date": date(2025, 12, 1)}, admin_context)


def test_terminal_booking_is_immutable(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))
    service.cancel_booking(booking.pk, None, admin_context)

    with pytest.raises(ConflictError):
        service.update(booking.pk, {"notes": "Too late"}, admin_context)


def test_update_by_stranger_is_forbidden(service, make_booking, other_customer):
    from shared.application.context import CallerContext

    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    with pytest.raises(AuthorizationError):
        service.update(booking.pk, {"notes": "Mine now"}, CallerContext(other_customer.id, "customer"))


def test_update_rejects_lifecycle_fields(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    with pytest.raises(ValidationError, match="status"):
        service.update(booking.pk, {"status": "confirmed"}, admin_context)


def test_update_unknown_booking(service, admin_context):
    with pytest.raises(NotFoundError):
        service.update("9b1deb4d-3b7d-4bad-9bdd-2b0d7b3dcb6d", {"notes": "x"}, admin_context)


# --- delete ---------------------------------------------------------------


def test_delete_is_privileged(service, make_booking, customer_context, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    with pytest.raises(AuthorizationError):
        service.delete(booking.pk, customer_context)

    service.delete(booking.pk, admin_context)

    assert not Booking.objects.filter(pk=booking.pk).exists()
    with pytest.raises(NotFoundError):
        service.delete(booking.pk, admin_context)


# --- extras, drivers and deposit -------------------------------------------

CHILD_SEATS = {"type": "child_seat", "quantity": 2, "price_per_day": "5.00"}


def test_extras_are_added_to_the_total(make_booking):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5), extras=[CHILD_SEATS])
    booking.refresh_from_db()

    assert booking.extras == [CHILD_SEATS]
    assert booking.total_estimated_cost == Decimal("240.00")
    assert booking.deposit_amount == Decimal("72.00")
    assert booking.deposit_paid is False


def test_explicit_deposit_replaces_default_share(make_booking):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5), deposit_amount=Decimal("150"))

    assert booking.total_estimated_cost == Decimal("200.00")
    assert booking.deposit_amount == Decimal("150.00")


def test_additional_drivers_are_stored_trimmed(make_booking):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5), additional_drivers=[" Rui Costa ", "Ines Lopes"])
    booking.refresh_from_db()

    assert booking.additional_drivers == ["Rui Costa", "Ines Lopes"]


@pytest.mark.parametrize(
    "extra",
    [
        {"type": "jetpack", "quantity": 1, "price_per_day": "5.00"},
        {"type": "child_seat", "quantity": 0, "price_per_day": "5.00"},
        {"type": "child_seat", "quantity": 2},
    ],
)
def test_invalid_extras_write_nothing(make_booking, extra):
    with pytest.raises(ValidationError):
        make_booking(date(2026, 3, 1), date(2026, 3, 5), extras=[extra])

    assert Booking.objects.count() == 0


def test_rescheduling_reprices_extras(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5), extras=[CHILD_SEATS])

    updated = service.update(booking.pk, {"end_date": date(2026, 3, 7)}, admin_context)
    updated.refresh_from_db()

    assert updated.total_estimated_cost == Decimal("360.00")
    assert updated.deposit_amount == Decimal("108.00")


def test_changing_extras_reprices(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    updated = service.update(
        booking.pk,
        {"extras": [{"type": "sim_card", "quantity": 1, "price_per_day": Decimal("2.50")}]},
        admin_context,
    )

    assert updated.extras == [{"type": "sim_card", "quantity": 1, "price_per_day": "2.50"}]
    assert updated.total_estimated_cost == Decimal("210.00")
    assert updated.deposit_amount == Decimal("63.00")


def test_deposit_can_be_updated_and_marked_paid(service, make_booking, admin_context):
    booking = make_booking(date(2026, 3, 1), date(2026, 3, 5))

    updated = service.update(booking.pk, {"deposit_amount": "80", "deposit_paid": True}, admin_context)
    updated.refresh_from_db()

    assert updated.deposit_amount == Decimal("80.00")
    assert updated.deposit_paid is True
    assert updated.total_estimated_cost == Decimal("200.00")


def test_negative_deposit_is_rejected(make_booking):
    with pytest.raises(ValidationError, match="negative"):
        make_booking(date(2026, 3, 1), date(2026, 3, 5), deposit_amount=Decimal("-1"))
