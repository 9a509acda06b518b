"""Domain services for booking workflows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Mapping

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from apps.contracts.services import ContractRequest, DjangoContractGateway
from apps.fleet.services import DjangoCarCatalog, DjangoCustomerDirectory
from shared.application.context import CallerContext
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from shared.domain.value_objects import DateRange

from .cache import LIST_KEY_PATTERN, BookingCache, DjangoBookingCache, booking_key, list_key
from .domain.availability import find_conflicts
from .domain.events import (
    BookingCancelled,
    BookingConfirmed,
    BookingConverted,
    BookingCreated,
    BookingDeleted,
    BookingExpired,
    BookingUpdated,
)
from .domain.pricing import Quote, normalize_deposit, parse_extras, quote_booking
from .domain.state_machine import BookingStatus, state_machine
from .models import Booking
from .repository import DjangoBookingRepository, Page

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "BKG"
MAX_EXPIRING_DAYS = 30
MAX_UPCOMING_DAYS = 365
UPDATABLE_FIELDS = frozenset({
    "car_id",
    "start_date",
    "end_date",
    "pickup_location",
    "dropoff_location",
    "notes",
    "extras",
    "additional_drivers",
    "deposit_amount",
    "deposit_paid",
})
SCHEDULE_FIELDS = frozenset({"car_id", "start_date", "end_date"})
PRICING_FIELDS = SCHEDULE_FIELDS | {"extras", "deposit_amount"}
MAX_REFERENCE_SEQUENCE = 99_999


def format_reference(year: int, sequence: int) -> str:
    """``BKG-2026-00001``"""
    if not 1 <= sequence <= MAX_REFERENCE_SEQUENCE:
        raise ConflictError(
            f"Booking reference sequence for {year} is exhausted "
            f"(limit {MAX_REFERENCE_SEQUENCE} bookings per year)"
        )
    return f"{REFERENCE_PREFIX}-{year:04d}-{sequence:05d}"


@dataclass(frozen=True)
class BookingSettings:
    hold_hours: int = 168
    hold_lead_hours: int = 24
    min_hold_minutes: int = 30
    max_duration_days: int = 365
    privileged_roles: frozenset = field(default_factory=lambda: frozenset({"admin", "employee"}))
    default_cancellation_reason: str = "Cancelled by admin"
    deposit_rate: Decimal = Decimal("0.30")
    cache_timeout: int = 300

    @classmethod
    def from_django(cls) -> "BookingSettings":
        roles = getattr(settings, "BOOKING_PRIVILEGED_ROLES", ("admin", "employee"))
        if isinstance(roles, str):
            roles = roles.split(",")
        return cls(
            hold_hours=int(getattr(settings, "BOOKING_HOLD_HOURS", 168)),
            hold_lead_hours=int(getattr(settings, "BOOKING_HOLD_LEAD_HOURS", 24)),
            min_hold_minutes=int(getattr(settings, "BOOKING_MIN_HOLD_MINUTES", 30)),
            max_duration_days=int(getattr(settings, "BOOKING_MAX_DURATION_DAYS", 365)),
            privileged_roles=frozenset(role.strip().lower() for role in roles if role.strip()),
            default_cancellation_reason=getattr(
                settings, "BOOKING_DEFAULT_CANCELLATION_REASON", "Cancelled by admin"
            ),
            deposit_rate=Decimal(str(getattr(settings, "BOOKING_DEPOSIT_RATE", "0.30"))),
            cache_timeout=int(getattr(settings, "BOOKING_CACHE_TIMEOUT", 300)),
        )


@dataclass(frozen=True)
class ConversionResult:
    booking: Booking
    contract_id: str


class BookingService:
    """
    Booking lifecycle and availability engine

    Every write runs in one unit of work that first locks the per-car
    reservation rows, then re-checks availability, so two callers racing
    for the same car and window cannot both succeed.
    """

    def __init__(
        self,
        *,
        repository=None,
        customers=None,
        cars=None,
        contracts=None,
        cache: BookingCache | None = None,
        uow_factory: Callable[[], object] | None = None,
        clock: Callable[[], datetime] | None = None,
        config: BookingSettings | None = None,
    ):
        self.config = config or BookingSettings.from_django()
        self.repository = repository or DjangoBookingRepository()
        self.customers = customers or DjangoCustomerDirectory()
        self.cars = cars or DjangoCarCatalog()
        self.contracts = contracts or DjangoContractGateway()
        self.cache = cache or DjangoBookingCache(timeout=self.config.cache_timeout)
        self.uow_factory = uow_factory or DjangoUnitOfWork
        self.clock = clock or timezone.now

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self.clock()

    def _today(self) -> date:
        now = self._now()
        if timezone.is_aware(now):
            return timezone.localtime(now).date()
        return now.date()

    def _is_privileged(self, context: CallerContext) -> bool:
        return context.is_privileged(self.config.privileged_roles)

    def _require_privileged(self, context: CallerContext, action: str) -> None:
        if not self._is_privileged(context):
            logger.info(f"User {context.user_id} ({context.role or 'no role'}) denied: {action}")
            raise AuthorizationError(f"Only administrators and employees can {action}")

    def _ensure_can_access(self, booking: Booking, context: CallerContext) -> None:
        if self._is_privileged(context) or context.owns(booking.customer_id):
            return
        raise AuthorizationError("You can only access your own bookings")

    def validate_dates(self, start_date: date, end_date: date) -> DateRange:
        """Date rules shared by create, update and availability checks."""
        if not isinstance(start_date, date) or not isinstance(end_date, date):
            raise ValidationError("start_date and end_date must be dates")
        if isinstance(start_date, datetime) or isinstance(end_date, datetime):
            start_date = start_date.date() if isinstance(start_date, datetime) else start_date
            end_date = end_date.date() if isinstance(end_date, datetime) else end_date
        if start_date >= end_date:
            raise ValidationError("End date must be after start date")
        if start_date < self._today():
            raise ValidationError("Start date cannot be in the past")
        if (end_date - start_date).days > self.config.max_duration_days:
            raise ValidationError(
                f"Booking duration cannot exceed 1 year ({self.config.max_duration_days} days)"
            )
        return DateRange(start_date, end_date)

    def _get_rentable_car(self, car_id: str):
        car = self.cars.get(car_id)
        if car is None:
            raise NotFoundError(f"Car {car_id} not found")
        if not car.is_rentable:
            raise ValidationError(f"Car {car_id} is not available for rental (status: {car.status})")
        return car

    def _ensure_free(self, car_id: str, window: DateRange, exclude_booking_id=None) -> None:
        reservations = self.repository.blocking_reservations(car_id, window.start_date, window.end_date)
        conflicts = find_conflicts(
            reservations, car_id, window.start_date, window.end_date, exclude_booking_id
        )
        if conflicts:
            logger.info(
                f"Car {car_id} is already reserved for {window} "
                f"({len(conflicts)} conflicting reservation(s))"
            )
            raise ConflictError("Car is not available for the selected dates")

    def _quote(self, car, window: DateRange, extras, deposit_amount=None) -> Quote:
        return quote_booking(
            car.daily_rate,
            car.currency,
            window,
            extras,
            deposit_rate=self.config.deposit_rate,
            deposit_amount=deposit_amount,
        )

    def _expires_at(self, now: datetime, start_date: date) -> datetime:
        """
        End of the hold for a new pending booking

        Never later than ``start_date - lead`` and never sooner than the
        minimum hold, so same-day bookings still get a short window.
        """
        hold_until = now + timedelta(hours=self.config.hold_hours)
        start_of_rental = datetime.combine(start_date, datetime.min.time())
        if timezone.is_aware(now):
            start_of_rental = timezone.make_aware(start_of_rental, timezone.get_current_timezone())
        lead_until = start_of_rental - timedelta(hours=self.config.hold_lead_hours)
        floor = now + timedelta(minutes=self.config.min_hold_minutes)
        return max(min(hold_until, lead_until), floor)

    def _event_kwargs(self, booking: Booking, context: CallerContext) -> dict:
        return {
            "aggregate_id": booking.pk,
            "actor_id": context.user_id,
            "actor_role": context.role,
            "booking_reference": booking.booking_reference,
            "car_id": booking.car_id,
            "customer_id": booking.customer_id,
        }

    def _invalidate(self, booking_id) -> None:
        self.cache.invalidate(booking_key(booking_id))
        self.cache.invalidate_pattern(LIST_KEY_PATTERN)

    def _load(self, booking_id, *, for_update: bool = False) -> Booking:
        booking = self.repository.get(booking_id, for_update=for_update)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    # ------------------------------------------------------------------
    # create / read
    # ------------------------------------------------------------------

    def create(
        self,
        customer_id: str,
        car_id: str,
        start_date: date,
        end_date: date,
        pickup_location: str,
        dropoff_location: str,
        context: CallerContext,
        notes: str = "",
        extras=None,
        additional_drivers=None,
        deposit_amount=None,
    ) -> Booking:
        if not self._is_privileged(context) and not context.owns(customer_id):
            raise AuthorizationError("You can only create bookings for yourself")

        window = self.validate_dates(start_date, end_date)
        parsed_extras = parse_extras(extras)
        drivers = _clean_drivers(additional_drivers)

        if not self.customers.exists(customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")
        car = self._get_rentable_car(car_id)
        quote = self._quote(car, window, parsed_extras, deposit_amount)

        with self.uow_factory() as uow:
            self.repository.lock_cars(car_id)
            self._ensure_free(car_id, window)

            now = self._now()
            sequence = self.repository.next_reference(now.year)
            booking = Booking(
                booking_reference=format_reference(now.year, sequence),
                customer_id=customer_id,
                car_id=car_id,
                start_date=window.start_date,
                end_date=window.end_date,
                pickup_location=pickup_location or "",
                dropoff_location=dropoff_location or "",
                notes=notes or "",
                extras=[extra.to_dict() for extra in parsed_extras],
                additional_drivers=drivers,
                status=BookingStatus.PENDING.value,
                daily_rate=car.daily_rate,
                currency=car.currency,
                total_estimated_cost=quote.total.amount,
                deposit_amount=quote.deposit.amount,
                deposit_paid=False,
                expires_at=self._expires_at(now, window.start_date),
                created_by=context.user_id,
                updated_by=context.user_id,
            )
            self.repository.add(booking)
            uow.record_event(BookingCreated(
                start_date=booking.start_date,
                end_date=booking.end_date,
                **self._event_kwargs(booking, context),
            ))

        self._invalidate(booking.pk)
        logger.info(f"Booking {booking.booking_reference} created for customer {customer_id} on car {car_id}")
        return booking

    def get(self, booking_id, context: CallerContext) -> Booking:
        key = booking_key(booking_id)
        booking = self.cache.get(key)
        if booking is None:
            booking = self._load(booking_id)
            self.cache.set(key, booking, self.config.cache_timeout)
        self._ensure_can_access(booking, context)
        return booking

    def get_by_reference(self, reference: str, context: CallerContext) -> Booking:
        booking = self.repository.get_by_reference(reference)
        if booking is None:
            raise NotFoundError(f"Booking {reference} not found")
        self._ensure_can_access(booking, context)
        return booking

    def list(
        self,
        filters: Mapping[str, object] | None,
        context: CallerContext,
        *,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page:
        effective = {key: value for key, value in dict(filters or {}).items() if value not in (None, "")}
        if not self._is_privileged(context):
            effective["customer_id"] = context.user_id

        key = list_key({**effective, "_page": page, "_limit": limit, "_sort": f"{sort_by}:{sort_order}"})
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = self.repository.list(
            effective, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
        )
        self.cache.set(key, result, self.config.cache_timeout)
        return result

    def list_by_customer(self, customer_id: str, context: CallerContext, *, page: int = 1, limit: int = 10) -> Page:
        if not self._is_privileged(context) and not context.owns(customer_id):
            raise AuthorizationError("You can only access your own bookings")
        return self.repository.by_customer(customer_id, page=page, limit=limit)

    def list_by_car(self, car_id: str, context: CallerContext, *, page: int = 1, limit: int = 10) -> Page:
        owner = None if self._is_privileged(context) else context.user_id
        return self.repository.by_car(car_id, customer_id=owner, page=page, limit=limit)

    # ------------------------------------------------------------------
    # update / delete
    # ------------------------------------------------------------------

    def update(self, booking_id, patch: Mapping[str, object], context: CallerContext) -> Booking:
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        patch = _normalize_patch(patch)

        with self.uow_factory() as uow:
            # Car, window and price come from the locked row, never from an earlier read.
            booking = self._load(booking_id, for_update=True)
            self._ensure_can_access(booking, context)
            if booking.is_terminal:
                raise ConflictError(f"Cannot update a booking in status {booking.status}")

            changes = {name: value for name, value in patch.items() if getattr(booking, name) != value}
            if not changes:
                return booking

            schedule_changed = bool(SCHEDULE_FIELDS & set(changes))
            pricing_source = booking
            if schedule_changed:
                car_id = changes.get("car_id", booking.car_id)
                window = self.validate_dates(
                    changes.get("start_date", booking.start_date),
                    changes.get("end_date", booking.end_date),
                )
                pricing_source = self._get_rentable_car(car_id)
                self.repository.lock_cars(booking.car_id, car_id)
                self._ensure_free(car_id, window, exclude_booking_id=booking.pk)

            for name, value in changes.items():
                setattr(booking, name, value)
            if schedule_changed:
                # Normalized dates from the validated window
                booking.start_date = window.start_date
                booking.end_date = window.end_date

            fields = set(changes)
            if PRICING_FIELDS & set(changes):
                quote = self._quote(
                    pricing_source,
                    DateRange(booking.start_date, booking.end_date),
                    parse_extras(booking.extras),
                    changes.get("deposit_amount"),
                )
                booking.daily_rate = pricing_source.daily_rate
                booking.currency = pricing_source.currency
                booking.total_estimated_cost = quote.total.amount
                booking.deposit_amount = quote.deposit.amount
                fields |= {"daily_rate", "currency", "total_estimated_cost", "deposit_amount"}

            booking.updated_by = context.user_id
            self.repository.save(booking, fields)
            uow.record_event(BookingUpdated(
                changed_fields=sorted(changes),
                **self._event_kwargs(booking, context),
            ))

        self._invalidate(booking.pk)
        logger.info(f"Booking {booking.booking_reference} updated ({', '.join(sorted(changes))})")
        return booking

    def delete(self, booking_id, context: CallerContext) -> None:
        self._require_privileged(context, "delete bookings")
        with self.uow_factory() as uow:
            booking = self._load(booking_id, for_update=True)
            event = BookingDeleted(**self._event_kwargs(booking, context))
            self.repository.delete(booking)
            uow.record_event(event)

        self._invalidate(booking.pk)
        logger.warning(f"Booking {booking.booking_reference} deleted by {context.user_id}")

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def _transition(self, booking: Booking, target: BookingStatus, *, reason: str | None = None) -> str:
        previous = state_machine.apply(booking, target, now=self._now(), reason=reason)
        return previous.value

    def confirm_booking(self, booking_id, context: CallerContext) -> Booking:
        self._require_privileged(context, "confirm bookings")
        lapsed = False
        with self.uow_factory() as uow:
            booking = self._load(booking_id, for_update=True)
            now = self._now()
            if (
                booking.status == BookingStatus.PENDING.value
                and booking.expires_at is not None
                and now > booking.expires_at
            ):
                # The sweep has not reached this booking yet; expire it here.
                self._expire(booking, uow, now, CallerContext.system())
                lapsed = True
            else:
                previous = self._transition(booking, BookingStatus.CONFIRMED)
                booking.updated_by = context.user_id
                self.repository.save(booking, ["status", "confirmed_at"])
                uow.record_event(BookingConfirmed(
                    old_status=previous,
                    new_status=booking.status,
                    **self._event_kwargs(booking, context),
                ))

        self._invalidate(booking.pk)
        if lapsed:
            logger.info(f"Booking {booking.booking_reference} expired on confirmation attempt")
            raise InvalidTransitionError(
                BookingStatus.EXPIRED.value,
                BookingStatus.CONFIRMED.value,
                "Booking has expired and cannot be confirmed",
            )
        logger.info(f"Booking {booking.booking_reference} confirmed")
        return booking

    def cancel_booking(self, booking_id, reason: str | None, context: CallerContext) -> Booking:
        self._require_privileged(context, "cancel bookings")
        reason = (reason or "").strip() or self.config.default_cancellation_reason
        with self.uow_factory() as uow:
            booking = self._load(booking_id, for_update=True)
            previous = self._transition(booking, BookingStatus.CANCELLED, reason=reason)
            booking.updated_by = context.user_id
            self.repository.save(booking, ["status", "cancelled_at", "cancellation_reason"])
            uow.record_event(BookingCancelled(
                old_status=previous,
                new_status=booking.status,
                reason=reason,
                **self._event_kwargs(booking, context),
            ))

        self._invalidate(booking.pk)
        logger.info(f"Booking {booking.booking_reference} cancelled: {reason}")
        return booking

    def convert_to_contract(self, booking_id, context: CallerContext) -> ConversionResult:
        self._require_privileged(context, "convert bookings to contracts")
        with self.uow_factory() as uow:
            booking = self._load(booking_id, for_update=True)
            state_machine.ensure_can_transition(booking.status, BookingStatus.CONVERTED)

            contract_id = self.contracts.create(ContractRequest(
                customer_id=booking.customer_id,
                car_id=booking.car_id,
                start_date=booking.start_date,
                end_date=booking.end_date,
                daily_rate=booking.daily_rate,
                total_amount=booking.total_estimated_cost,
                deposit_amount=booking.deposit_amount,
                deposit_paid=booking.deposit_paid,
                currency=booking.currency,
                pickup_location=booking.pickup_location,
                dropoff_location=booking.dropoff_location,
                notes=booking.notes,
                additional_drivers=list(booking.additional_drivers or []),
                extras=list(booking.extras or []),
                source_booking_id=booking.pk,
                requested_by=context.user_id,
            ))

            previous = self._transition(booking, BookingStatus.CONVERTED)
            booking.contract_id = str(contract_id)
            booking.updated_by = context.user_id
            self.repository.save(booking, ["status", "converted_at", "contract_id"])
            uow.record_event(BookingConverted(
                old_status=previous,
                new_status=booking.status,
                contract_id=booking.contract_id,
                **self._event_kwargs(booking, context),
            ))

        self._invalidate(booking.pk)
        logger.info(f"Booking {booking.booking_reference} converted to contract {booking.contract_id}")
        return ConversionResult(booking=booking, contract_id=booking.contract_id)

    def _expire(self, booking: Booking, uow, now: datetime, context: CallerContext) -> None:
        previous = state_machine.apply(booking, BookingStatus.EXPIRED, now=now)
        booking.updated_by = context.user_id
        self.repository.save(booking, ["status", "expired_at"])
        uow.record_event(BookingExpired(
            old_status=previous.value,
            new_status=booking.status,
            **self._event_kwargs(booking, context),
        ))

    def expire_overdue(self) -> int:
        """
        Move every pending booking whose hold has run out to EXPIRED

        Each booking gets its own transaction; one failure does not stop
        the sweep.
        """
        context = CallerContext.system()
        now = self._now()
        expired = 0
        for candidate in self.repository.overdue_pending(now):
            try:
                with self.uow_factory() as uow:
                    booking = self._load(candidate.pk, for_update=True)
                    if booking.status != BookingStatus.PENDING.value:
                        continue
                    self._expire(booking, uow, now, context)
            except Exception as e:
                logger.error(f"Failed to expire booking {candidate.pk}: {e}", exc_info=True)
                continue
            self._invalidate(booking.pk)
            expired += 1
            logger.info(f"Booking {booking.booking_reference} expired (hold ended {booking.expires_at})")
        return expired

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def check_availability(self, car_id: str, start_date: date, end_date: date, exclude_booking_id=None) -> bool:
        window = self.validate_dates(start_date, end_date)
        reservations = self.repository.blocking_reservations(car_id, window.start_date, window.end_date)
        return not find_conflicts(
            reservations, car_id, window.start_date, window.end_date, exclude_booking_id
        )

    def get_upcoming_bookings(self, days: int, context: CallerContext) -> list[Booking]:
        days = _as_int(days, "days")
        if days < 1 or days > MAX_UPCOMING_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_UPCOMING_DAYS}")
        today = self._today()
        owner = None if self._is_privileged(context) else context.user_id
        return self.repository.upcoming(today, today + timedelta(days=days), customer_id=owner)

    def get_expiring_bookings(self, hours: int, context: CallerContext) -> list[Booking]:
        self._require_privileged(context, "view expiring bookings")
        hours = _as_int(hours, "hours")
        if hours < 1:
            raise ValidationError("hours must be a positive integer")
        # Whole-day granularity: 47 hours is one day, 48 is two.
        days = max(1, hours // 24)
        if days > MAX_EXPIRING_DAYS:
            raise ValidationError(f"The expiry window cannot exceed {MAX_EXPIRING_DAYS} days")
        now = self._now()
        return self.repository.expiring(now, now + timedelta(days=days))

    def get_statistics(self, context: CallerContext) -> dict[str, int]:
        self._require_privileged(context, "view booking statistics")
        counts = self.repository.status_counts()
        return {**counts, "total": sum(counts.values())}


MAX_DRIVER_NAME_LENGTH = 100


def _clean_drivers(drivers) -> list[str]:
    if drivers is None:
        return []
    if isinstance(drivers, str) or not isinstance(drivers, (list, tuple)):
        raise ValidationError("additional_drivers must be a list of names")
    cleaned = []
    for name in drivers:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Driver names must be non-empty strings")
        if len(name.strip()) > MAX_DRIVER_NAME_LENGTH:
            raise ValidationError(f"Driver name must not exceed {MAX_DRIVER_NAME_LENGTH} characters")
        cleaned.append(name.strip())
    return cleaned


def _normalize_patch(patch: Mapping[str, object]) -> dict:
    """Bring patch values to the shape stored on the booking so unchanged fields compare equal."""
    patch = dict(patch)
    if "extras" in patch:
        patch["extras"] = [extra.to_dict() for extra in parse_extras(patch["extras"])]
    if "additional_drivers" in patch:
        patch["additional_drivers"] = _clean_drivers(patch["additional_drivers"])
    if "deposit_amount" in patch:
        patch["deposit_amount"] = normalize_deposit(patch["deposit_amount"])
    if "deposit_paid" in patch:
        patch["deposit_paid"] = bool(patch["deposit_paid"])
    return patch


def _as_int(value, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def get_booking_service(**overrides) -> BookingService:
    """Service wired with the Django adapters."""
    return BookingService(**overrides)


__all__ = [
    "BookingService",
    "BookingSettings",
    "ConversionResult",
    "format_reference",
    "get_booking_service",
]
