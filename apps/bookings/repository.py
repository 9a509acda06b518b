"""Booking repository: Django ORM persistence and the specialised queries."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Mapping
from uuid import UUID

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Count, Q  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.contracts.models import Contract
from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import DateRange

from .domain.availability import SOURCE_BOOKING, SOURCE_CONTRACT, Reservation
from .filters import BookingFilterSet
from .models import Booking, BookingReferenceSequence, CarReservationLock

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_PAGE = 10000

SORTABLE_FIELDS = frozenset({
    "created_at",
    "updated_at",
    "start_date",
    "end_date",
    "total_estimated_cost",
    "booking_reference",
    "status",
    "expires_at",
})

BLOCKING_BOOKING_STATUSES = (Booking.Status.PENDING, Booking.Status.CONFIRMED)
BLOCKING_CONTRACT_STATUSES = (Contract.Status.ACTIVE,)


@dataclass
class Page:
    data: List[Booking] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def normalize_paging(page, limit) -> tuple[int, int]:
    try:
        page = int(page or 1)
        limit = int(limit or DEFAULT_PAGE_SIZE)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1 or page > MAX_PAGE:
        raise ValidationError(f"page must be between 1 and {MAX_PAGE}")
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    return page, min(limit, MAX_PAGE_SIZE)


def _as_uuid(value) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class DjangoBookingRepository:
    """Everything the booking service reads or writes goes through here."""

    # --- single records ---------------------------------------------------

    def get(self, booking_id, *, for_update: bool = False) -> Booking | None:
        pk = _as_uuid(booking_id)
        if pk is None:
            return None
        qs = Booking.objects.filter(pk=pk)
        if for_update:
            qs = _lock_queryset_if_possible(qs)
        return qs.first()

    def get_by_reference(self, reference: str) -> Booking | None:
        return Booking.objects.filter(booking_reference=reference).first()

    def add(self, booking: Booking) -> Booking:
        booking.save(force_insert=True)
        return booking

    def save(self, booking: Booking, fields: Iterable[str] | None = None) -> Booking:
        if fields is None:
            booking.save()
        else:
            booking.save(update_fields=sorted(set(fields) | {"updated_at", "updated_by"}))
        return booking

    def delete(self, booking: Booking) -> None:
        Booking.objects.filter(pk=booking.pk).delete()

    # --- concurrency ------------------------------------------------------

    def lock_cars(self, *car_ids: str) -> None:
        """
        Lock the reservation rows of the given cars until the transaction ends

        Rows are locked in sorted order so two writers touching the same
        pair of cars cannot deadlock each other.
        """
        for car_id in sorted({c for c in car_ids if c}):
            try:
                CarReservationLock.objects.get_or_create(car_id=car_id)
            except IntegrityError:
                # Lost the insert race; the row exists now.
                pass
            _lock_queryset_if_possible(
                CarReservationLock.objects.filter(car_id=car_id)
            ).get()

    def next_reference(self, year: int) -> int:
        """Increment and return the booking sequence for ``year``."""
        BookingReferenceSequence.objects.get_or_create(year=year)
        sequence = _lock_queryset_if_possible(
            BookingReferenceSequence.objects.filter(year=year)
        ).get()
        sequence.last_value += 1
        sequence.save(update_fields=["last_value"])
        return sequence.last_value

    # --- availability -----------------------------------------------------

    def blocking_reservations(self, car_id: str, start_date: date, end_date: date) -> List[Reservation]:
        """Bookings and contracts that keep ``car_id`` busy around the window."""
        window = Q(start_date__lte=end_date) & Q(end_date__gte=start_date)

        bookings = Booking.objects.filter(
            car_id=car_id,
            status__in=BLOCKING_BOOKING_STATUSES,
        ).filter(window).values_list("id", "start_date", "end_date")

        contracts = Contract.objects.filter(
            car_id=car_id,
            status__in=BLOCKING_CONTRACT_STATUSES,
        ).filter(window).values_list("id", "start_date", "end_date")

        reservations = [
            Reservation(SOURCE_BOOKING, str(pk), car_id, DateRange(start, end))
            for pk, start, end in bookings
        ]
        reservations += [
            Reservation(SOURCE_CONTRACT, str(pk), car_id, DateRange(start, end))
            for pk, start, end in contracts
        ]
        return reservations

    # --- listings ---------------------------------------------------------

    def _paginate(self, queryset, page: int, limit: int) -> Page:
        page, limit = normalize_paging(page, limit)
        total = queryset.count()
        offset = (page - 1) * limit
        return Page(data=list(queryset[offset:offset + limit]), total=total, page=page, limit=limit)

    def list(
        self,
        filters: Mapping[str, object] | None = None,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page:
        sort_by = sort_by or "created_at"
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by '{sort_by}'")
        if (sort_order or "desc").lower() not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'")

        filterset = BookingFilterSet(data=dict(filters or {}), queryset=Booking.objects.all())
        if not filterset.is_valid():
            fields = ", ".join(sorted(filterset.errors))
            raise ValidationError(f"Invalid booking filters: {fields}")

        ordering = sort_by if (sort_order or "desc").lower() == "asc" else f"-{sort_by}"
        return self._paginate(filterset.qs.order_by(ordering, "id"), page, limit)

    def by_customer(self, customer_id: str, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Page:
        qs = Booking.objects.filter(customer_id=customer_id).order_by("-created_at", "id")
        return self._paginate(qs, page, limit)

    def by_car(self, car_id: str, *, customer_id: str | None = None,
               page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Page:
        qs = Booking.objects.filter(car_id=car_id)
        if customer_id is not None:
            qs = qs.filter(customer_id=customer_id)
        return self._paginate(qs.order_by("start_date", "id"), page, limit)

    def upcoming(self, start: date, end: date, *, customer_id: str | None = None) -> List[Booking]:
        qs = Booking.objects.filter(
            status__in=BLOCKING_BOOKING_STATUSES,
            start_date__gte=start,
            start_date__lte=end,
        )
        if customer_id is not None:
            qs = qs.filter(customer_id=customer_id)
        return list(qs.order_by("start_date", "id"))

    def expiring(self, now: datetime, until: datetime) -> List[Booking]:
        return list(
            Booking.objects.filter(
                status=Booking.Status.PENDING,
                expires_at__gte=now,
                expires_at__lte=until,
            ).order_by("expires_at", "id")
        )

    def overdue_pending(self, now: datetime) -> List[Booking]:
        return list(
            Booking.objects.filter(
                status=Booking.Status.PENDING,
                expires_at__lt=now,
            ).order_by("expires_at", "id")
        )

    def status_counts(self) -> dict[str, int]:
        rows = Booking.objects.values("status").annotate(total=Count("id")).order_by()
        counts = {status: 0 for status in Booking.Status.values}
        for row in rows:
            counts[row["status"]] = row["total"]
        return counts
