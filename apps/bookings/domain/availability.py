"""
Interval-Overlap Checker

The rule that prevents double bookings: a car can hold at most one
blocking reservation for any given day. Blocking reservations are
bookings in PENDING or CONFIRMED status and active rental contracts.

Windows are closed intervals. Two windows conflict when
``start1 <= end2 and start2 <= end1``, so a booking that ends on a day
and another that starts on that same day are a conflict.

These functions are pure. Callers must run them again inside the
transaction that performs the dependent write, after locking the car.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List
from uuid import UUID

from shared.domain.value_objects import DateRange

SOURCE_BOOKING = 'booking'
SOURCE_CONTRACT = 'contract'


@dataclass(frozen=True)
class Reservation:
    """Snapshot of something that keeps a car busy for a window"""
    source: str
    record_id: str
    car_id: str
    window: DateRange

    def is_booking(self, booking_id) -> bool:
        return self.source == SOURCE_BOOKING and self.record_id == str(booking_id)


def find_conflicts(
    reservations: Iterable[Reservation],
    car_id: str,
    start_date: date,
    end_date: date,
    exclude_booking_id: UUID | str | None = None,
) -> List[Reservation]:
    """Return every reservation of ``car_id`` clashing with the window"""
    window = DateRange(start_date, end_date)
    conflicts = []
    for reservation in reservations:
        if reservation.car_id != car_id:
            continue
        if exclude_booking_id is not None and reservation.is_booking(exclude_booking_id):
            continue
        if reservation.window.overlaps_with(window):
            conflicts.append(reservation)
    return conflicts


def is_available(
    reservations: Iterable[Reservation],
    car_id: str,
    start_date: date,
    end_date: date,
    exclude_booking_id: UUID | str | None = None,
) -> bool:
    """True when no blocking reservation overlaps the requested window"""
    return not find_conflicts(reservations, car_id, start_date, end_date, exclude_booking_id)
