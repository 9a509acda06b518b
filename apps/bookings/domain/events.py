"""
Booking Domain Events

Events that represent things that have happened to a booking.
They are published after successful transaction commits; the audit app
subscribes to ``BookingEvent`` and records every one of them.
"""

from dataclasses import dataclass, field
from datetime import date

from shared.domain.base import DomainEvent


@dataclass
class BookingEvent(DomainEvent):
    """Common fields of every booking event"""
    booking_reference: str = ''
    car_id: str = ''
    customer_id: str = ''

    action = 'update'

    def details(self) -> dict:
        return {
            'booking_reference': self.booking_reference,
            'car_id': self.car_id,
            'customer_id': self.customer_id,
        }

    def describe(self) -> str:
        return f"{self.action.capitalize()} booking {self.booking_reference}"


@dataclass
class BookingCreated(BookingEvent):
    """
    Event: A new booking was created (PENDING)

    Triggers:
    - Audit trail entry
    """
    start_date: date | None = None
    end_date: date | None = None

    action = 'create'

    def details(self) -> dict:
        return {
            **super().details(),
            'start_date': self.start_date,
            'end_date': self.end_date,
        }

    def describe(self) -> str:
        return f"Created booking {self.booking_reference} for customer {self.customer_id}"


@dataclass
class BookingUpdated(BookingEvent):
    """Event: Booking fields changed outside the lifecycle"""
    changed_fields: list = field(default_factory=list)

    action = 'update'

    def details(self) -> dict:
        return {**super().details(), 'changed_fields': list(self.changed_fields)}

    def describe(self) -> str:
        changes = ', '.join(self.changed_fields)
        return f"Updated booking {self.booking_reference}" + (f" ({changes})" if changes else '')


@dataclass
class BookingDeleted(BookingEvent):
    """Event: Booking permanently removed by an administrator"""

    action = 'delete'

    def describe(self) -> str:
        return f"Deleted booking {self.booking_reference}"


@dataclass
class BookingStatusChanged(BookingEvent):
    """Base for lifecycle transitions"""
    old_status: str = ''
    new_status: str = ''

    def details(self) -> dict:
        return {
            **super().details(),
            'old_status': self.old_status,
            'new_status': self.new_status,
        }

    def describe(self) -> str:
        return (
            f"Updated booking {self.booking_reference} "
            f"(status: {self.old_status} -> {self.new_status})"
        )


@dataclass
class BookingConfirmed(BookingStatusChanged):
    """Event: PENDING -> CONFIRMED"""

    action = 'confirm'


@dataclass
class BookingCancelled(BookingStatusChanged):
    """Event: PENDING/CONFIRMED -> CANCELLED, frees the car"""
    reason: str = ''

    action = 'cancel'

    def details(self) -> dict:
        return {**super().details(), 'reason': self.reason}


@dataclass
class BookingExpired(BookingStatusChanged):
    """Event: hold ran out, PENDING -> EXPIRED, frees the car"""

    action = 'expire'


@dataclass
class BookingConverted(BookingStatusChanged):
    """Event: CONFIRMED -> CONVERTED, the contract now blocks the car"""
    contract_id: str = ''

    action = 'convert'

    def details(self) -> dict:
        return {**super().details(), 'contract_id': self.contract_id}
