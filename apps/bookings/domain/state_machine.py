"""
Booking Lifecycle State Machine

State transitions:
- PENDING -> CONFIRMED (confirm)
- PENDING -> CANCELLED (cancel)
- CONFIRMED -> CANCELLED (cancel)
- PENDING -> EXPIRED (hold ran out, expiry sweep)
- CONFIRMED -> CONVERTED (converted into a rental contract)

CANCELLED, EXPIRED and CONVERTED are terminal. Any other request fails
with InvalidTransitionError naming the current and requested status.
"""

from datetime import datetime
from enum import Enum

from shared.domain.exceptions import InvalidTransitionError

MUST_BE_CONFIRMED_MESSAGE = (
    "Booking must be confirmed first before converting to a contract "
    "(current status: {current})"
)


class BookingStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'
    CONVERTED = 'converted'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def blocks_car(self) -> bool:
        return self in BLOCKING_STATUSES


TERMINAL_STATUSES = frozenset({
    BookingStatus.CANCELLED,
    BookingStatus.EXPIRED,
    BookingStatus.CONVERTED,
})

BLOCKING_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
})

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.CONVERTED,
    }),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.CONVERTED: frozenset(),
}


class BookingStateMachine:
    """
    Guards and applies booking status transitions

    Works on anything exposing ``status`` and ``expires_at`` attributes
    plus the lifecycle timestamp fields; in practice the Booking model.
    """

    def ensure_can_transition(self, current, target, *, expires_at: datetime | None = None,
                              now: datetime | None = None) -> None:
        current = BookingStatus(current)
        target = BookingStatus(target)

        if target is BookingStatus.CONVERTED and current is not BookingStatus.CONFIRMED:
            raise InvalidTransitionError(
                current.value,
                target.value,
                MUST_BE_CONFIRMED_MESSAGE.format(current=current.value),
            )

        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value)

        if target is BookingStatus.EXPIRED:
            if expires_at is None or now is None or not now > expires_at:
                raise InvalidTransitionError(
                    current.value,
                    target.value,
                    f"Booking hold has not run out yet (expires at {expires_at})",
                )

    def can_transition(self, current, target, **kwargs) -> bool:
        try:
            self.ensure_can_transition(current, target, **kwargs)
        except InvalidTransitionError:
            return False
        return True

    def apply(self, booking, target, *, now: datetime, reason: str | None = None):
        """
        Move the booking to ``target`` and stamp the side-effect fields

        Returns the previous status.
        """
        target = BookingStatus(target)
        previous = BookingStatus(booking.status)
        self.ensure_can_transition(previous, target, expires_at=booking.expires_at, now=now)

        booking.status = target.value
        if target is BookingStatus.CONFIRMED:
            booking.confirmed_at = now
        elif target is BookingStatus.CANCELLED:
            booking.cancelled_at = now
            booking.cancellation_reason = reason or ''
        elif target is BookingStatus.EXPIRED:
            booking.expired_at = now
        elif target is BookingStatus.CONVERTED:
            booking.converted_at = now

        return previous


state_machine = BookingStateMachine()
