"""
Common Value Objects

Value objects used across the booking and contract domains:
- Money: Monetary amount with currency
- DateRange: Rental window from start date to end date (both inclusive)
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject

CURRENCY_RE = re.compile(r'^[A-Z]{3}$')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'EUR'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency or not CURRENCY_RE.match(self.currency):
            raise ValueError(f"Unsupported currency: {self.currency!r}")

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def quantize(self) -> 'Money':
        """Round to cents"""
        return Money(self.amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP), self.currency)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Rental window value object

    Both ends are inclusive: a car handed back on ``end_date`` is still
    considered taken on that day, so a second window starting that same
    day conflicts with it (no same-day turnaround).
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this window conflicts with another

        Closed-interval rule: start1 <= end2 AND start2 <= end1.

        Examples:
            - DateRange(1, 5) overlaps with DateRange(4, 8) -> True
            - DateRange(1, 5) overlaps with DateRange(5, 9) -> True (touching)
            - DateRange(1, 5) overlaps with DateRange(6, 10) -> False
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        return (self.start_date <= other.end_date and
                other.start_date <= self.end_date)

    def contains(self, check_date: date) -> bool:
        """Check if a date falls inside the window (inclusive)"""
        return self.start_date <= check_date <= self.end_date

    @property
    def days(self) -> int:
        """Number of billable rental days"""
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
