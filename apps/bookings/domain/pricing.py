"""
Booking Pricing

Total = car daily rate x days + sum(extra.price_per_day x quantity x days).
The deposit is a share of the total unless the caller sets it explicitly.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import DateRange, Money

EXTRA_TYPES = ('sim_card', 'child_seat', 'kasko_insurance', 'roof_rack')
MAX_EXTRA_QUANTITY = 10
MAX_EXTRA_PRICE_PER_DAY = Decimal('10000')
DEFAULT_DEPOSIT_RATE = Decimal('0.30')


def _decimal(value, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{name} must be a number")
    return amount


@dataclass(frozen=True)
class BookingExtra:
    """Optional equipment or cover rented with the car (child seat, SIM card, ...)"""
    type: str
    quantity: int
    price_per_day: Decimal

    def __post_init__(self):
        if self.type not in EXTRA_TYPES:
            raise ValidationError(
                f"Unknown extra type {self.type!r}; expected one of: {', '.join(EXTRA_TYPES)}"
            )
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError("Extra quantity must be an integer")
        if not 1 <= self.quantity <= MAX_EXTRA_QUANTITY:
            raise ValidationError(f"Extra quantity must be between 1 and {MAX_EXTRA_QUANTITY}")
        if not Decimal('0') <= self.price_per_day <= MAX_EXTRA_PRICE_PER_DAY:
            raise ValidationError(
                f"Extra price per day must be between 0 and {MAX_EXTRA_PRICE_PER_DAY}"
            )

    @classmethod
    def from_dict(cls, data: Mapping) -> 'BookingExtra':
        if not isinstance(data, Mapping):
            raise ValidationError("Each extra must be an object")
        missing = {'type', 'quantity', 'price_per_day'} - set(data)
        if missing:
            raise ValidationError(f"Extra is missing: {', '.join(sorted(missing))}")
        return cls(
            type=data['type'],
            quantity=data['quantity'],
            price_per_day=_decimal(data['price_per_day'], 'price_per_day'),
        )

    def to_dict(self) -> dict:
        return {
            'type': self.type,
            'quantity': self.quantity,
            'price_per_day': str(self.price_per_day),
        }

    def cost(self, days: int) -> Decimal:
        return self.price_per_day * self.quantity * days


def parse_extras(extras: Iterable[Mapping] | None) -> list[BookingExtra]:
    return [BookingExtra.from_dict(item) for item in (extras or [])]


@dataclass(frozen=True)
class Quote:
    total: Money
    deposit: Money


def quote_booking(
    daily_rate: Decimal,
    currency: str,
    window: DateRange,
    extras: Iterable[BookingExtra] = (),
    *,
    deposit_rate: Decimal = DEFAULT_DEPOSIT_RATE,
    deposit_amount=None,
) -> Quote:
    """Price a rental window; an explicit ``deposit_amount`` replaces the default share."""
    days = window.days
    extras_cost = sum((extra.cost(days) for extra in extras), Decimal('0'))
    total = (Money(daily_rate, currency) * days + Money(extras_cost, currency)).quantize()

    if deposit_amount is None:
        deposit = (total * deposit_rate).quantize()
    else:
        deposit = Money(normalize_deposit(deposit_amount), currency)
    return Quote(total=total, deposit=deposit)


def normalize_deposit(value) -> Decimal:
    """Caller-supplied deposit, rounded to cents."""
    amount = _decimal(value, 'deposit_amount')
    if amount < 0:
        raise ValidationError("Deposit amount cannot be negative")
    return Money(amount).quantize().amount
