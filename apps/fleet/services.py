"""Read-only lookups the booking engine uses to validate references."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .models import Car, Customer


@dataclass(frozen=True)
class CarSnapshot:
    """What a booking needs to know about a car at creation time."""

    id: str
    status: str
    daily_rate: Decimal
    currency: str

    @property
    def is_rentable(self) -> bool:
        return self.status == Car.Status.AVAILABLE


class DjangoCarCatalog:
    def exists(self, car_id: str) -> bool:
        return Car.objects.filter(pk=car_id).exists()

    def get(self, car_id: str) -> CarSnapshot | None:
        car = Car.objects.filter(pk=car_id).only("id", "status", "daily_rate", "currency").first()
        if car is None:
            return None
        return CarSnapshot(
            id=car.id,
            status=car.status,
            daily_rate=car.daily_rate,
            currency=car.currency,
        )


class DjangoCustomerDirectory:
    def exists(self, customer_id: str) -> bool:
        return Customer.objects.filter(pk=customer_id).exists()
