"""Contract creation used by booking conversion."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from .models import Contract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractRequest:
    """Payload derived from a confirmed booking."""

    customer_id: str
    car_id: str
    start_date: date
    end_date: date
    daily_rate: Decimal
    total_amount: Decimal
    deposit_amount: Decimal
    deposit_paid: bool
    currency: str
    pickup_location: str
    dropoff_location: str
    notes: str
    additional_drivers: list
    extras: list
    source_booking_id: UUID
    requested_by: str

    def to_dict(self) -> dict:
        return asdict(self)


class DjangoContractGateway:
    """Creates an active contract and returns its id."""

    def create(self, request: ContractRequest) -> str:
        contract = Contract.objects.create(
            customer_id=request.customer_id,
            car_id=request.car_id,
            start_date=request.start_date,
            end_date=request.end_date,
            daily_rate=request.daily_rate,
            total_amount=request.total_amount,
            deposit_amount=request.deposit_amount,
            deposit_paid=request.deposit_paid,
            currency=request.currency,
            pickup_location=request.pickup_location,
            dropoff_location=request.dropoff_location,
            notes=request.notes,
            additional_drivers=request.additional_drivers,
            extras=request.extras,
            source_booking_id=request.source_booking_id,
            status=Contract.Status.ACTIVE,
            created_by=request.requested_by,
        )
        logger.info(f"Contract {contract.id} created from booking {request.source_booking_id}")
        return str(contract.id)
