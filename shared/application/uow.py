"""
Unit of Work Pattern

Wraps one business operation in a database transaction and makes sure
domain events reach subscribers only after the transaction commits.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __init__(self):
        self._events: List[DomainEvent] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def record_event(self, event: DomainEvent):
        """Queue an event for publication after commit"""
        self._events.append(event)

    @property
    def pending_events(self) -> List[DomainEvent]:
        return self._events.copy()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            repository.lock_cars(car_id)
            booking = repository.get(booking_id, for_update=True)
            state_machine.apply(booking, BookingStatus.CONFIRMED, now=now)
            repository.save(booking)
            uow.record_event(BookingConfirmed(...))
            # Transaction commits here
        # Events are published after commit
    """

    def __init__(self, bus=None):
        super().__init__()
        self._bus = bus
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing

        Events are published using Django's transaction.on_commit()
        so they are only sent after the outermost commit succeeds.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to the message bus

        Called after successful transaction commit.
        """
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            bus.publish_events(events)
        except Exception as e:
            # Data is already committed; subscribers must not undo the operation.
            logger.error(f"Error publishing events: {e}", exc_info=True)
