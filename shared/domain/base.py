"""
Base Domain Classes

Foundational building blocks shared by the domain apps:
- ValueObject: Immutable objects compared by value
- DomainEvent: Something that happened to an aggregate, published after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Events carry the id of the aggregate they belong to and the caller
    who triggered them, so subscribers (audit trail, notifications) do
    not need to reload anything.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    aggregate_id: UUID | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
            'actor_id': self.actor_id,
            'actor_role': self.actor_role,
        }
