"""Message bus subscribers writing the audit trail."""

from __future__ import annotations

import json
import logging

from django.core.serializers.json import DjangoJSONEncoder  # type: ignore

from .models import AuditLog

logger = logging.getLogger(__name__)


def record_booking_event(event) -> None:
    """Persist a booking event; the bus logs and swallows any failure."""
    details = json.loads(json.dumps(event.details(), cls=DjangoJSONEncoder))
    AuditLog.objects.create(
        event_id=event.event_id,
        actor_id=event.actor_id or "",
        actor_role=event.actor_role or "",
        action=event.action,
        resource_type="booking",
        resource_id=str(event.aggregate_id),
        description=event.describe(),
        details=details,
        timestamp=event.occurred_at,
    )
    logger.debug(f"Audit entry written for {event.action} of booking {event.aggregate_id}")
