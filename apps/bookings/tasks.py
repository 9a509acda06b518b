"""Celery tasks for the booking domain."""

from __future__ import annotations

import structlog
from celery import shared_task  # type: ignore

from .services import get_booking_service

logger = structlog.get_logger(__name__)


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Expire pending bookings whose hold has run out.

    Runs every BOOKING_EXPIRY_SWEEP_SECONDS through Celery Beat.

    Returns:
        dict: {"expired": number of bookings moved to EXPIRED}
    """
    expired = get_booking_service().expire_overdue()
    if expired:
        logger.info("bookings_expired", count=expired)
    return {"expired": expired}
