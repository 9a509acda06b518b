"""DRF exception handler mapping domain errors to stable HTTP responses."""

from __future__ import annotations

import structlog
from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred."

STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
)


def status_for(exc: DomainError) -> int:
    for error_class, http_status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def domain_exception_handler(exc, context):  # type: ignore
    """Translate domain errors; hide everything unexpected behind a generic 500."""

    if isinstance(exc, DomainError):
        http_status = status_for(exc)
        logger.info(
            "request.rejected",
            code=exc.code,
            status=http_status,
            detail=exc.message,
        )
        return Response({"detail": exc.message, "code": exc.code}, status=http_status)

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    logger.error(
        "request.failed",
        view=view.__class__.__name__ if view is not None else None,
        error_type=exc.__class__.__name__,
        exc_info=exc,
    )
    return Response(
        {"detail": GENERIC_ERROR_MESSAGE, "code": "internal_error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
