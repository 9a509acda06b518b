"""Authentication backed by identity headers from the upstream gateway."""

from __future__ import annotations

from dataclasses import dataclass

from rest_framework import authentication  # type: ignore

from shared.application.context import CallerContext

USER_ID_HEADER = "HTTP_X_USER_ID"
USER_ROLE_HEADER = "HTTP_X_USER_ROLE"


@dataclass(frozen=True)
class GatewayUser:
    """Request user resolved by the gateway; carries no credentials."""

    id: str
    role: str = ""

    is_authenticated = True
    is_anonymous = False

    @property
    def context(self) -> CallerContext:
        return CallerContext(user_id=self.id, role=self.role)

    def __str__(self) -> str:
        return f"{self.id} ({self.role or 'customer'})"


class GatewayHeaderAuthentication(authentication.BaseAuthentication):
    """Trusts ``X-User-Id`` / ``X-User-Role`` set by the authenticating proxy."""

    def authenticate(self, request):  # type: ignore
        user_id = (request.META.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return None
        role = (request.META.get(USER_ROLE_HEADER) or "").strip().lower()
        return GatewayUser(id=user_id, role=role), None

    def authenticate_header(self, request):  # type: ignore
        return "X-User-Id"


def caller_context(request) -> CallerContext:
    """Build the engine's caller context from an authenticated request."""
    user = request.user
    if isinstance(user, GatewayUser):
        return user.context
    return CallerContext(user_id=str(user.pk), role=getattr(user, "role", "") or "")
