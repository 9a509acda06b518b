"""Caller identity passed from the boundary into application services."""

from dataclasses import dataclass
from typing import Iterable

SYSTEM_USER_ID = 'system'


@dataclass(frozen=True)
class CallerContext:
    """
    Already-authenticated caller

    The engine never authenticates; it only decides between
    self-ownership and privileged access based on this context.
    """
    user_id: str
    role: str = ''

    def is_privileged(self, privileged_roles: Iterable[str]) -> bool:
        return (self.role or '').lower() in {r.lower() for r in privileged_roles}

    def owns(self, customer_id: str | None) -> bool:
        return bool(customer_id) and str(customer_id) == str(self.user_id)

    @classmethod
    def system(cls) -> 'CallerContext':
        """Context used by scheduled jobs"""
        return cls(user_id=SYSTEM_USER_ID, role='system')
