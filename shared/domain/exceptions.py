"""
Domain Errors

Typed errors raised by the domain and application layers. The HTTP
boundary maps each class to a stable status code; nothing downstream
inspects the message text.
"""


class DomainError(Exception):
    """Base class for all expected business failures"""

    code = 'domain_error'

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self):
        return self.message


class ValidationError(DomainError):
    """Malformed input or a violated booking rule (dates, duration, ...)"""

    code = 'validation_error'


class NotFoundError(DomainError):
    """Unknown booking, car or customer"""

    code = 'not_found'


class ConflictError(DomainError):
    """Requested state clashes with existing state (overlap, terminal booking)"""

    code = 'conflict'


class InvalidTransitionError(ConflictError):
    """Lifecycle transition not allowed from the current status"""

    code = 'invalid_transition'

    def __init__(self, current: str, target: str, message: str | None = None):
        super().__init__(
            message or f"Invalid booking status transition: {current} -> {target}"
        )
        self.current = current
        self.target = target


class AuthorizationError(DomainError):
    """Caller may not act on this resource"""

    code = 'forbidden'
