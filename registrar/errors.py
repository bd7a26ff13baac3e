"""
Domain errors.

Every error carries the HTTP status it maps to and a message that is safe to
show to end users. The handlers in registrar/api/errors.py render them.
"""

from typing import Optional


class RegistrarError(Exception):
    """Base class for all registrar errors."""

    status_code: int = 500
    public_message: str = "internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        if message is not None:
            self.public_message = message


# ============== Password policy ==============

class PolicyInconsistent(RegistrarError):
    """The active parameters cannot form a policy (min length above max length)."""

    status_code = 400
    public_message = "password policy is inconsistent"

    def __init__(self, min_length: int, max_length: int):
        super().__init__(
            f"password.min.length ({min_length}) cannot be greater than "
            f"password.max.length ({max_length})"
        )
        self.min_length = min_length
        self.max_length = max_length


class PolicyUnavailable(RegistrarError):
    """No password policy parameters are stored."""

    status_code = 500
    public_message = "password policy is not available"


# ============== Store ==============

class StoreUnavailable(RegistrarError):
    """Transient storage failure; safe to retry."""

    status_code = 503
    public_message = "service temporarily unavailable"


class StoreConflict(RegistrarError):
    """A uniqueness constraint was violated."""

    status_code = 500
    public_message = "internal server error"


# ============== Requests ==============

class NotFound(RegistrarError):
    status_code = 404
    public_message = "not found"


class OperationTimeout(RegistrarError):
    status_code = 504
    public_message = "request timed out"


class InvalidPassword(RegistrarError):
    status_code = 400
    public_message = "password does not meet requirements"

    def __init__(self):
        # The pattern is never part of the message
        super().__init__()


class EmailAlreadyRegistered(RegistrarError):
    status_code = 400
    public_message = "email already registered"

    def __init__(self):
        super().__init__()


class InvalidCredentials(RegistrarError):
    status_code = 401
    public_message = "invalid credentials"
