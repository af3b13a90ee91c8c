"""
Typed errors raised by the service layer.

Services never build HTTP responses themselves. They raise one of these and the
handler registered in petsup.main turns it into a status code plus a JSON body.
"""
from typing import Optional


class PetSupError(Exception):
    """Base class for every domain error reported to API callers."""
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(PetSupError):
    """A referenced entity does not exist."""
    status_code = 404


class ConflictError(PetSupError):
    """Duplicate term or duplicate unique field."""
    status_code = 409


class ValidationError(PetSupError):
    """Malformed input that passed schema validation (bad CPF, own pet, ...)."""
    status_code = 400


class AuthenticationError(PetSupError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class AuthorizationError(PetSupError):
    """The actor does not own the resource."""
    status_code = 403


class InternalError(PetSupError):
    status_code = 500


class MailDeliveryError(InternalError):
    """SMTP delivery failed."""
