class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"
    http_status = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "invalid"


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not part of the allowed state machine."""

    code = "invalid_transition"
    http_status = 409


class AuthenticationError(DomainError):
    """Raised when the caller cannot be resolved to a known profile."""

    code = "unauthenticated"
    http_status = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "denied"
    http_status = 403


class NotFoundError(DomainError):
    code = "not_found"
    http_status = 404


class CapacityExceededError(DomainError):
    code = "capacity_exceeded"
    http_status = 409


class AlreadyRegisteredError(DomainError):
    code = "already_registered"
    http_status = 409


class InvalidCodeError(DomainError):
    """Raised when a scanned code does not match any registration of the event."""

    code = "invalid_code"
    http_status = 404


class InvalidForCheckInError(DomainError):
    """Raised when the registration exists but its status cannot be checked in."""

    code = "invalid_for_check_in"
    http_status = 409


class ConflictError(DomainError):
    """Concurrent write detected; the operation may be retried."""

    code = "conflict"
    http_status = 409


class TransientError(DomainError):
    """A collaborator (database, storage) is temporarily unavailable."""

    code = "transient"
    http_status = 503
