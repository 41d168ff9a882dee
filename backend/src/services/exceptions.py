"""Shared exceptions for service layer operations."""


class ServiceError(Exception):
    """Base class for errors surfaced to the request layer."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthenticatedError(ServiceError):
    """Raised when an operation requires a session and none is present."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ForbiddenError(ServiceError):
    """
    Raised when a valid session lacks the capability for an operation.

    Also raised when no session is present on a privileged operation, so that
    privileged endpoints never reveal whether a session was recognized.
    """

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when an entity is absent from every tier that was consulted."""

    def __init__(self, kind: str, record_id: str | None = None) -> None:
        self.kind = kind
        self.record_id = record_id
        label = kind.rstrip("s").title()
        message = f"{label} not found" if record_id is None else f"{label} '{record_id}' not found"
        super().__init__(message)


class ConflictError(ServiceError):
    """Raised when a business key is already in use (e.g., registering a taken email)."""


class MalformedInputError(ServiceError):
    """Raised when input fails structural or business validation."""


class UnavailableError(ServiceError):
    """
    Raised when both the primary store and the volatile fallback failed.

    This is the only storage failure surfaced to the request layer; single-tier
    failures are logged and recovered through the fallback tier.
    """

    def __init__(self, kind: str, operation: str) -> None:
        self.kind = kind
        self.operation = operation
        super().__init__(f"Storage unavailable for {kind} {operation}")
