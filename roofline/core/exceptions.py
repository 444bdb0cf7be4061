"""Custom exceptions for the Roofline deal engine."""


class RooflineException(Exception):
    """Base exception for Roofline."""

    pass


class ValidationError(RooflineException):
    """Raised when validation fails."""

    pass


class NotFoundError(RooflineException):
    """Raised when a resource is not found."""

    pass


class ServiceError(RooflineException):
    """Raised when a service operation fails."""

    pass


class ConfigurationError(RooflineException):
    """Raised when configuration is invalid."""

    pass


class PersistenceError(ServiceError):
    """Raised when a call into the persistence collaborator is rejected.

    ``action`` names what the user attempted ("Save & Continue",
    "Sign agreement", ...) so the UI can show one message for it.
    """

    def __init__(self, action: str, detail: str | None = None) -> None:
        self.action = action
        self.detail = detail
        message = f"Failed to {action}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidTransitionError(ValidationError):
    """Raised when a disallowed state transition is attempted."""

    pass


class SignatureSequenceError(ValidationError):
    """Raised when a signature flow is driven out of order."""

    pass
