"""Domain errors raised by the services and mapped to HTTP responses in main.py."""


class AppError(Exception):
    """Base exception for all service-level errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or "Error"


class NotFoundError(AppError):
    """Referenced list, score or catalog entry does not exist."""

    status_code = 404


class PermissionDeniedError(AppError):
    """Acting member may not perform this operation."""

    status_code = 403


class NotOwnerError(PermissionDeniedError):
    """Acting member is not the owner of the list."""


class InvalidInputError(AppError):
    """Malformed or out-of-range input."""

    status_code = 400


class UpstreamUnavailableError(AppError):
    """A best-effort sub-lookup failed.

    Callers that only decorate a response with the sub-lookup result catch
    this and omit the field instead of failing.
    """

    status_code = 503
