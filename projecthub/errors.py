"""Error kinds raised by the services and rendered by the API.

Every failure leaves the API as ``{"success": false, "error": <message>}`` with
the HTTP status of its class.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class ForbiddenError(AppError):
    """Authenticated, but the active policy denies the action."""
    status_code = 403


class NotFoundError(AppError):
    """Entity absent or soft-deleted."""
    status_code = 404


class ConflictError(AppError):
    """Uniqueness violation: slug, membership, email, label attachment."""
    status_code = 409


class InternalError(AppError):
    status_code = 500
