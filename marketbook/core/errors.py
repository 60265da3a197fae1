"""
Error taxonomy shared by services and endpoints.
Each error carries its HTTP status; main.py renders them as {"message": ...}.
"""


class AppError(Exception):
    """Base for expected outcomes surfaced to the caller."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests from this address, please try again later"


class InternalError(AppError):
    """Unexpected store failure. Details are logged, never returned."""

    status_code = 500
