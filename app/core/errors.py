"""Domain errors raised by services and stores, translated to HTTP responses in app.main."""


class AppError(Exception):
    """Base for errors that map to a status code and a stable error label."""

    status_code = 500
    label = "Internal Server Error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(AppError):
    """Malformed request input; request schema failures are reported with this status and label."""

    status_code = 400
    label = "Bad Request"
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = 401
    label = "Unauthorized"
    default_message = "Authentication required"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class MissingToken(Unauthorized):
    default_message = "Invalid or missing token"


class InvalidToken(Unauthorized):
    default_message = "Invalid or expired token"


class Forbidden(AppError):
    status_code = 403
    label = "Forbidden"
    default_message = "You do not have permission to access this resource"


class NotFound(AppError):
    status_code = 404
    label = "Not Found"
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    label = "Conflict"
    default_message = "Resource already exists"


class InternalError(AppError):
    pass


class StorageError(InternalError):
    """Raised when the persistence backend fails (unreachable, unexpected status)."""

    default_message = "Storage backend request failed"
