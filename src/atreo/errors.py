"""Domain error hierarchy.

Services raise these; ``atreo.api.error_handlers`` renders them as JSON:API
error documents using each class's ``http_status`` and ``title``.
"""


class AtreoError(Exception):
    """Base exception for all Atreo domain errors."""

    http_status = 500
    title = "Internal Server Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(AtreoError, ValueError):
    """The request is well-formed but violates a business rule."""

    http_status = 400
    title = "Bad Request"


class AuthenticationError(AtreoError):
    http_status = 401
    title = "Unauthorized"


class PermissionDeniedError(AtreoError):
    http_status = 403
    title = "Forbidden"


class NotFoundError(AtreoError, ValueError):
    http_status = 404
    title = "Not Found"


class ConflictError(AtreoError, ValueError):
    http_status = 409
    title = "Conflict"


class RateLimitedError(AtreoError):
    """Too many requests; ``retry_after`` is in seconds."""

    http_status = 429
    title = "Too Many Requests"

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ServiceUnavailableError(AtreoError):
    """An outbound dependency (mail broker, storage) could not be reached."""

    http_status = 500
    title = "Internal Server Error"
