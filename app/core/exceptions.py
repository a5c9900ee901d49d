"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, details: list[str] | None = None):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details or []
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized."):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidLinesException(BadRequestException):
    """One or more requested line identifiers are not active lines."""

    def __init__(self, invalid_lines: list[str]):
        """Initialize with the offending line identifiers."""
        super().__init__("One or more of the specified lines is not valid.")
        self.invalid_lines = invalid_lines


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class LoginAlreadyAssociatedException(ConflictException):
    """The external login is already linked to a different user."""

    def __init__(self, provider: str):
        """Initialize with the provider name."""
        super().__init__(f"A user with this {provider} login already exists.")
        self.provider = provider


class LineDataUnavailableException(AppException):
    """The canonical line list could not be fetched."""

    def __init__(self, message: str = "Line data is currently unavailable."):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class AuthorizationFailure(AppException):
    """
    Base for failures of the bearer-token check on the preferences API.

    ``reason`` names the failure class for audit logging; the response body
    only ever carries ``message`` and ``details``.
    """

    reason = "Unauthorized"

    def __init__(self, message: str = "Unauthorized.", details: list[str] | None = None):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401, details=details)


class NoAuthorizationProvided(AuthorizationFailure):
    """No Authorization header, or a blank one, was sent."""

    reason = "NoAuthorizationProvided"

    def __init__(self):
        """Initialize with the fixed no-token message."""
        super().__init__("No access token specified.")


class MalformedHeader(AuthorizationFailure):
    """The Authorization header is not a ``scheme parameter`` pair."""

    reason = "MalformedHeader"
    detail = "The provided authorization value is not valid."

    def __init__(self):
        """Initialize with the malformed-header detail."""
        super().__init__(details=[self.detail])


class UnsupportedScheme(AuthorizationFailure):
    """The Authorization header uses a scheme other than bearer."""

    reason = "UnsupportedScheme"
    detail = "Only the bearer authorization scheme is supported."

    def __init__(self):
        """Initialize with the unsupported-scheme detail."""
        super().__init__(details=[self.detail])


class TokenMismatch(AuthorizationFailure):
    """The bearer token did not match any user's access token."""

    reason = "TokenMismatch"

    def __init__(self):
        """Initialize with no details."""
        super().__init__()
