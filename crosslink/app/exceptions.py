"""Custom exceptions for the crosslink application."""

from typing import Any, Optional

from crosslink.app.core.utils import to_iso8601


class CrosslinkException(Exception):
    """Base class for crosslink exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Crosslink error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message}


class CredentialMissingError(CrosslinkException):
    """Raised when no X-API-Key header was presented.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401

    def __init__(self, message: str = "API key required. Provide X-API-Key header."):
        super().__init__(message)


class CredentialInvalidError(CrosslinkException):
    """Raised when the presented API key does not match the configured one.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401

    def __init__(self, message: str = "Unauthorized - Invalid API key"):
        super().__init__(message)


class ServerMisconfiguredError(CrosslinkException):
    """Raised when no expected API key is configured outside development.

    Maps to HTTP 500.
    """
    status_code = 500

    def __init__(self, message: str = "Server configuration error"):
        super().__init__(message)


class RateLimitExceededError(CrosslinkException):
    """Raised when an API key has used up its current window.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(self, limit: int, reset_at: float):
        self.limit = limit
        self.reset_at = reset_at
        super().__init__("Rate limit exceeded")

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message, "resetAt": to_iso8601(self.reset_at)}

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": to_iso8601(self.reset_at),
        }


class MissingIdentifierError(CrosslinkException):
    """Raised when a verification request carries no identifier.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, field: str = "work_request_id"):
        self.field = field
        super().__init__(f"{field} is required")


class MalformedIdentifierError(CrosslinkException):
    """Raised when a verification identifier is not numeric.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, field: str = "work_request_id", value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} format")


class ClientError(CrosslinkException):
    """Base class for failures of an outbound peer call.

    Never reaches callers of the peer clients; it is converted into a
    failure envelope at the client boundary.
    """
    status_code = 502


class UpstreamUnavailableError(ClientError):
    """Transport failure, timeout, or non-2xx status from the peer."""

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(message)


class UpstreamMalformedError(ClientError):
    """The peer answered with a payload that could not be parsed."""

    def __init__(self, message: str = "Invalid JSON response from peer"):
        super().__init__(message)
