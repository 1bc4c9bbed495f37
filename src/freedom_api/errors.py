"""
Freedom API - Custom Exceptions

All custom exceptions raised by the Freedom API client.
"""

from typing import Optional, Dict, Any


class FreedomError(Exception):
    """Base exception for all Freedom API client errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigurationError(FreedomError):
    """Raised when the client configuration is unusable."""

    pass


class MissingCredentialsError(ConfigurationError):
    """Raised when the key or secret is missing or empty."""

    def __init__(self, name: str):
        super().__init__(
            f"Missing Freedom credential: {name}. "
            "Set ATLAS_KEY and ATLAS_SECRET or pass them to Config"
        )
        self.name = name


class ResponseError(FreedomError):
    """Raised when no valid response could be obtained from the server.

    No status code is available for this kind of failure (connection refused,
    protocol error, body read failure, ...).
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(f"Failed to get valid response from server: {message}")
        self.original_error = original_error


class TimeoutError(ResponseError):
    """Raised when a request times out."""

    def __init__(self, timeout_seconds: Optional[float]):
        super().__init__(f"Request timed out after {timeout_seconds} seconds")
        self.timeout_seconds = timeout_seconds


class ResponseStatusError(FreedomError):
    """Raised when the server responds with a non-2xx status.

    The response body is retained in ``body`` so callers can inspect the
    server's explanation.
    """

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Server responded with {status_code}")
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        return f"Server responded with {self.status_code}: {self.body}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResponseStatusError):
            return NotImplemented
        return (self.status_code, self.body) == (other.status_code, other.body)

    __hash__ = FreedomError.__hash__


class NotFoundError(ResponseStatusError):
    """Raised when a requested resource is not found."""

    def __init__(self, body: str = ""):
        super().__init__(404, body)


class DeserializationError(FreedomError):
    """Raised when a response body does not match the expected shape."""

    def __init__(self, message: str):
        super().__init__(f"Failed to deserialize the response: {message}")
        self.reason = message


class PaginationItemError(DeserializationError):
    """A single item of a paginated collection failed to deserialize.

    Instances are yielded (not raised) by ``PaginatedStream`` so that one bad
    item does not end the stream.
    """

    def __init__(self, message: str, item: Any = None):
        super().__init__(message)
        self.message = f"Paginated item failed deserialization: {message}"
        self.item = item


class PaginationLinkError(FreedomError):
    """Raised when a continuation link cannot be resolved to a URL."""

    def __init__(self, link: Any, reason: str):
        super().__init__(f"Invalid pagination link {link!r}: {reason}")
        self.link = link


class InvalidUriError(FreedomError):
    """Raised when a path or query cannot be turned into a valid URI."""

    def __init__(self, message: str):
        super().__init__(f"Failed to parse item into valid URI: {message}")


class MissingUriError(FreedomError):
    """Raised when a HATEOAS relation is absent from a payload's links."""

    def __init__(self, relation: str):
        super().__init__(f"Failed to retrieve the HATEOAS URI: {relation}")
        self.relation = relation


class InvalidIdError(FreedomError):
    """Raised when the final path segment of a link is not an integer id."""

    def __init__(self, link: str):
        super().__init__(
            "Failed to parse the final segment of the path as an ID.",
            details={"link": link},
        )


class TimeFormatError(FreedomError):
    """Raised when a time parameter cannot be formatted as ISO 8601."""

    def __init__(self, value: Any):
        super().__init__(f"Time parsing error: cannot format {value!r} as ISO 8601")
        self.value = value


class ValidationError(FreedomError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation error on '{field}': {message}")
        self.field = field
