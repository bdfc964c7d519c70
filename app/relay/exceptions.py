from enum import Enum


class ErrorKind(Enum):
    """Fixed failure taxonomy: wire code, HTTP status, user-facing message."""

    INVALID_REQUEST = ("invalid_request", 400, "The request is missing or has invalid fields")
    METHOD_NOT_ALLOWED = ("method_not_allowed", 405, "Only POST requests are supported")
    PAYLOAD_TOO_LARGE = ("payload_too_large", 413, "The image is too large")
    UNSUPPORTED_MEDIA_TYPE = ("unsupported_media_type", 415, "This image format is not supported")
    UNSUPPORTED_INPUT = ("unsupported_input", 415, "The image could not be processed")
    QUOTA = ("quota_exceeded", 429, "The service is busy, please try again later")
    NETWORK = ("upstream_unavailable", 502, "The recognition service could not be reached")
    CONFIGURATION = ("configuration_error", 503, "The server is not configured correctly")
    TIMEOUT = ("timeout", 504, "Recognition took too long, please try again")
    UNKNOWN = ("internal_error", 500, "Something went wrong while processing the image")

    def __init__(self, code: str, status: int, message: str) -> None:
        self.code = code
        self.status = status
        self.message = message


class RelayError(Exception):
    """Base error of the relay; carries its taxonomy kind."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str = "", kind: ErrorKind | None = None) -> None:
        super().__init__(message or (kind or self.kind).message)
        if kind is not None:
            self.kind = kind

    @property
    def details(self) -> str:
        return str(self)


class RequestValidationError(RelayError):
    """Raised when the request is rejected before any upstream call."""

    kind = ErrorKind.INVALID_REQUEST


class UpstreamError(RelayError):
    """Raised by generation adapters; the message keeps the provider's text."""


class RelayTimeoutError(RelayError):
    """Raised when the open or a read does not settle before its deadline."""

    kind = ErrorKind.TIMEOUT


# Checked in order; the first kind with a matching needle wins.
_CLASSIFICATION_RULES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (
        ErrorKind.CONFIGURATION,
        ("api_key", "api key", "apikey", "unauthorized", "authentication", "permission", "401", "403"),
    ),
    (ErrorKind.QUOTA, ("quota", "rate limit", "rate_limit", "too many requests", "429", "resource_exhausted")),
    (ErrorKind.TIMEOUT, ("timeout", "timed out", "deadline")),
    (
        ErrorKind.NETWORK,
        ("network", "connection", "connect", "unreachable", "econnreset", "502", "503", "bad gateway"),
    ),
    (ErrorKind.UNSUPPORTED_INPUT, ("image", "mime", "media type", "unsupported", "invalid_argument")),
)


def classify_failure(description: str) -> ErrorKind:
    """Best-effort mapping of a failure description to a taxonomy kind.

    Matching is by case-insensitive substring, so it is approximate.
    """
    lowered = description.lower()
    for kind, needles in _CLASSIFICATION_RULES:
        if any(needle in lowered for needle in needles):
            return kind
    return ErrorKind.UNKNOWN


def as_relay_error(exc: BaseException) -> RelayError:
    """Wrap any failure into a RelayError with a kind.

    Only provider failures are classified by their message. Transport errors
    map by type, and anything else is an internal error whatever its text.
    """
    if isinstance(exc, RelayError):
        if exc.kind is ErrorKind.UNKNOWN and isinstance(exc, UpstreamError):
            exc.kind = classify_failure(str(exc))
        return exc
    if isinstance(exc, TimeoutError):
        kind = ErrorKind.TIMEOUT
    elif isinstance(exc, ConnectionError):
        kind = ErrorKind.NETWORK
    else:
        kind = ErrorKind.UNKNOWN
    return RelayError(str(exc) or type(exc).__name__, kind=kind)
