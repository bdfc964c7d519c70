class RelayClientError(Exception):
    """Raised when the relay answers with an error or an incomplete stream."""

    def __init__(self, message: str, code: str = "internal_error", status: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class IncompleteStreamError(RelayClientError):
    """Raised when the event stream closes without a ``done`` frame."""
