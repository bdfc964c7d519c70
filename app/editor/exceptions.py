class EditorError(Exception):
    """Base exception for all editing-surface errors."""


class InvalidEditError(EditorError):
    """Raised when an edit addresses a node that does not exist."""


class RoundTripError(EditorError):
    """Raised when the mounted tree no longer serializes to its canonical text."""
