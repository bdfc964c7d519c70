class TranscriptionError(Exception):
    """Raised when a document cannot be driven through its lifecycle."""


class InvalidStateError(TranscriptionError):
    """Raised when an operation is not allowed in the document's current state."""


class UnknownDocumentError(TranscriptionError):
    """Raised when the workspace has no document for the requested image."""
