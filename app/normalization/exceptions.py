class NormalizationError(Exception):
    """Raised when the normalizer is wired incorrectly.

    Well-formed input never raises; any other exception escaping a step is a
    programming defect and propagates unchanged.
    """


class EmptyPipelineError(NormalizationError):
    """Raised when a normalizer is built without steps."""
