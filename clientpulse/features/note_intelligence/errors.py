"""
Exception taxonomy for note processing.

Every error raised while handling a job is a retryable processing failure;
the retry table alone decides when a note is given up on.
"""


class NoteProcessingError(Exception):
    """Base exception for note processing failures."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


class InferenceError(NoteProcessingError):
    """Backend timed out, answered with a non-success status, or returned no text."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ResponseFormatError(NoteProcessingError):
    """Model output could not be turned into a valid analysis."""


class NoJsonFoundError(ResponseFormatError):
    pass


class MalformedJsonError(ResponseFormatError):
    pass


class SchemaValidationError(ResponseFormatError):
    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class QueueError(Exception):
    """Raised when a job cannot be handed to the queue."""


class ManualRetryError(Exception):
    """Raised when a manual retry is requested for a note that cannot be retried."""

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason
