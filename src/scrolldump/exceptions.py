"""Custom exception classes for scrolldump."""


class ScrollDumpError(Exception):
    """Base exception for all scrolldump errors."""

    pass


class ConfigError(ScrollDumpError):
    """Exception raised for configuration errors."""

    pass


class QueryError(ScrollDumpError):
    """Exception raised when the query document cannot be loaded or is invalid."""

    pass


class ExtractionError(ScrollDumpError):
    """Exception raised for scroll extraction errors."""

    pass


class TransientRequestError(ExtractionError):
    """Exception raised for a failed request that may succeed on retry.

    Covers transport failures (connection refused, timeouts) and error
    responses reported by the search engine.
    """

    def __init__(self, message: str, status: int | None = None):
        """Initialize transient request error.

        Args:
            message: Error message
            status: HTTP status reported by the engine, if any
        """
        self.status = status
        if status is not None:
            message = f"{message} (status {status})"
        super().__init__(message)


class RequestExhaustedError(ExtractionError):
    """Exception raised when the retry budget for a request is used up."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException | None = None):
        """Initialize request exhausted error.

        Args:
            operation: Description of the operation that kept failing
            attempts: Number of attempts made
            last_error: Error raised by the final attempt
        """
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        message = f"{operation} failed after {attempts} attempts"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)


class ParseError(ExtractionError):
    """Exception raised when an engine response does not have the expected shape."""

    pass


class SinkWriteError(ExtractionError):
    """Exception raised when writing to the output file fails."""

    pass


class CursorReleaseError(ExtractionError):
    """Exception raised when the scroll cursor cannot be released (advisory)."""

    pass


class OperationCancelledError(ExtractionError):
    """Exception raised when an operation is abandoned because of cancellation."""

    pass


class OrchestrationError(ScrollDumpError):
    """Exception raised when a scroll session aborts.

    The ``phase`` attribute names where the session failed:
    ``open``, ``page N``, ``parse``, ``write``, ``close`` or ``cancelled``.
    """

    def __init__(self, phase: str, cause: BaseException):
        """Initialize orchestration error.

        Args:
            phase: Session phase that failed
            cause: Underlying error
        """
        self.phase = phase
        self.cause = cause
        super().__init__(f"Scroll session failed during {phase}: {cause}")
