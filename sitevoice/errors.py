"""Exception types raised by the voice-note pipeline."""


class PipelineError(Exception):
    """Base class for pipeline failures."""


class ConfigurationError(PipelineError):
    """Missing credential, unknown provider or missing required prompt."""


class VoiceNoteNotFoundError(PipelineError):
    """The requested voice note does not exist."""


class ProviderError(PipelineError):
    """A vendor call returned a non-success response."""

    def __init__(self, provider: str, operation: str, status_code: int | None = None, detail: str = "") -> None:
        self.provider = provider
        self.operation = operation
        self.status_code = status_code
        message = f"{provider} {operation} failed"
        if status_code is not None:
            message += f": {status_code}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ProviderParseError(ProviderError):
    """A vendor response could not be parsed as the expected JSON."""

    def __init__(self, provider: str, detail: str) -> None:
        super().__init__(provider, "response parsing", detail=detail)


class RetryExhaustedError(PipelineError):
    """An outbound call kept failing transiently until the attempt budget ran out."""

    def __init__(self, url: str, attempts: int, last_status: int | None = None, last_error: Exception | None = None):
        self.url = url
        self.attempts = attempts
        self.last_status = last_status
        self.last_error = last_error
        reason = f"HTTP {last_status}" if last_status is not None else repr(last_error)
        super().__init__(f"Request to {url} failed after {attempts} attempts: {reason}")


class AudioDownloadError(PipelineError):
    """The source audio could not be downloaded."""


class PersistenceError(PipelineError):
    """A record-store write failed."""
