# util/errors.py
from typing import Optional
from fastapi import HTTPException, status
from util.enums import ErrorMessage

GENERIC_WAIT = "a while"


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class InvalidInput(AppError):
    """Bad/missing URL or credential. Raised before any job state exists."""

    @classmethod
    def from_info(cls, error: ErrorMessage) -> "InvalidInput":
        return cls(error.value.message, error.value.http_status)


# ---------------- Job pipeline ----------------


class PipelineError(Exception):
    """Base for failures that end a job with a single `error` event."""

    default_message = "Processing failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ResolveFailed(PipelineError):
    default_message = "Failed to parse the link, please make sure it is a valid episode page"


class FetchTimeout(PipelineError):
    default_message = "Timed out fetching audio, please retry"


class FetchFailed(PipelineError):
    default_message = "Failed to download audio"


class ProbeFailed(PipelineError):
    default_message = "Could not read the audio duration"


class SegmentationFailed(PipelineError):
    default_message = "Failed to split the audio into segments"


class TranscriptionFailed(PipelineError):
    default_message = "Transcription failed"


class SummarizationFailed(PipelineError):
    default_message = "Text analysis failed"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(f"Text analysis failed: {detail or 'unknown error'}")


class QuotaExhausted(PipelineError):
    def __init__(self, retry_after: Optional[str] = None) -> None:
        self.retry_after = retry_after
        super().__init__(
            f"Model quota exhausted for today, please retry in {retry_after or GENERIC_WAIT}."
        )


class AuthInvalid(PipelineError):
    default_message = ErrorMessage.INVALID_API_KEY.value.message


class JobTimeout(PipelineError):
    default_message = "Processing took too long and was stopped, please retry"


# ---------------- Provider responses ----------------


class ProviderError(Exception):
    """Non-2xx response from the model provider that is neither auth nor rate-limit."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code} {detail}".strip())


class RateLimited(ProviderError):
    def __init__(self, detail: str = "", retry_after: Optional[str] = None) -> None:
        self.retry_after = retry_after
        super().__init__(status.HTTP_429_TOO_MANY_REQUESTS, detail)
