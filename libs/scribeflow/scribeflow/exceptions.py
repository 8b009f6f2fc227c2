"""ScribeFlow exception hierarchy."""

from __future__ import annotations

from scribeflow.error_codes import ErrorCode


class ScribeFlowError(Exception):
    """Base error for ScribeFlow."""


class ConfigurationError(ScribeFlowError):
    """Raised when configuration is invalid."""


class InvalidInputError(ScribeFlowError):
    """Raised when an entry point receives malformed input."""

    error_code = ErrorCode.INVALID_INPUT


class DecodeError(ScribeFlowError):
    """Raised by audio decoders when a payload cannot be decoded."""

    error_code = ErrorCode.DECODE_FAILED


class ProviderError(ScribeFlowError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.error_code = error_code or ErrorCode.PROVIDER_FAILED
        self.retryable = bool(retryable)


class TranscriptionError(ProviderError):
    """Raised when a transcription provider reports an unsuccessful result."""

    def __init__(self, provider: str, message: str, *, retryable: bool = True) -> None:
        super().__init__(
            provider,
            message,
            error_code=ErrorCode.TRANSCRIPTION_FAILED,
            retryable=retryable,
        )


class JobTimeoutError(ScribeFlowError):
    """Raised when a queued job attempt exceeds its timeout."""

    error_code = ErrorCode.TIMEOUT

    def __init__(self, job_id: str, timeout_s: float) -> None:
        super().__init__(f"Job {job_id} timed out after {timeout_s:g}s")
        self.job_id = job_id
        self.timeout_s = float(timeout_s)
