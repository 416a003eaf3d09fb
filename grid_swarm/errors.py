"""Error hierarchy for inference calls and stage execution."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    TRANSIENT = "transient"        # timeout, malformed response: retried locally
    RATE_LIMITED = "rate_limited"  # never retried, escalates to the circuit breaker
    FATAL = "fatal"                # bad credentials, invalid request


class InferenceError(Exception):
    """Base error for all inference failures."""

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(self, message: str, *, stage: str = "", cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT


class TransientInferenceError(InferenceError):
    kind = ErrorKind.TRANSIENT


class RateLimitedError(InferenceError):
    """Provider rejected the request due to request volume (HTTP 429)."""

    kind = ErrorKind.RATE_LIMITED


class FatalInferenceError(InferenceError):
    kind = ErrorKind.FATAL


class StageAborted(Exception):
    """Raised by the runner to stop the remainder of a cycle."""

    def __init__(self, stage: str, kind: ErrorKind, reason: str = "") -> None:
        super().__init__(f"stage {stage} aborted ({kind.value}): {reason}")
        self.stage = stage
        self.kind = kind
        self.reason = reason


def classify_provider_error(exc: Exception, *, stage: str = "") -> InferenceError:
    """Map an SDK exception onto the tagged InferenceError variants."""
    if isinstance(exc, InferenceError):
        return exc

    # Imported lazily: the offline mode must not require the SDK to be importable.
    import openai

    message = str(exc) or exc.__class__.__name__
    status = getattr(exc, "status_code", None)

    if isinstance(exc, openai.RateLimitError) or status == 429 or "429" in message:
        return RateLimitedError(message, stage=stage, cause=exc)
    if isinstance(
        exc,
        (
            openai.AuthenticationError,
            openai.PermissionDeniedError,
            openai.BadRequestError,
            openai.NotFoundError,
        ),
    ):
        return FatalInferenceError(message, stage=stage, cause=exc)
    return TransientInferenceError(message, stage=stage, cause=exc)
