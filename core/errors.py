"""
Error taxonomy for the evaluation pipeline.

Everything except CacheError propagates to the caller of
Evaluator.evaluate(). CacheError never leaves core/cache.py.
"""

from __future__ import annotations

PREVIEW_CHARS = 200


def truncate_preview(text: str | None, limit: int = PREVIEW_CHARS) -> str:
    """Bounded-length excerpt of model output for diagnostics."""
    if not text:
        return ""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[:limit] + "…"


class EvaluationError(Exception):
    """Base class for every pipeline failure."""


class InvocationError(EvaluationError):
    """The model call failed."""

    retryable = False

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class TransientInvocationError(InvocationError):
    """Network / availability failure, or an empty completion. Retried."""

    retryable = True


class TerminalInvocationError(InvocationError):
    """Bad credentials, exhausted quota, or a malformed request. Never retried."""


class ParseError(EvaluationError):
    """Model output holds no recoverable JSON object."""

    def __init__(self, message: str, *, raw_text: str | None = None) -> None:
        self.preview = truncate_preview(raw_text)
        if self.preview:
            message = f"{message} (preview: {self.preview!r})"
        super().__init__(message)


class ValidationError(EvaluationError):
    """Parsed object failed shape or range checks."""


class CacheError(EvaluationError):
    """Cache store failure. Swallowed by the cache adapter."""
