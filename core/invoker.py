"""
Resilient model invocation: bounded retries with exponential backoff.

Transient failures (network, availability, empty completions) are retried
up to RetryPolicy.max_attempts; terminal ones (credentials, quota,
malformed request) surface on the first attempt.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.config import Settings, get_settings
from core.errors import InvocationError, TransientInvocationError
from core.llm import LLMResponse, TextModel, classify_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryPolicy":
        settings = settings or get_settings()
        return cls(
            max_attempts=settings.llm_max_attempts,
            initial_delay=settings.llm_initial_delay_seconds,
            max_delay=settings.llm_max_delay_seconds,
            backoff_multiplier=settings.llm_backoff_multiplier,
        )

    def delay_before_retry(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        delay = self.initial_delay * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)


@dataclass
class Invocation:
    """Outcome of a successful invoke_with_usage() call."""

    text: str
    attempts: int
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ResilientInvoker:
    """Calls a TextModel with retry/backoff and transient/terminal classification."""

    def __init__(
        self,
        model: TextModel,
        policy: RetryPolicy | None = None,
        *,
        classifier: Callable[[Exception], InvocationError] = classify_error,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._model = model
        self._policy = policy or RetryPolicy()
        self._classify = classifier
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def invoke(self, prompt: str, variant: Optional[str] = None) -> str:
        """Return the raw completion text."""
        return self.invoke_with_usage(prompt, variant=variant).text

    def invoke_with_usage(self, prompt: str, variant: Optional[str] = None) -> Invocation:
        """
        Call the model until it succeeds, fails terminally, or the attempt
        budget runs out.

        Raises
        ------
        TerminalInvocationError : on the first non-retryable failure
        TransientInvocationError : the last transient failure once attempts are exhausted
        """
        max_attempts = self._policy.max_attempts
        last_error: InvocationError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                response: LLMResponse = self._model.complete(prompt, variant=variant)
            except Exception as exc:
                error = self._classify(exc)
                error.attempts = attempt
                if not error.retryable:
                    logger.error(
                        "Model call failed terminally attempt=%s/%s error=%s",
                        attempt,
                        max_attempts,
                        error,
                    )
                    if error is exc:
                        raise
                    raise error from exc
                last_error = error
            else:
                if response.text and response.text.strip():
                    if attempt > 1:
                        logger.info("Model call succeeded attempt=%s/%s", attempt, max_attempts)
                    return Invocation(
                        text=response.text,
                        attempts=attempt,
                        model=response.model,
                        prompt_tokens=response.prompt_tokens,
                        completion_tokens=response.completion_tokens,
                        total_tokens=response.total_tokens,
                    )
                last_error = TransientInvocationError(
                    f"Empty response from model {response.model}", attempts=attempt
                )

            logger.warning(
                "Model call failed attempt=%s/%s error=%s",
                attempt,
                max_attempts,
                last_error,
            )
            if attempt < max_attempts:
                self._sleep(self._policy.delay_before_retry(attempt))

        assert last_error is not None
        raise last_error

