"""
LLM gateway: a thin wrapper around the OpenAI SDK pointed at OpenRouter.

Provides LLMClient, the production TextModel:
  1. Sends a prompt to the model selected by a variant ("default", "fast",
     or a literal model id) via OpenRouter.
  2. Falls back through LLM_FALLBACK_MODELS when an endpoint is unavailable.
  3. Returns both the response text and token usage.

classify_error() maps SDK exceptions onto the transient / terminal split
the ResilientInvoker retries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import openai
from openai import OpenAI

from core.config import Settings, get_settings
from core.errors import InvocationError, TerminalInvocationError, TransientInvocationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a rigorous evaluator. Respond with a single JSON object and nothing else."
)


@dataclass
class LLMResponse:
    """Structured response from an LLM call."""

    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    generation_id: str | None = None  # OpenRouter generation ID


class TextModel(Protocol):
    """What the invoker needs from a model collaborator."""

    def complete(self, prompt: str, *, variant: Optional[str] = None) -> LLMResponse: ...


def _parse_fallback_models(raw: str) -> list[str]:
    return [m.strip() for m in raw.split(",") if m.strip()]


def _is_model_endpoint_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return (
        "no endpoints found" in message
        or "model not found" in message
        or "not available" in message
        or "developer instruction is not enabled" in message
        or "provider returned error" in message
        or "rate limit" in message
        or "too many requests" in message
        or "error code: 429" in message
    )


# ── Error classification ──────────────────────────────────────────

_TERMINAL_MARKERS = (
    "invalid api key",
    "incorrect api key",
    "unauthorized",
    "insufficient_quota",
    "quota exceeded",
    "exceeded your current quota",
    "billing",
    "error code: 400",
    "error code: 401",
    "error code: 402",
    "error code: 403",
)

_TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "connection",
    "temporarily unavailable",
    "service unavailable",
    "overloaded",
    "rate limit",
    "too many requests",
    "error code: 429",
    "error code: 500",
    "error code: 502",
    "error code: 503",
    "error code: 504",
)


def _is_quota_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return "insufficient_quota" in message or "quota" in message or "billing" in message


def classify_error(exc: Exception) -> InvocationError:
    """
    Map an exception raised by a model call onto the invocation taxonomy.

    Already-classified errors pass through unchanged.
    """
    if isinstance(exc, InvocationError):
        return exc

    message = f"{type(exc).__name__}: {exc}"

    # SDK types carry the HTTP status; check them first.
    if isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError)):
        return TransientInvocationError(message)
    if isinstance(exc, openai.RateLimitError):
        if _is_quota_error(exc):
            return TerminalInvocationError(message)
        return TransientInvocationError(message)
    if isinstance(
        exc,
        (
            openai.AuthenticationError,
            openai.PermissionDeniedError,
            openai.BadRequestError,
            openai.NotFoundError,
            openai.UnprocessableEntityError,
        ),
    ):
        return TerminalInvocationError(message)
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500 or exc.status_code in (408, 409):
            return TransientInvocationError(message)
        return TerminalInvocationError(message)

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return TransientInvocationError(message)

    lowered = message.lower()
    if any(marker in lowered for marker in _TERMINAL_MARKERS):
        return TerminalInvocationError(message)
    if any(marker in lowered for marker in _TRANSIENT_MARKERS):
        return TransientInvocationError(message)

    # Unclassified failures are not retried.
    return TerminalInvocationError(message)


# ── Client ────────────────────────────────────────────────────────

class LLMClient:
    """OpenRouter chat-completions client. Build once, share everywhere."""

    def __init__(self, settings: Settings | None = None, *, client: Any | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client or OpenAI(
            base_url=self._settings.openrouter_base_url,
            api_key=self._settings.openrouter_api_key,
            timeout=self._settings.llm_timeout_seconds,
            max_retries=0,  # ResilientInvoker owns retries
        )

    def resolve_model(self, variant: Optional[str]) -> str:
        if variant is None or variant == "default":
            return self._settings.llm_model
        if variant == "fast":
            return self._settings.llm_fast_model
        return variant

    def complete(self, prompt: str, *, variant: Optional[str] = None) -> LLMResponse:
        """Single-prompt convenience over chat()."""
        return self.chat(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            model=self.resolve_model(variant),
            allow_fallback=variant is None or variant == "default",
            json_mode=True,
        )

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        allow_fallback: bool = True,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Send a chat completion request via OpenRouter.

        Parameters
        ----------
        messages : list of {"role": ..., "content": ...} dicts
        model : override the default model from config
        allow_fallback : try LLM_FALLBACK_MODELS on endpoint errors
        temperature : override default temperature
        max_tokens : override default max_tokens
        json_mode : if True, request JSON output format

        Raises whatever the SDK raises; callers classify with classify_error().
        """
        settings = self._settings
        requested_model = model or settings.llm_model
        models_to_try = [requested_model]
        if allow_fallback:
            for fallback in _parse_fallback_models(settings.llm_fallback_models):
                if fallback != requested_model:
                    models_to_try.append(fallback)

        kwargs: dict[str, Any] = {
            "model": requested_model,
            "messages": messages,
            "temperature": temperature if temperature is not None else settings.llm_temperature,
            "max_tokens": max_tokens or settings.llm_max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = None
        used_model = requested_model
        for candidate_model in models_to_try:
            try:
                kwargs["model"] = candidate_model
                response = self._client.chat.completions.create(**kwargs)
                used_model = candidate_model
                break
            except Exception as exc:
                if _is_model_endpoint_error(exc) and candidate_model != models_to_try[-1]:
                    logger.warning(
                        "Model endpoint unavailable model=%s error=%s; trying fallback",
                        candidate_model,
                        exc,
                    )
                    continue
                raise

        if response is None:
            raise RuntimeError("LLM request failed without a concrete error.")

        choice = response.choices[0]
        usage = response.usage

        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            text=choice.message.content or "",
            model=used_model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            generation_id=getattr(response, "id", None),
        )
