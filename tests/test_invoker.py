"""Tests for core/invoker.py: retry bounds, backoff and error classification."""

from __future__ import annotations

import httpx
import openai
import pytest

from core.errors import TerminalInvocationError, TransientInvocationError
from core.invoker import ResilientInvoker, RetryPolicy
from core.llm import LLMResponse

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


class _ScriptedModel:
    """TextModel double that replays a list of outcomes (exception or text)."""

    def __init__(self, outcomes: list) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, str | None]] = []

    def complete(self, prompt: str, *, variant: str | None = None) -> LLMResponse:
        self.calls.append((prompt, variant))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(
            text=outcome,
            model="test/model",
            prompt_tokens=12,
            completion_tokens=8,
            total_tokens=20,
        )


def _invoker(model: _ScriptedModel, sleeps: list[float], **policy) -> ResilientInvoker:
    return ResilientInvoker(model, RetryPolicy(**policy), sleep=sleeps.append)


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert (policy.max_attempts, policy.initial_delay, policy.max_delay, policy.backoff_multiplier) == (
            3,
            1.0,
            10.0,
            2.0,
        )

    def test_exponential_delays_are_capped(self):
        policy = RetryPolicy(initial_delay=1.0, max_delay=10.0, backoff_multiplier=2.0)
        assert [policy.delay_before_retry(k) for k in range(1, 7)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    def test_at_least_one_attempt(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestInvoke:
    def test_success_first_try(self):
        model = _ScriptedModel(['{"ok": true}'])
        sleeps: list[float] = []
        invocation = _invoker(model, sleeps).invoke_with_usage("prompt", variant="fast")

        assert invocation.text == '{"ok": true}'
        assert invocation.attempts == 1
        assert invocation.total_tokens == 20
        assert model.calls == [("prompt", "fast")]
        assert sleeps == []

    def test_invoke_returns_text(self):
        assert _invoker(_ScriptedModel(["hello"]), []).invoke("p") == "hello"

    def test_recovers_after_transient_failures(self):
        model = _ScriptedModel([openai.APITimeoutError(request=_REQUEST), ConnectionError("reset"), "done"])
        sleeps: list[float] = []
        invocation = _invoker(model, sleeps).invoke_with_usage("p")

        assert invocation.text == "done"
        assert invocation.attempts == 3
        assert sleeps == [1.0, 2.0]

    def test_always_transient_stops_after_three_attempts(self):
        model = _ScriptedModel([openai.APIConnectionError(request=_REQUEST)])
        sleeps: list[float] = []

        with pytest.raises(TransientInvocationError) as excinfo:
            _invoker(model, sleeps).invoke("p")

        assert len(model.calls) == 3
        assert excinfo.value.attempts == 3
        # No sleep after the final attempt.
        assert sleeps == [1.0, 2.0]

    def test_terminal_failure_is_not_retried(self):
        error = openai.AuthenticationError(
            "Invalid API key",
            response=httpx.Response(401, request=_REQUEST),
            body=None,
        )
        model = _ScriptedModel([error])
        sleeps: list[float] = []

        with pytest.raises(TerminalInvocationError) as excinfo:
            _invoker(model, sleeps).invoke("p")

        assert len(model.calls) == 1
        assert excinfo.value.attempts == 1
        assert isinstance(excinfo.value.__cause__, openai.AuthenticationError)
        assert sleeps == []

    def test_empty_response_is_transient(self):
        model = _ScriptedModel(["", "   ", '{"ok": 1}'])
        invocation = _invoker(model, []).invoke_with_usage("p")
        assert invocation.attempts == 3

    def test_empty_responses_exhaust_budget(self):
        model = _ScriptedModel([""])
        with pytest.raises(TransientInvocationError):
            _invoker(model, [], max_attempts=2).invoke("p")
        assert len(model.calls) == 2

    def test_already_classified_error_passes_through(self):
        error = TerminalInvocationError("quota exhausted")
        model = _ScriptedModel([error])
        with pytest.raises(TerminalInvocationError) as excinfo:
            _invoker(model, []).invoke("p")
        assert excinfo.value is error
