"""Tests for core/pipeline.py: the cache-first evaluation orchestrator."""

from __future__ import annotations

import json

import pytest

from core.cache import EvaluationCache, MemoryStore
from core.errors import ParseError, TerminalInvocationError, ValidationError
from core.invoker import Invocation
from core.parser import FeedbackSchema
from core.pipeline import EvaluationProfile, Evaluator
from core.types import EvaluationRequest, HeuristicReport

VALID_REPLY = json.dumps(
    {
        "totalScore": 41,
        "categoryScores": [{"name": "Communication Skills", "score": 30, "comment": "Too short."}],
        "strengths": ["Polite"],
        "areasForImprovement": ["Answer in more depth"],
        "finalAssessment": "Not ready.",
    }
)


class _DummyInvoker:
    """Stands in for ResilientInvoker; replays replies or raises."""

    def __init__(self, *replies) -> None:
        self.replies = list(replies)
        self.prompts: list[tuple[str, str | None]] = []

    def invoke_with_usage(self, prompt: str, variant: str | None = None) -> Invocation:
        self.prompts.append((prompt, variant))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return Invocation(text=reply, attempts=1, model="test/model", total_tokens=30)


class _RunLog:
    def __init__(self) -> None:
        self.calls: list[tuple[tuple, dict]] = []

    def __call__(self, *args, **kwargs) -> str:
        self.calls.append((args, kwargs))
        return f"run-{len(self.calls)}"


def _prompt(request: EvaluationRequest, report: HeuristicReport) -> str:
    return f"{request.role}: {len(report.answers)} answers, avg quality {report.session.average_quality}"


PROFILE = EvaluationProfile(
    name="test_profile",
    key_prefix="test-profile",
    ttl_seconds=60,
    schema=FeedbackSchema(),
    build_prompt=_prompt,
    variant="fast",
)


def _request(answer: str = "I led the migration and cut costs by 20 percent.") -> EvaluationRequest:
    return EvaluationRequest.from_pairs(
        [("Describe a migration you led", answer), ("Why this company?", "")],
        role="Platform Engineer",
        category="behavioral",
        tags=("aws",),
        elapsed_minutes=9,
    )


def _evaluator(invoker: _DummyInvoker, run_log: _RunLog | None = None, store=None) -> Evaluator:
    return Evaluator(EvaluationCache(store or MemoryStore()), invoker, run_logger=run_log)


class TestEvaluate:
    def test_result_carries_merged_heuristics(self):
        invoker = _DummyInvoker(VALID_REPLY)
        result = _evaluator(invoker).evaluate(_request(), PROFILE)

        assert result.total_score == 41
        assert len(result.answer_metrics) == 2
        assert result.answer_metrics[0].prompt == "Describe a migration you led"
        assert result.answer_metrics[1].is_empty is True
        assert result.session_metrics.expected_duration_minutes == 6.0
        assert result.session_metrics.was_rushed is False
        assert result.document_metrics is None
        assert invoker.prompts[0][1] == "fast"
        assert invoker.prompts[0][0].startswith("Platform Engineer: 2 answers")

    def test_second_identical_call_hits_cache(self):
        invoker = _DummyInvoker(VALID_REPLY)
        evaluator = _evaluator(invoker)

        first = evaluator.evaluate(_request(), PROFILE)
        second = evaluator.evaluate(_request(), PROFILE)

        assert len(invoker.prompts) == 1
        assert second == first

    def test_cache_key_uses_profile_prefix(self):
        store = MemoryStore()
        _evaluator(_DummyInvoker(VALID_REPLY), store=store).evaluate(_request(), PROFILE)
        (key,) = store._data.keys()
        assert key.startswith("test-profile:")
        assert len(key) == len("test-profile:") + 64

    def test_different_answer_misses_cache(self):
        invoker = _DummyInvoker(VALID_REPLY)
        evaluator = _evaluator(invoker)
        evaluator.evaluate(_request(), PROFILE)
        evaluator.evaluate(_request("Something else entirely."), PROFILE)
        assert len(invoker.prompts) == 2

    @pytest.mark.parametrize(
        "reply,error",
        [
            ("I cannot help with that.", ParseError),
            ('{"totalScore": 150}', ValidationError),
            (TerminalInvocationError("bad key"), TerminalInvocationError),
        ],
    )
    def test_failures_propagate_and_are_not_cached(self, reply, error):
        store = MemoryStore()
        invoker = _DummyInvoker(reply, VALID_REPLY)
        evaluator = _evaluator(invoker, store=store)

        with pytest.raises(error):
            evaluator.evaluate(_request(), PROFILE)
        assert store.dbsize() == 0

        # The next call goes to the model again and succeeds.
        assert evaluator.evaluate(_request(), PROFILE).total_score == 41
        assert len(invoker.prompts) == 2

    def test_works_with_cache_disabled(self):
        invoker = _DummyInvoker(VALID_REPLY)
        evaluator = Evaluator(EvaluationCache(None), invoker)
        evaluator.evaluate(_request(), PROFILE)
        evaluator.evaluate(_request(), PROFILE)
        assert len(invoker.prompts) == 2


class TestTelemetry:
    def test_completed_run_logged_with_hard_checks(self):
        run_log = _RunLog()
        _evaluator(_DummyInvoker(VALID_REPLY), run_log).evaluate(_request(), PROFILE)

        (args, kwargs), = run_log.calls
        profile_name, eval_results = args
        assert profile_name == "test_profile"
        assert kwargs["status"] == "completed"
        assert kwargs["cache_hit"] is False
        assert kwargs["attempts"] == 1
        assert kwargs["tokens_used"] == 30
        assert kwargs["model"] == "test/model"
        assert eval_results["score_range_ok"] is True
        assert eval_results["metrics_aligned"] is True

    def test_cache_hit_logged(self):
        run_log = _RunLog()
        evaluator = _evaluator(_DummyInvoker(VALID_REPLY), run_log)
        evaluator.evaluate(_request(), PROFILE)
        evaluator.evaluate(_request(), PROFILE)

        _, kwargs = run_log.calls[1]
        assert kwargs["cache_hit"] is True
        assert kwargs["attempts"] == 0

    def test_failed_run_logged(self):
        run_log = _RunLog()
        with pytest.raises(ParseError):
            _evaluator(_DummyInvoker("nope"), run_log).evaluate(_request(), PROFILE)

        (args, kwargs), = run_log.calls
        assert args[1] == {}
        assert kwargs["status"] == "failed"
        assert kwargs["error"].startswith("ParseError")

    def test_telemetry_failure_does_not_break_evaluation(self):
        def broken_logger(*args, **kwargs):
            raise OSError("disk full")

        evaluator = Evaluator(EvaluationCache(MemoryStore()), _DummyInvoker(VALID_REPLY), run_logger=broken_logger)
        assert evaluator.evaluate(_request(), PROFILE).total_score == 41
