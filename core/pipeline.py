"""
Evaluation orchestrator.

One Evaluator runs every profile through the same sequence:

  fingerprint → cache lookup → heuristics → prompt → model (with retries)
  → parse/validate → merge heuristics → cache write → telemetry

Usage:
    from core.pipeline import build_evaluator
    from agents.interview.agent import feedback_profile

    evaluator = build_evaluator()
    result = evaluator.evaluate(request, feedback_profile())
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.cache import EvaluationCache, create_cache_client
from core.config import Settings, get_settings
from core.errors import EvaluationError
from core.fingerprint import fingerprint_request
from core.heuristics import analyze_request
from core.invoker import Invocation, ResilientInvoker, RetryPolicy
from core.llm import LLMClient
from core.parser import FeedbackSchema, parse_and_validate
from core.types import EvaluationRequest, EvaluationResult, HeuristicReport
from evals.hard import run_hard_checks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationProfile:
    """Per-use-case bundle the orchestrator runs."""

    name: str
    key_prefix: str
    ttl_seconds: int
    schema: FeedbackSchema
    build_prompt: Callable[[EvaluationRequest, HeuristicReport], str]
    analyze: Callable[[EvaluationRequest], HeuristicReport] = analyze_request
    variant: Optional[str] = None
    penalty_caps: bool = True

    def cache_key(self, fingerprint: str) -> str:
        return f"{self.key_prefix}:{fingerprint}"


class Evaluator:
    """Runs EvaluationRequests through a profile. Stateless between calls."""

    def __init__(
        self,
        cache: EvaluationCache,
        invoker: ResilientInvoker,
        *,
        run_logger: Optional[Callable[..., str]] = None,
    ) -> None:
        self.cache = cache
        self.invoker = invoker
        self._run_logger = run_logger

    def evaluate(self, request: EvaluationRequest, profile: EvaluationProfile) -> EvaluationResult:
        """
        Evaluate ``request`` with ``profile``.

        Returns a cached result when one exists for the same content.

        Raises
        ------
        TransientInvocationError : model unavailable after all retries
        TerminalInvocationError : non-retryable model failure
        ParseError / ValidationError : unusable model output (never cached)
        """
        started = time.perf_counter()
        fingerprint = fingerprint_request(request)
        key = profile.cache_key(fingerprint)

        cached = self.cache.get(key)
        if cached is not None:
            self._record(profile, fingerprint, request, started, result=cached, cache_hit=True)
            return cached

        invocation: Invocation | None = None
        try:
            report = profile.analyze(request)
            prompt = profile.build_prompt(request, report)
            logger.info(
                "Invoking model profile=%s items=%s prompt_chars=%s",
                profile.name,
                len(request.items),
                len(prompt),
            )
            invocation = self.invoker.invoke_with_usage(prompt, variant=profile.variant)
            parsed = parse_and_validate(invocation.text, profile.schema)
        except EvaluationError as exc:
            self._record(profile, fingerprint, request, started, invocation=invocation, error=exc)
            raise

        result = dataclasses.replace(
            parsed,
            session_metrics=report.session,
            answer_metrics=report.answers,
            document_metrics=report.document,
        )

        self.cache.set(key, result, profile.ttl_seconds)
        self._record(profile, fingerprint, request, started, result=result, invocation=invocation)
        return result

    # ── telemetry ─────────────────────────────────────────────────

    def _record(
        self,
        profile: EvaluationProfile,
        fingerprint: str,
        request: EvaluationRequest,
        started: float,
        *,
        result: EvaluationResult | None = None,
        invocation: Invocation | None = None,
        cache_hit: bool = False,
        error: Exception | None = None,
    ) -> None:
        latency_ms = int((time.perf_counter() - started) * 1000)
        attempts = invocation.attempts if invocation else getattr(error, "attempts", 0)
        logger.info(
            "Evaluation finished profile=%s fingerprint=%s status=%s cache_hit=%s attempts=%s latency_ms=%s",
            profile.name,
            fingerprint[:12],
            "failed" if error else "completed",
            cache_hit,
            attempts,
            latency_ms,
        )
        if self._run_logger is None:
            return

        eval_results: dict[str, Any] = {}
        if result is not None:
            eval_results = run_hard_checks(
                result,
                item_count=len(request.items),
                apply_penalty_caps=profile.penalty_caps,
            )
            if eval_results["penalty_violations"]:
                logger.warning(
                    "Model ignored penalty caps profile=%s violations=%s",
                    profile.name,
                    eval_results["penalty_violations"],
                )

        try:
            run_id = self._run_logger(
                profile.name,
                eval_results,
                fingerprint=fingerprint,
                status="failed" if error else "completed",
                cache_hit=cache_hit,
                attempts=attempts,
                tokens_used=invocation.total_tokens if invocation else 0,
                latency_ms=latency_ms,
                model=invocation.model if invocation else None,
                warning_count=len(result.warnings) if result else 0,
                error=f"{type(error).__name__}: {error}" if error else None,
            )
            logger.debug("Run logged run_id=%s", run_id)
        except Exception as exc:
            logger.warning("Run telemetry failed profile=%s error=%s", profile.name, exc)


# ── Wiring ────────────────────────────────────────────────────────

def build_evaluator(settings: Settings | None = None) -> Evaluator:
    """Build the process-wide Evaluator from settings."""
    settings = settings or get_settings()
    run_logger = None
    if settings.telemetry_enabled:
        from evals.logger import log_run

        run_logger = functools.partial(log_run, db_path=settings.db_path, runs_dir=settings.runs_dir)
    return Evaluator(
        cache=EvaluationCache(create_cache_client(settings)),
        invoker=ResilientInvoker(LLMClient(settings), RetryPolicy.from_settings(settings)),
        run_logger=run_logger,
    )
