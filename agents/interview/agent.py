"""
Interview Agent: turns a mock-interview session into scored feedback.

Flow:
1. Pair the transcript into (question, answer) items
2. Build an EvaluationRequest with the session metadata
3. Run it through the shared Evaluator with the feedback profile
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from agents.interview.prompt import build_feedback_prompt
from core.config import Settings, get_settings
from core.parser import FeedbackSchema
from core.pipeline import EvaluationProfile, Evaluator
from core.types import EvaluationRequest, EvaluationResult

logger = logging.getLogger(__name__)

PROFILE_NAME = "interview_feedback"
CACHE_KEY_PREFIX = "feedback-generation"

INTERVIEWER_ROLES = {"assistant", "interviewer", "agent"}
CANDIDATE_ROLES = {"user", "candidate"}

FEEDBACK_SCHEMA = FeedbackSchema(
    score_field="totalScore",
    categories_field="categoryScores",
    strengths_field="strengths",
    improvements_field="areasForImprovement",
    summary_field="finalAssessment",
)


# ── Transcript ────────────────────────────────────────────────────

def pair_transcript(messages: Iterable[Mapping[str, Any]]) -> list[tuple[str, str]]:
    """
    Pair interviewer turns with the candidate turns that follow them.

    Consecutive turns from the same side are joined with a space. A question
    with no reply gets an empty answer; candidate turns before the first
    question are dropped. Other roles (e.g. ``system``) are ignored.
    """
    pairs: list[tuple[str, str]] = []
    question: list[str] = []
    answer: list[str] = []
    dropped = 0

    def flush() -> None:
        if question:
            pairs.append((" ".join(question), " ".join(answer)))

    for message in messages:
        role = str(message.get("role", "")).strip().lower()
        content = str(message.get("content") or "").strip()
        if not content:
            continue
        if role in INTERVIEWER_ROLES:
            if answer:
                flush()
                question, answer = [], []
            question.append(content)
        elif role in CANDIDATE_ROLES:
            if not question:
                dropped += 1
                continue
            answer.append(content)

    flush()
    if dropped:
        logger.debug("Dropped %s candidate turn(s) before the first question", dropped)
    return pairs


# ── Request / profile ─────────────────────────────────────────────

def build_interview_request(
    questions: Sequence[Mapping[str, Any] | tuple[str, str]],
    *,
    role: str,
    interview_type: str,
    tech_stack: Iterable[str] = (),
    duration_minutes: Optional[float] = None,
    company: Optional[str] = None,
) -> EvaluationRequest:
    """
    Build an EvaluationRequest from question/answer entries.

    Entries may be ``{"question": ..., "answer": ...}`` mappings or
    ``(question, answer)`` tuples. A missing answer counts as empty.
    Raises ValueError when there are no entries.
    """
    pairs: list[tuple[str, str]] = []
    for entry in questions:
        if isinstance(entry, Mapping):
            pairs.append((str(entry.get("question") or ""), str(entry.get("answer") or "")))
        else:
            question, answer = entry
            pairs.append((question or "", answer or ""))

    return EvaluationRequest.from_pairs(
        pairs,
        role=role,
        category=interview_type,
        tags=tuple(t for t in tech_stack if t and t.strip()),
        elapsed_minutes=duration_minutes,
        company=company or None,
    )


def feedback_profile(settings: Settings | None = None) -> EvaluationProfile:
    settings = settings or get_settings()
    return EvaluationProfile(
        name=PROFILE_NAME,
        key_prefix=CACHE_KEY_PREFIX,
        ttl_seconds=settings.feedback_cache_ttl_seconds,
        schema=FEEDBACK_SCHEMA,
        build_prompt=build_feedback_prompt,
    )


def generate_feedback(
    evaluator: Evaluator,
    request: EvaluationRequest,
    *,
    settings: Settings | None = None,
) -> EvaluationResult:
    """Score an interview session (cached by content)."""
    logger.info(
        "Generating interview feedback role=%s type=%s questions=%s",
        request.role,
        request.category,
        len(request.items),
    )
    return evaluator.evaluate(request, feedback_profile(settings))
