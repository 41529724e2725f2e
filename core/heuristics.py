"""
Deterministic answer-quality heuristics.

No LLM involved: pure text rules that give the model objective numbers
to anchor its scores against. Same input, same output, no I/O.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from core.types import (
    AnswerMetrics,
    EvaluationItem,
    EvaluationRequest,
    HeuristicReport,
    SessionMetrics,
)

# ── Patterns ──────────────────────────────────────────────────────

_SENTENCE_SPLIT = re.compile(r"[.!?]+")

_EXAMPLE_MARKERS = re.compile(
    r"for example|such as|like when|instance|specifically|in my experience",
    re.IGNORECASE,
)
_STRUCTURE_MARKERS = re.compile(
    r"first|second|third|finally|however|therefore|additionally|moreover|because",
    re.IGNORECASE,
)
_SPECIFICITY_MARKERS = re.compile(
    r"\d+|percent|%|specific|exactly|approximately",
    re.IGNORECASE,
)

# (upper bound exclusive, base score); 50+ words scores 5
_WORD_BANDS: tuple[tuple[int, int], ...] = ((5, 1), (15, 2), (30, 3), (50, 4))

EXAMPLE_BONUS = 2
STRUCTURE_BONUS = 2
SPECIFICITY_BONUS = 1
IRRELEVANT_CAP = 4
MAX_QUALITY = 10

EMPTY_THRESHOLD = 10
ONE_WORD_THRESHOLD = 3
SUBSTANCE_THRESHOLD = 40
KEYWORD_MIN_LENGTH = 5

EXPECTED_MINUTES_PER_ITEM = 3
RUSHED_MINUTES_PER_ITEM = 2


def count_words(text: str) -> int:
    return len(text.split())


def count_sentences(text: str) -> int:
    return sum(1 for s in _SENTENCE_SPLIT.split(text) if s.strip())


def base_score(word_count: int) -> int:
    for upper, score in _WORD_BANDS:
        if word_count < upper:
            return score
    return 5


def prompt_keywords(prompt: str) -> list[str]:
    """Prompt tokens longer than four characters, lowercased."""
    return [w for w in prompt.lower().split() if len(w) >= KEYWORD_MIN_LENGTH]


def is_relevant(prompt: str, response: str) -> bool:
    response_lower = response.lower()
    return any(kw in response_lower for kw in prompt_keywords(prompt))


def analyze_answer(prompt: str, response: str) -> AnswerMetrics:
    """Score a single answer on a 0-10 scale and derive its flags."""
    answer = (response or "").strip()
    word_count = count_words(answer)
    sentence_count = count_sentences(answer)

    has_examples = bool(_EXAMPLE_MARKERS.search(answer))
    has_structure = bool(_STRUCTURE_MARKERS.search(answer))
    has_specifics = bool(_SPECIFICITY_MARKERS.search(answer))
    relevant = is_relevant(prompt, answer)

    quality = base_score(word_count)
    if has_examples:
        quality += EXAMPLE_BONUS
    if has_structure:
        quality += STRUCTURE_BONUS
    if has_specifics:
        quality += SPECIFICITY_BONUS

    # Long but off-topic answers don't get to ride their bonuses.
    if not relevant and word_count > EMPTY_THRESHOLD:
        quality = min(quality, IRRELEVANT_CAP)

    return AnswerMetrics(
        prompt=prompt,
        response=answer,
        word_count=word_count,
        sentence_count=sentence_count,
        avg_words_per_sentence=word_count / max(sentence_count, 1),
        quality_score=min(quality, MAX_QUALITY),
        has_examples=has_examples,
        has_structure=has_structure,
        is_relevant=relevant,
        is_empty=word_count < EMPTY_THRESHOLD,
        is_one_word=word_count <= ONE_WORD_THRESHOLD,
        has_substance=word_count >= SUBSTANCE_THRESHOLD,
    )


def summarize_session(
    answers: Sequence[AnswerMetrics],
    elapsed_minutes: Optional[float] = None,
) -> SessionMetrics:
    """Aggregate per-answer metrics. Raises ValueError on an empty session."""
    n = len(answers)
    if n == 0:
        raise ValueError("Cannot summarize a session with no answers")

    total_words = sum(a.word_count for a in answers)
    substantive = sum(1 for a in answers if a.has_substance)

    return SessionMetrics(
        total_words=total_words,
        avg_words_per_answer=total_words / n,
        empty_answer_count=sum(1 for a in answers if a.is_empty),
        substantive_answer_count=substantive,
        completion_rate_pct=100 * substantive / n,
        actual_duration_minutes=elapsed_minutes,
        expected_duration_minutes=float(n * EXPECTED_MINUTES_PER_ITEM),
        was_rushed=elapsed_minutes is not None and elapsed_minutes < n * RUSHED_MINUTES_PER_ITEM,
        average_quality=sum(a.quality_score for a in answers) / n,
    )


def analyze_session(
    items: Sequence[EvaluationItem],
    elapsed_minutes: Optional[float] = None,
) -> tuple[list[AnswerMetrics], SessionMetrics]:
    answers = [analyze_answer(item.prompt, item.response) for item in items]
    return answers, summarize_session(answers, elapsed_minutes)


def analyze_request(request: EvaluationRequest) -> HeuristicReport:
    """Default analyzer used by evaluation profiles."""
    answers, session = analyze_session(request.items, request.elapsed_minutes)
    return HeuristicReport(answers=tuple(answers), session=session)
