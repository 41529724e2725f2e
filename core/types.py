"""
Data model shared by every stage of the evaluation pipeline.

Requests are frozen and built per call. Results are replaced wholesale
(dataclasses.replace) rather than mutated, so a cached payload is never
patched in place.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class EvaluationItem:
    """One (prompt, response) pair, e.g. interview question and answer."""

    prompt: str
    response: str


@dataclass(frozen=True)
class EvaluationRequest:
    """A submission to evaluate: ordered items plus session metadata."""

    items: tuple[EvaluationItem, ...]
    role: str
    category: str
    tags: tuple[str, ...] = ()
    elapsed_minutes: Optional[float] = None
    company: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("EvaluationRequest needs at least one item")
        # Accept lists from callers but store tuples so the request stays hashable.
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "tags", tuple(sorted(t.strip() for t in self.tags)))

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, str]],
        *,
        role: str,
        category: str,
        tags: Iterable[str] = (),
        elapsed_minutes: Optional[float] = None,
        company: Optional[str] = None,
    ) -> "EvaluationRequest":
        return cls(
            items=tuple(EvaluationItem(prompt=p, response=r) for p, r in pairs),
            role=role,
            category=category,
            tags=tuple(tags),
            elapsed_minutes=elapsed_minutes,
            company=company,
        )


# ── Heuristic metrics ─────────────────────────────────────────────

@dataclass(frozen=True)
class AnswerMetrics:
    prompt: str
    response: str
    word_count: int
    sentence_count: int
    avg_words_per_sentence: float
    quality_score: int
    has_examples: bool
    has_structure: bool
    is_relevant: bool
    is_empty: bool
    is_one_word: bool
    has_substance: bool


@dataclass(frozen=True)
class SessionMetrics:
    total_words: int
    avg_words_per_answer: float
    empty_answer_count: int
    substantive_answer_count: int
    completion_rate_pct: float
    actual_duration_minutes: Optional[float]
    expected_duration_minutes: float
    was_rushed: bool
    average_quality: float


@dataclass(frozen=True)
class HeuristicReport:
    """Everything the analyzer computed for one request."""

    answers: tuple[AnswerMetrics, ...]
    session: SessionMetrics
    document: Optional[dict[str, Any]] = None


# ── Model-derived result ──────────────────────────────────────────

@dataclass(frozen=True)
class Tip:
    type: str  # "good" | "improve"
    tip: str
    explanation: str = ""


@dataclass(frozen=True)
class CategoryScore:
    name: str
    score: int
    comment: str = ""
    tips: tuple[Tip, ...] = ()


@dataclass(frozen=True)
class EvaluationResult:
    """Validated model output with the objective heuristics merged in."""

    total_score: int
    categories: tuple[CategoryScore, ...]
    strengths: tuple[str, ...]
    improvements: tuple[str, ...]
    summary: str
    session_metrics: Optional[SessionMetrics] = None
    answer_metrics: tuple[AnswerMetrics, ...] = ()
    document_metrics: Optional[dict[str, Any]] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict ready for json.dumps."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvaluationResult":
        """
        Rebuild a result from to_dict() output.

        Raises KeyError / TypeError when the payload does not match.
        """
        session = data.get("session_metrics")
        return cls(
            total_score=data["total_score"],
            categories=tuple(
                CategoryScore(
                    name=c["name"],
                    score=c["score"],
                    comment=c.get("comment", ""),
                    tips=tuple(Tip(**t) for t in c.get("tips", [])),
                )
                for c in data["categories"]
            ),
            strengths=tuple(data["strengths"]),
            improvements=tuple(data["improvements"]),
            summary=data["summary"],
            session_metrics=SessionMetrics(**session) if session is not None else None,
            answer_metrics=tuple(AnswerMetrics(**a) for a in data.get("answer_metrics", [])),
            document_metrics=data.get("document_metrics"),
            warnings=tuple(data.get("warnings", [])),
        )
