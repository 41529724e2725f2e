"""
Hard evaluation functions run against every validated result.

All functions return simple pass/fail values (or a list of violations).
They never change a result; findings land in run telemetry.
"""

from __future__ import annotations

from typing import Any

from core.types import EvaluationResult


def check_score_range(result: EvaluationResult) -> bool:
    """Total and every category score lie in 0-100."""
    if not 0 <= result.total_score <= 100:
        return False
    return all(0 <= c.score <= 100 for c in result.categories)


def check_metrics_alignment(result: EvaluationResult, item_count: int) -> bool:
    """One AnswerMetrics per request item, and session metrics present."""
    if result.session_metrics is None:
        return False
    return len(result.answer_metrics) == item_count


def _is_communication(name: str) -> bool:
    return "communication" in name.lower()


def check_penalty_caps(result: EvaluationResult) -> list[str]:
    """
    List the mandatory interview penalties the model ignored.

    Only the caps that can be checked from the merged session metrics are
    verified; deductions (empty answers, rushed session) are not, since the
    pre-penalty score is unknown.
    """
    session = result.session_metrics
    if session is None:
        return []

    violations: list[str] = []
    avg_words = session.avg_words_per_answer

    category_cap = None
    if avg_words < 20:
        category_cap = 35
    elif avg_words < 30:
        category_cap = 45
    if category_cap is not None:
        for category in result.categories:
            if category.score > category_cap:
                violations.append(
                    f"{category.name}={category.score} exceeds {category_cap} "
                    f"(avg words/answer {avg_words:.1f})"
                )

    one_word_answers = sum(1 for a in result.answer_metrics if a.is_one_word)
    communication_cap = None
    if one_word_answers:
        communication_cap = 30
    elif avg_words < 40:
        communication_cap = 55
    if communication_cap is not None:
        for category in result.categories:
            if _is_communication(category.name) and category.score > communication_cap:
                violations.append(
                    f"{category.name}={category.score} exceeds {communication_cap}"
                )

    total_cap = None
    if session.completion_rate_pct < 50:
        total_cap = 40
    elif session.completion_rate_pct < 70:
        total_cap = 55
    if total_cap is not None and result.total_score > total_cap:
        violations.append(
            f"total={result.total_score} exceeds {total_cap} "
            f"(completion {session.completion_rate_pct:.0f}%)"
        )

    return violations


def run_hard_checks(
    result: EvaluationResult,
    *,
    item_count: int,
    apply_penalty_caps: bool = True,
) -> dict[str, Any]:
    """Bundle of check outcomes stored as a run's eval_results."""
    violations = check_penalty_caps(result) if apply_penalty_caps else []
    return {
        "total_score": result.total_score,
        "category_count": len(result.categories),
        "score_range_ok": check_score_range(result),
        "metrics_aligned": check_metrics_alignment(result, item_count),
        "penalty_violations": violations,
        "warning_count": len(result.warnings),
    }
