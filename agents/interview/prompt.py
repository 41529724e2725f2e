"""
Interview feedback prompt: rubric template + computed metrics + verbatim answers.
"""

from __future__ import annotations

from core.prompts import render_prompt
from core.types import AnswerMetrics, EvaluationRequest, HeuristicReport, SessionMetrics

PROMPT_NAME = "interview_feedback"
PROMPT_VERSION = 1

NO_ANSWER = "[NO ANSWER PROVIDED]"
ANSWER_SEPARATOR = "\n---\n"


def _yes_no(flag: bool) -> str:
    return "Yes ✓" if flag else "No ✗"


def _length_marker(word_count: int) -> str:
    if word_count < 30:
        return "⚠️ TOO SHORT"
    if word_count < 50:
        return "⚠️ BRIEF"
    return "✓"


def _assessment(answer: AnswerMetrics) -> str:
    if answer.is_empty:
        return "EMPTY/MINIMAL - CRITICAL ISSUE"
    if answer.word_count < 30:
        return "INSUFFICIENT DETAIL"
    if answer.word_count < 50:
        return "NEEDS MORE DEPTH"
    return "ADEQUATE LENGTH"


def render_answer(position: int, answer: AnswerMetrics) -> str:
    """One answer block of the DETAILED ANSWER ANALYSIS section."""
    return "\n".join(
        [
            f"Question {position}: {answer.prompt}",
            f"Answer: {answer.response or NO_ANSWER}",
            "Metrics:",
            f"- Word Count: {answer.word_count} {_length_marker(answer.word_count)}",
            f"- Sentences: {answer.sentence_count}",
            f"- Quality Score: {answer.quality_score}/10",
            f"- Has Examples: {_yes_no(answer.has_examples)}",
            f"- Has Structure: {_yes_no(answer.has_structure)}",
            f"- Relevant to Question: {_yes_no(answer.is_relevant)}",
            f"- Assessment: {_assessment(answer)}",
        ]
    )


def render_session(session: SessionMetrics, question_count: int) -> str:
    return "\n".join(
        [
            f"- Total Words Spoken: {session.total_words}",
            f"- Average Words Per Answer: {session.avg_words_per_answer:.1f}",
            f"- Empty/Minimal Answers (<10 words): {session.empty_answer_count}/{question_count}",
            f"- Substantive Answers (≥40 words): {session.substantive_answer_count}/{question_count}",
            f"- Quality Completion Rate: {session.completion_rate_pct:.1f}%",
            f"- Average Answer Quality: {session.average_quality:.1f}/10",
            f"- Interview Pace: {'RUSHED ⚠️' if session.was_rushed else 'APPROPRIATE ✓'}",
        ]
    )


def render_reality_check(session: SessionMetrics) -> str:
    """Verdict lines that point the model at the worst metrics."""
    avg = session.avg_words_per_answer
    if avg < 40:
        words_verdict = "= RED FLAG 🚩"
    elif avg < 60:
        words_verdict = "= NEEDS WORK ⚠️"
    else:
        words_verdict = "= GOOD ✓"

    empty_verdict = "= MAJOR ISSUE 🚩" if session.empty_answer_count > 0 else "= GOOD ✓"

    rate = session.completion_rate_pct
    if rate < 70:
        rate_verdict = "= POOR 🚩"
    elif rate < 85:
        rate_verdict = "= FAIR ⚠️"
    else:
        rate_verdict = "= GOOD ✓"

    return "\n".join(
        [
            "Based on the metrics:",
            f"- Avg {avg:.0f} words/answer {words_verdict}",
            f"- {session.empty_answer_count} empty answers {empty_verdict}",
            f"- {rate:.0f}% completion {rate_verdict}",
        ]
    )


def build_feedback_prompt(request: EvaluationRequest, report: HeuristicReport) -> str:
    """Render the full interview feedback prompt for ``request``."""
    session = report.session
    question_count = len(request.items)
    duration = (
        f"{session.actual_duration_minutes:g} minutes"
        if session.actual_duration_minutes is not None
        else "not recorded"
    )

    return render_prompt(
        PROMPT_NAME,
        version=PROMPT_VERSION,
        role=request.role,
        category=request.category,
        company=request.company or "Technical Assessment",
        tech_stack=", ".join(request.tags) or "General",
        question_count=question_count,
        actual_duration=duration,
        expected_duration=f"{session.expected_duration_minutes:g}",
        session_report=render_session(session, question_count),
        answer_report=ANSWER_SEPARATOR.join(
            render_answer(i, answer) for i, answer in enumerate(report.answers, start=1)
        ),
        reality_check=render_reality_check(session),
        primary_tech=request.tags[0] if request.tags else "General",
    )
