"""HTTP service tests: health, request validation and error mapping."""

from __future__ import annotations

import json

from fastapi.testclient import TestClient

from app import create_app
from core.cache import EvaluationCache, MemoryStore
from core.errors import TerminalInvocationError, TransientInvocationError
from core.invoker import Invocation
from core.pipeline import Evaluator

INTERVIEW_REPLY = json.dumps(
    {
        "totalScore": 64,
        "categoryScores": [{"name": "Communication Skills", "score": 60, "comment": "Okay."}],
        "strengths": ["Structured"],
        "areasForImprovement": ["More examples"],
        "finalAssessment": "Getting there.",
    }
)

RESUME_REPLY = json.dumps(
    {
        "overallScore": 71,
        "categories": [{"name": "ATS", "score": 70, "comment": "Fine.", "tips": []}],
        "strengths": ["Clear"],
        "improvements": ["Numbers"],
        "summary": "Decent.",
    }
)


class _DummySettings:
    feedback_cache_ttl_seconds = 60
    resume_cache_ttl_seconds = 60


class _DummyInvoker:
    def __init__(self, reply) -> None:
        self.reply = reply
        self.calls = 0

    def invoke_with_usage(self, prompt: str, variant: str | None = None) -> Invocation:
        self.calls += 1
        if isinstance(self.reply, Exception):
            raise self.reply
        return Invocation(text=self.reply, attempts=1, model="test/model")


def _client(reply) -> tuple[TestClient, _DummyInvoker]:
    invoker = _DummyInvoker(reply)
    evaluator = Evaluator(EvaluationCache(MemoryStore()), invoker)
    app = create_app(settings=_DummySettings(), evaluator=evaluator)
    return TestClient(app), invoker


INTERVIEW_BODY = {
    "role": "Backend Engineer",
    "interview_type": "technical",
    "tech_stack": ["python"],
    "duration_minutes": 12,
    "questions": [{"question": "What is a race condition?", "answer": "Two threads touching shared state."}],
}


def test_health_returns_ok() -> None:
    client, _ = _client(INTERVIEW_REPLY)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_interview_feedback_returns_result() -> None:
    client, invoker = _client(INTERVIEW_REPLY)

    response = client.post("/interviews/feedback", json=INTERVIEW_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["total_score"] == 64
    assert body["answer_metrics"][0]["word_count"] == 5
    assert body["session_metrics"]["expected_duration_minutes"] == 3.0

    client.post("/interviews/feedback", json=INTERVIEW_BODY)
    assert invoker.calls == 1


def test_interview_feedback_from_transcript() -> None:
    client, _ = _client(INTERVIEW_REPLY)
    body = {
        "role": "Backend Engineer",
        "transcript": [
            {"role": "assistant", "content": "What is a race condition?"},
            {"role": "user", "content": "Two threads touching shared state."},
        ],
    }

    response = client.post("/interviews/feedback", json=body)

    assert response.status_code == 200
    assert response.json()["answer_metrics"][0]["prompt"] == "What is a race condition?"


def test_interview_feedback_requires_questions() -> None:
    client, invoker = _client(INTERVIEW_REPLY)

    response = client.post("/interviews/feedback", json={"role": "Dev", "questions": []})

    assert response.status_code == 422
    assert invoker.calls == 0


def test_invalid_body_is_422() -> None:
    client, _ = _client(INTERVIEW_REPLY)
    response = client.post("/interviews/feedback", json={"role": "", "questions": "nope"})
    assert response.status_code == 422


def test_resume_analysis() -> None:
    client, _ = _client(RESUME_REPLY)

    response = client.post(
        "/resumes/analysis",
        json={"resume_text": "Experience\nLed 3 projects", "job_title": "Engineer"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_score"] == 71
    assert body["document_metrics"]["sections_found"] == ["experience"]


def test_blank_resume_is_422() -> None:
    client, _ = _client(RESUME_REPLY)
    response = client.post("/resumes/analysis", json={"resume_text": "   "})
    assert response.status_code == 422


def test_transient_failure_maps_to_503() -> None:
    client, _ = _client(TransientInvocationError("upstream down", attempts=3))
    response = client.post("/interviews/feedback", json=INTERVIEW_BODY)
    assert response.status_code == 503


def test_terminal_failure_maps_to_502() -> None:
    client, _ = _client(TerminalInvocationError("invalid api key"))
    response = client.post("/interviews/feedback", json=INTERVIEW_BODY)
    assert response.status_code == 502


def test_unusable_output_maps_to_502_without_echoing_it() -> None:
    client, _ = _client("SECRET-RAW-OUTPUT without json")

    response = client.post("/interviews/feedback", json=INTERVIEW_BODY)

    assert response.status_code == 502
    assert "SECRET-RAW-OUTPUT" not in response.text
