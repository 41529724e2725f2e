"""FastAPI service exposing interview feedback and resume analysis."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from agents.interview.agent import build_interview_request, generate_feedback, pair_transcript
from agents.resume.agent import analyze_resume, build_resume_request
from core.config import Settings, get_settings
from core.errors import (
    ParseError,
    TerminalInvocationError,
    TransientInvocationError,
    ValidationError,
)
from core.pipeline import Evaluator, build_evaluator

logger = logging.getLogger(__name__)


# ── Request bodies ────────────────────────────────────────────────

class InterviewQuestion(BaseModel):
    question: str = Field(min_length=1)
    answer: str = ""


class TranscriptMessage(BaseModel):
    role: str
    content: str = ""


class InterviewFeedbackBody(BaseModel):
    role: str = Field(min_length=1)
    interview_type: str = Field(default="mixed", min_length=1)
    questions: list[InterviewQuestion] = Field(default_factory=list)
    transcript: Optional[list[TranscriptMessage]] = None
    tech_stack: list[str] = Field(default_factory=list)
    duration_minutes: Optional[float] = Field(default=None, ge=0)
    company: Optional[str] = None


class ResumeAnalysisBody(BaseModel):
    resume_text: str = Field(min_length=1)
    job_title: Optional[str] = None
    job_description: Optional[str] = None
    company: Optional[str] = None


class EvaluatorRuntime:
    """Holds the Evaluator used by the routes; built on first use."""

    def __init__(self, settings: Settings | Any, evaluator: Evaluator | None = None) -> None:
        self.settings = settings
        self._evaluator = evaluator

    @property
    def evaluator(self) -> Evaluator:
        if self._evaluator is None:
            logger.info("Initializing evaluator")
            self._evaluator = build_evaluator(self.settings)
        return self._evaluator


def create_app(
    *,
    settings: Settings | Any | None = None,
    evaluator: Evaluator | None = None,
) -> FastAPI:
    """Create the FastAPI app. Pass ``evaluator`` to inject collaborators in tests."""
    resolved_settings = settings or get_settings()
    runtime = EvaluatorRuntime(resolved_settings, evaluator)

    web_app = FastAPI(title="interview-coach")

    # ── Error mapping ──────────────────────────────────
    # Bodies never echo model output.

    @web_app.exception_handler(TransientInvocationError)
    async def _transient(_: Request, exc: TransientInvocationError) -> JSONResponse:
        logger.error("Model unavailable attempts=%s error=%s", exc.attempts, exc)
        return JSONResponse(
            status_code=503,
            content={"detail": "The evaluation model is temporarily unavailable. Please retry."},
        )

    @web_app.exception_handler(TerminalInvocationError)
    async def _terminal(_: Request, exc: TerminalInvocationError) -> JSONResponse:
        logger.error("Model call rejected error=%s", exc)
        return JSONResponse(status_code=502, content={"detail": "The evaluation model rejected the request."})

    @web_app.exception_handler(ParseError)
    @web_app.exception_handler(ValidationError)
    async def _unusable(_: Request, exc: Exception) -> JSONResponse:
        logger.error("Unusable model output error_type=%s", type(exc).__name__)
        return JSONResponse(
            status_code=502,
            content={"detail": "The evaluation model returned an unusable response."},
        )

    # ── Routes ─────────────────────────────────────────

    @web_app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @web_app.post("/interviews/feedback")
    def interview_feedback(body: InterviewFeedbackBody) -> dict[str, Any]:
        started = time.perf_counter()
        if body.transcript is not None:
            entries: list[Any] = pair_transcript(m.model_dump() for m in body.transcript)
        else:
            entries = [q.model_dump() for q in body.questions]
        if not entries:
            raise HTTPException(status_code=422, detail="At least one question is required")

        request = build_interview_request(
            entries,
            role=body.role,
            interview_type=body.interview_type,
            tech_stack=body.tech_stack,
            duration_minutes=body.duration_minutes,
            company=body.company,
        )
        result = generate_feedback(runtime.evaluator, request, settings=runtime.settings)
        logger.info(
            "Interview feedback served questions=%s latency_ms=%s",
            len(request.items),
            int((time.perf_counter() - started) * 1000),
        )
        return result.to_dict()

    @web_app.post("/resumes/analysis")
    def resume_analysis(body: ResumeAnalysisBody) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            request = build_resume_request(
                body.resume_text,
                job_title=body.job_title,
                job_description=body.job_description,
                company=body.company,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        result = analyze_resume(runtime.evaluator, request, settings=runtime.settings)
        logger.info(
            "Resume analysis served latency_ms=%s",
            int((time.perf_counter() - started) * 1000),
        )
        return result.to_dict()

    return web_app


app = create_app()


def run_server() -> None:
    """Run the FastAPI service with uvicorn."""
    settings = get_settings()
    uvicorn.run("app:app", host=settings.server_host, port=settings.server_port, log_level="info")


if __name__ == "__main__":
    run_server()
