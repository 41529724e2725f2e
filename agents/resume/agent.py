"""
Resume Agent: ATS checks plus model-written, category-scored resume feedback.

A resume request is a single item whose prompt is the job description
(empty for a general review) and whose response is the resume text.
"""

from __future__ import annotations

import logging
from typing import Optional

from agents.resume.ats import analyze_document
from agents.resume.prompt import GENERAL_ROLE, build_resume_prompt
from core.config import Settings, get_settings
from core.heuristics import analyze_request
from core.parser import FeedbackSchema
from core.pipeline import EvaluationProfile, Evaluator
from core.types import EvaluationItem, EvaluationRequest, EvaluationResult, HeuristicReport

logger = logging.getLogger(__name__)

PROFILE_NAME = "resume_analysis"
CACHE_KEY_PREFIX = "resume:analysis"
RESUME_CATEGORY = "resume"

RESUME_SCHEMA = FeedbackSchema(
    score_field="overallScore",
    categories_field="categories",
    strengths_field="strengths",
    improvements_field="improvements",
    summary_field="summary",
    tips_field="tips",
)


def build_resume_request(
    resume_text: str,
    *,
    job_title: Optional[str] = None,
    job_description: Optional[str] = None,
    company: Optional[str] = None,
) -> EvaluationRequest:
    """Raises ValueError if ``resume_text`` is blank."""
    if not resume_text or not resume_text.strip():
        raise ValueError("Resume text is empty")
    return EvaluationRequest(
        items=(EvaluationItem(prompt=job_description or "", response=resume_text),),
        role=(job_title or "").strip() or GENERAL_ROLE,
        category=RESUME_CATEGORY,
        company=company or None,
    )


def analyze_resume_request(request: EvaluationRequest) -> HeuristicReport:
    """Answer heuristics over the resume text plus the ATS document metrics."""
    base = analyze_request(request)
    item = request.items[0]
    document = analyze_document(item.response, item.prompt or None)
    return HeuristicReport(answers=base.answers, session=base.session, document=document.to_dict())


def resume_profile(settings: Settings | None = None) -> EvaluationProfile:
    settings = settings or get_settings()
    return EvaluationProfile(
        name=PROFILE_NAME,
        key_prefix=CACHE_KEY_PREFIX,
        ttl_seconds=settings.resume_cache_ttl_seconds,
        schema=RESUME_SCHEMA,
        build_prompt=build_resume_prompt,
        analyze=analyze_resume_request,
        penalty_caps=False,
    )


def analyze_resume(
    evaluator: Evaluator,
    request: EvaluationRequest,
    *,
    settings: Settings | None = None,
) -> EvaluationResult:
    """Score a resume (cached by content)."""
    logger.info(
        "Analyzing resume role=%s chars=%s with_job_description=%s",
        request.role,
        len(request.items[0].response),
        bool(request.items[0].prompt),
    )
    return evaluator.evaluate(request, resume_profile(settings))
