"""
Resume analysis prompt: ATS rubric + document metrics + verbatim resume text.
"""

from __future__ import annotations

from typing import Any, Optional

from core.prompts import render_prompt
from core.types import EvaluationRequest, HeuristicReport

PROMPT_NAME = "resume_analysis"
PROMPT_VERSION = 1

GENERAL_ROLE = "General"


def render_target(job_title: str, job_description: Optional[str], company: Optional[str]) -> str:
    """TARGET ROLE block; empty for a general review."""
    if job_title == GENERAL_ROLE and not job_description and not company:
        return ""
    lines = ["", "# TARGET ROLE"]
    if job_title != GENERAL_ROLE:
        lines.append(f"Position: {job_title}")
    if company:
        lines.append(f"Company: {company}")
    if job_description:
        lines.extend(["Job Description:", job_description])
    lines.append("")
    return "\n".join(lines)


def render_document(document: dict[str, Any]) -> str:
    sections = document.get("sections_found") or []
    verbs = document.get("action_verbs_found") or []
    lines = [
        f"- Heuristic ATS Score: {document['ats_score']}/100 "
        f"(format {document['format_score']}/40, keywords {document['keyword_score']}/40, "
        f"content {document['content_score']}/20)",
        f"- Tables Detected: {'Yes 🚩' if document['has_tables'] else 'No ✓'}",
        f"- Images/Graphics Detected: {'Yes 🚩' if document['has_images'] else 'No ✓'}",
        f"- Standard Sections Found ({len(sections)}/5): {', '.join(sections) or 'none'}",
        f"- Action Verbs Found ({len(verbs)}/8): {', '.join(verbs) or 'none'}",
        f"- Quantifiable Results: {document['quantifiable_results']}",
    ]
    if document.get("keyword_match_pct") is not None:
        lines.append(f"- Job Keyword Match: {document['keyword_match_pct']}%")
        missing = document.get("missing_keywords") or []
        if missing:
            lines.append(f"- Missing Keywords: {', '.join(missing)}")
    for issue in document.get("issues") or []:
        lines.append(f"- Issue ({issue['priority']}): {issue['message']}. {issue['explanation']}")
    return "\n".join(lines)


def build_resume_prompt(request: EvaluationRequest, report: HeuristicReport) -> str:
    """Render the resume analysis prompt for a single-item resume request."""
    item = request.items[0]
    return render_prompt(
        PROMPT_NAME,
        version=PROMPT_VERSION,
        resume_text=item.response.strip(),
        target_section=render_target(request.role, item.prompt.strip() or None, request.company),
        document_report=render_document(report.document or {}),
    )
