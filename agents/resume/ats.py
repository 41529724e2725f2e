"""
Deterministic ATS (applicant tracking system) checks for resume text.

Score breakdown (0-100):
  - format   40 : no tables (10), no images (10), standard sections (20)
  - keywords 40 : share of job-description keywords present (20 without a JD)
  - content  20 : action verbs (10), quantified results (10)
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

STANDARD_SECTIONS = ("experience", "education", "skills", "summary", "objective")
ACTION_VERBS = (
    "led",
    "managed",
    "developed",
    "created",
    "improved",
    "increased",
    "achieved",
    "implemented",
)
COMMON_KEYWORDS = (
    "python",
    "javascript",
    "react",
    "node",
    "aws",
    "docker",
    "sql",
    "agile",
    "scrum",
    "leadership",
    "management",
    "analysis",
    "design",
    "development",
)
STOPWORDS = {"the", "and", "with", "for", "this", "that"}

TABLE_MARKERS = ("|", "─")
_IMAGE_MARKER = re.compile(r"\[image\]|\[graphic\]", re.IGNORECASE)
_NUMBER = re.compile(r"\d+[%$kmb]?")
_PHRASE = re.compile(r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+")
_WORD = re.compile(r"\b[a-z]{3,}\b")

MAX_TOP_WORDS = 20
MAX_KEYWORDS = 30
QUANTIFIED_TARGET = 5


@dataclass(frozen=True)
class ATSIssue:
    type: str  # "critical" | "warning"
    message: str
    explanation: str
    priority: str  # "high" | "medium"


@dataclass(frozen=True)
class ATSReport:
    ats_score: int
    format_score: float
    keyword_score: float
    content_score: float
    has_tables: bool
    has_images: bool
    sections_found: tuple[str, ...]
    action_verbs_found: tuple[str, ...]
    quantifiable_results: int
    keyword_match_pct: Optional[int] = None
    matched_keywords: tuple[str, ...] = ()
    missing_keywords: tuple[str, ...] = ()
    issues: tuple[ATSIssue, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """JSON-native dict (lists, not tuples) so cached copies compare equal."""
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def extract_keywords(job_description: str) -> list[str]:
    """
    Likely-important terms of a job description, at most 30.

    Known skill words that occur in the text come first, then capitalised
    multi-word phrases, then the 20 most frequent words (ties keep text order).
    """
    lowered = job_description.lower()
    keywords: list[str] = [k for k in COMMON_KEYWORDS if k in lowered]
    keywords.extend(p.lower() for p in _PHRASE.findall(job_description))

    words = [w for w in _WORD.findall(lowered) if w not in STOPWORDS]
    keywords.extend(word for word, _ in Counter(words).most_common(MAX_TOP_WORDS))

    unique = list(dict.fromkeys(keywords))
    return unique[:MAX_KEYWORDS]


def analyze_document(resume_text: str, job_description: Optional[str] = None) -> ATSReport:
    """Run every ATS check over ``resume_text``."""
    text = resume_text.lower()
    issues: list[ATSIssue] = []

    # ── Format ─────────────────────────────────────────
    format_score = 0.0
    has_tables = any(marker in text for marker in TABLE_MARKERS)
    if not has_tables:
        format_score += 10
    else:
        issues.append(
            ATSIssue(
                "critical",
                "Avoid tables in your resume",
                "ATS systems struggle to parse tabular data correctly",
                "high",
            )
        )

    has_images = bool(_IMAGE_MARKER.search(text))
    if not has_images:
        format_score += 10
    else:
        issues.append(
            ATSIssue("warning", "Remove images and graphics", "ATS cannot read images, use text only", "high")
        )

    sections = tuple(s for s in STANDARD_SECTIONS if s in text)
    format_score += len(sections) / len(STANDARD_SECTIONS) * 20
    if len(sections) < 3:
        issues.append(
            ATSIssue(
                "warning",
                "Use standard section headers",
                "ATS looks for: Experience, Education, Skills, Summary",
                "medium",
            )
        )

    # ── Keywords ───────────────────────────────────────
    matched: list[str] = []
    missing: list[str] = []
    match_pct: Optional[int] = None
    keywords = extract_keywords(job_description) if job_description and job_description.strip() else []
    if keywords:
        for keyword in keywords:
            (matched if keyword in text else missing).append(keyword)
        keyword_score = len(matched) / len(keywords) * 40
        match_pct = _round_half_up(len(matched) / len(keywords) * 100)
        if keyword_score < 20:
            issues.append(
                ATSIssue(
                    "critical",
                    f"Only {len(matched)}/{len(keywords)} job keywords found",
                    "Add relevant keywords from the job description",
                    "high",
                )
            )
    else:
        keyword_score = 20.0

    # ── Content ────────────────────────────────────────
    verbs = tuple(v for v in ACTION_VERBS if v in text)
    content_score = len(verbs) / len(ACTION_VERBS) * 10
    if len(verbs) < 3:
        issues.append(
            ATSIssue(
                "warning",
                "Use more action verbs",
                "Start bullet points with: Led, Managed, Developed, Achieved",
                "medium",
            )
        )

    numbers = _NUMBER.findall(text)
    content_score += min(len(numbers) / QUANTIFIED_TARGET, 1) * 10
    if len(numbers) < 3:
        issues.append(
            ATSIssue(
                "warning",
                "Add quantifiable results",
                'Include numbers, percentages, and metrics (e.g., "Increased sales by 25%")',
                "high",
            )
        )

    return ATSReport(
        ats_score=_round_half_up(format_score + keyword_score + content_score),
        format_score=round(format_score, 1),
        keyword_score=round(keyword_score, 1),
        content_score=round(content_score, 1),
        has_tables=has_tables,
        has_images=has_images,
        sections_found=sections,
        action_verbs_found=verbs,
        quantifiable_results=len(numbers),
        keyword_match_pct=match_pct,
        matched_keywords=tuple(matched),
        missing_keywords=tuple(missing),
        issues=tuple(issues),
    )
