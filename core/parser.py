"""
Model-output parsing and schema validation.

Handles:
- Code fences and prose around the JSON object
- Picking the largest decodable {...} span
- Strict validation of the top-level shape, lenient filtering of list items
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from core.errors import ParseError, ValidationError
from core.types import CategoryScore, EvaluationResult, Tip

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[A-Za-z0-9_-]*")

VALID_TIP_TYPES = {"good", "improve"}


@dataclass(frozen=True)
class FeedbackSchema:
    """Field names of the JSON object a profile asks the model for."""

    score_field: str = "totalScore"
    categories_field: str = "categoryScores"
    strengths_field: str = "strengths"
    improvements_field: str = "areasForImprovement"
    summary_field: str = "finalAssessment"
    comment_field: str = "comment"
    tips_field: Optional[str] = None


# ── Extraction ────────────────────────────────────────────────────

def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Return the largest JSON object embedded in ``text``.

    Raises ParseError (with a bounded preview) when nothing decodes.
    """
    if not text or not text.strip():
        raise ParseError("Model returned empty output", raw_text=text)

    cleaned = strip_code_fences(text)
    decoder = json.JSONDecoder()
    best: dict[str, Any] | None = None
    best_span = -1

    idx = cleaned.find("{")
    while idx != -1:
        try:
            obj, end = decoder.raw_decode(cleaned, idx)
        except ValueError:
            idx = cleaned.find("{", idx + 1)
            continue
        if isinstance(obj, dict) and end - idx > best_span:
            best, best_span = obj, end - idx
        # Anything starting inside this span is a nested, smaller object.
        idx = cleaned.find("{", end)

    if best is None:
        raise ParseError("No JSON object found in model output", raw_text=text)
    return best


# ── Field coercion ────────────────────────────────────────────────

def coerce_score(value: Any, *, low: float = 0, high: float = 100) -> Optional[int]:
    """Rounded score, or None if ``value`` is not a finite number in range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if not low <= value <= high:
        return None
    return int(round(value))


def _string_list(data: dict[str, Any], field: str, warnings: list[str]) -> tuple[str, ...]:
    if field not in data:
        raise ValidationError(f"Missing required field: '{field}'")
    raw = data[field]
    if not isinstance(raw, list):
        raise ValidationError(f"'{field}' must be a list, got {type(raw).__name__}")
    kept = tuple(s.strip() for s in raw if isinstance(s, str) and s.strip())
    dropped = len(raw) - len(kept)
    if dropped:
        warnings.append(f"{field}: dropped {dropped} non-text entr{'y' if dropped == 1 else 'ies'}")
    return kept


def _parse_tips(raw: Any, category: str, warnings: list[str]) -> tuple[Tip, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        warnings.append(f"{category}: tips ignored (not a list)")
        return ()
    tips: list[Tip] = []
    for entry in raw:
        if (
            isinstance(entry, dict)
            and entry.get("type") in VALID_TIP_TYPES
            and isinstance(entry.get("tip"), str)
            and entry["tip"].strip()
        ):
            explanation = entry.get("explanation")
            tips.append(
                Tip(
                    type=entry["type"],
                    tip=entry["tip"].strip(),
                    explanation=explanation.strip() if isinstance(explanation, str) else "",
                )
            )
    if len(tips) != len(raw):
        warnings.append(f"{category}: dropped {len(raw) - len(tips)} invalid tip(s)")
    return tuple(tips)


def _category_entries(raw: Any, field: str) -> list[Any]:
    """Accept a list of objects or a {name: score} mapping."""
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        return [{"name": name, "score": score} for name, score in raw.items()]
    raise ValidationError(f"'{field}' must be a list, got {type(raw).__name__}")


def _parse_categories(
    data: dict[str, Any],
    schema: FeedbackSchema,
    warnings: list[str],
) -> tuple[CategoryScore, ...]:
    field = schema.categories_field
    if field not in data:
        raise ValidationError(f"Missing required field: '{field}'")
    entries = _category_entries(data[field], field)

    categories: list[CategoryScore] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            warnings.append(f"{field}[{position}]: not an object")
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            warnings.append(f"{field}[{position}]: missing name")
            continue
        score = coerce_score(entry.get("score"))
        if score is None:
            warnings.append(f"{field}[{position}] '{name.strip()}': invalid score {entry.get('score')!r}")
            continue
        comment = entry.get(schema.comment_field)
        tips: tuple[Tip, ...] = ()
        if schema.tips_field:
            tips = _parse_tips(entry.get(schema.tips_field), name.strip(), warnings)
        categories.append(
            CategoryScore(
                name=name.strip(),
                score=score,
                comment=comment.strip() if isinstance(comment, str) else "",
                tips=tips,
            )
        )

    if not categories:
        raise ValidationError(f"'{field}' has no valid entries ({len(entries)} received)")
    return tuple(categories)


# ── Public API ────────────────────────────────────────────────────

def validate_payload(data: dict[str, Any], schema: FeedbackSchema) -> EvaluationResult:
    """
    Validate a decoded object against ``schema``.

    Raises ValidationError when a required field is missing, mistyped,
    out of range, or when no category survives filtering. Filtered items
    are reported in EvaluationResult.warnings.
    """
    warnings: list[str] = []

    if schema.score_field not in data:
        raise ValidationError(f"Missing required field: '{schema.score_field}'")
    total = coerce_score(data[schema.score_field])
    if total is None:
        raise ValidationError(
            f"'{schema.score_field}' must be a number in 0-100, got {data[schema.score_field]!r}"
        )

    categories = _parse_categories(data, schema, warnings)
    strengths = _string_list(data, schema.strengths_field, warnings)
    improvements = _string_list(data, schema.improvements_field, warnings)

    summary = data.get(schema.summary_field)
    if not isinstance(summary, str) or not summary.strip():
        raise ValidationError(f"Missing or empty required field: '{schema.summary_field}'")

    if warnings:
        logger.warning("Model output accepted with %s dropped item(s): %s", len(warnings), warnings)

    return EvaluationResult(
        total_score=total,
        categories=categories,
        strengths=strengths,
        improvements=improvements,
        summary=summary.strip(),
        warnings=tuple(warnings),
    )


def parse_and_validate(raw_text: str, schema: FeedbackSchema) -> EvaluationResult:
    """Extract, decode and validate a model reply."""
    return validate_payload(extract_json_object(raw_text), schema)
