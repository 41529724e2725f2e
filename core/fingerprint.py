"""
Content fingerprints used as cache keys.

The digest covers only what defines the evaluation: the answer pairs,
role, category, tags, duration and company. Who asked and when never
enter the hash.
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable, Optional

from core.types import EvaluationItem, EvaluationRequest


def canonical_payload(
    items: Iterable[EvaluationItem],
    role: str,
    category: str,
    tags: Iterable[str],
    *,
    elapsed_minutes: Optional[float] = None,
    company: Optional[str] = None,
) -> str:
    """Stable JSON text for the semantically relevant fields."""
    payload = {
        "items": [
            {"prompt": item.prompt.strip(), "response": item.response.strip()}
            for item in items
        ],
        "role": role.strip(),
        "category": category.strip(),
        "tags": sorted(t.strip() for t in tags),
        "elapsed_minutes": float(elapsed_minutes) if elapsed_minutes is not None else None,
        "company": company.strip() if company else None,
    }
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def compute_fingerprint(
    items: Iterable[EvaluationItem],
    role: str,
    category: str,
    tags: Iterable[str],
    *,
    elapsed_minutes: Optional[float] = None,
    company: Optional[str] = None,
) -> str:
    """SHA-256 hex digest of the canonical payload."""
    text = canonical_payload(
        items,
        role,
        category,
        tags,
        elapsed_minutes=elapsed_minutes,
        company=company,
    )
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def fingerprint_request(request: EvaluationRequest) -> str:
    return compute_fingerprint(
        request.items,
        request.role,
        request.category,
        request.tags,
        elapsed_minutes=request.elapsed_minutes,
        company=request.company,
    )
