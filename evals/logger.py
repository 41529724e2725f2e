"""
Telemetry logger: writes per-run evaluation outcomes to runs/ as JSON and to SQLite.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from core.config import get_settings
from core.db import complete_run, insert_run


def generate_run_id() -> str:
    """Generate a unique run identifier."""
    return f"run-{uuid.uuid4().hex[:12]}"


def log_run(
    profile: str,
    eval_results: dict[str, Any],
    *,
    fingerprint: str | None = None,
    status: str = "completed",
    cache_hit: bool = False,
    attempts: int = 0,
    tokens_used: int = 0,
    latency_ms: int = 0,
    model: str | None = None,
    warning_count: int = 0,
    error: str | None = None,
    db_path: Path | None = None,
    runs_dir: Path | None = None,
) -> str:
    """
    Log a finished evaluation to both SQLite and a JSON file in runs/.

    Returns the run_id.
    """
    run_id = generate_run_id()
    settings = get_settings()

    # ── SQLite ─────────────────────────────────────────
    insert_run(run_id, profile, fingerprint=fingerprint, db_path=db_path)
    complete_run(
        run_id,
        status=status,
        cache_hit=cache_hit,
        attempts=attempts,
        eval_results=eval_results,
        tokens_used=tokens_used,
        latency_ms=latency_ms,
        model=model,
        warning_count=warning_count,
        error=error,
        db_path=db_path,
    )

    # ── JSON file ──────────────────────────────────────
    runs_dir = runs_dir or settings.runs_dir
    runs_dir.mkdir(parents=True, exist_ok=True)

    log_entry = {
        "run_id": run_id,
        "profile": profile,
        "fingerprint": fingerprint,
        "status": status,
        "cache_hit": cache_hit,
        "attempts": attempts,
        "eval_results": eval_results,
        "tokens_used": tokens_used,
        "latency_ms": latency_ms,
        "model": model,
        "warning_count": warning_count,
        "error": error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    log_path = runs_dir / f"{run_id}.json"
    log_path.write_text(json.dumps(log_entry, indent=2), encoding="utf-8")

    return run_id
