"""
SQLite database layer for evaluation telemetry.

Tables:
  - runs : one row per evaluation (profile, fingerprint, outcome, usage)
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from core.config import get_settings

# ── Schema DDL ────────────────────────────────────────────────────

RUNS_DDL = """\
CREATE TABLE IF NOT EXISTS runs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id          TEXT    NOT NULL UNIQUE,
    profile         TEXT    NOT NULL,
    fingerprint     TEXT,
    status          TEXT    NOT NULL DEFAULT 'started',
    cache_hit       INTEGER,
    attempts        INTEGER,
    eval_results    TEXT,
    tokens_used     INTEGER,
    latency_ms      INTEGER,
    error           TEXT,
    created_at      TEXT    NOT NULL,
    completed_at    TEXT
);
"""

RUNS_MIGRATIONS: dict[str, str] = {
    "model": "TEXT",
    "warning_count": "INTEGER",
}


# ── Helpers ───────────────────────────────────────────────────────

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _table_columns(conn: sqlite3.Connection, table_name: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table_name})").fetchall()
    return {row[1] for row in rows}


def _apply_migrations(conn: sqlite3.Connection) -> None:
    runs_columns = _table_columns(conn, "runs")
    for column, sql_type in RUNS_MIGRATIONS.items():
        if column not in runs_columns:
            conn.execute(f"ALTER TABLE runs ADD COLUMN {column} {sql_type}")


def init_db(db_path: Path | None = None) -> Path:
    """Create the database file + tables if they don't exist.  Returns the path."""
    path = db_path or get_settings().db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(str(path)) as conn:
        conn.execute(RUNS_DDL)
        _apply_migrations(conn)
    return path


@contextmanager
def get_conn(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Yield a connection with row_factory set to sqlite3.Row."""
    path = db_path or get_settings().db_path
    init_db(path)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


# ── Run CRUD ──────────────────────────────────────────────────────

def insert_run(
    run_id: str,
    profile: str,
    *,
    fingerprint: str | None = None,
    db_path: Path | None = None,
) -> None:
    """Start a new run record."""
    with get_conn(db_path) as conn:
        conn.execute(
            """INSERT INTO runs (run_id, profile, fingerprint, status, created_at)
               VALUES (?, ?, ?, 'started', ?)""",
            (run_id, profile, fingerprint, _now_iso()),
        )


def complete_run(
    run_id: str,
    *,
    status: str = "completed",
    cache_hit: bool | None = None,
    attempts: int | None = None,
    eval_results: dict | None = None,
    tokens_used: int | None = None,
    latency_ms: int | None = None,
    model: str | None = None,
    warning_count: int | None = None,
    error: str | None = None,
    db_path: Path | None = None,
) -> None:
    """Mark a run as finished (``completed`` or ``failed``)."""
    with get_conn(db_path) as conn:
        conn.execute(
            """UPDATE runs
               SET status = ?, cache_hit = ?, attempts = ?, eval_results = ?,
                   tokens_used = ?, latency_ms = ?, model = ?, warning_count = ?,
                   error = ?, completed_at = ?
               WHERE run_id = ?""",
            (
                status,
                int(cache_hit) if cache_hit is not None else None,
                attempts,
                json.dumps(eval_results) if eval_results else None,
                tokens_used,
                latency_ms,
                model,
                warning_count,
                error,
                _now_iso(),
                run_id,
            ),
        )


def get_run(run_id: str, *, db_path: Path | None = None) -> dict[str, Any] | None:
    """Fetch a single run by run_id."""
    with get_conn(db_path) as conn:
        row = conn.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,)).fetchone()
        if row:
            d = dict(row)
            if d.get("eval_results"):
                d["eval_results"] = json.loads(d["eval_results"])
            if d.get("cache_hit") is not None:
                d["cache_hit"] = bool(d["cache_hit"])
            return d
        return None


def get_db_stats(*, db_path: Path | None = None) -> dict[str, Any]:
    """Return a lightweight summary of persisted runs for quick debugging."""
    with get_conn(db_path) as conn:
        runs_row = conn.execute(
            """SELECT
                   COUNT(*) AS total_runs,
                   SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed_runs,
                   SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) AS failed_runs,
                   SUM(CASE WHEN cache_hit = 1 THEN 1 ELSE 0 END) AS cache_hits,
                   AVG(latency_ms) AS avg_latency_ms,
                   SUM(tokens_used) AS total_tokens
               FROM runs"""
        ).fetchone()
        profile_rows = conn.execute(
            """SELECT profile, COUNT(*) AS runs,
                      AVG(json_extract(eval_results, '$.total_score')) AS avg_score
               FROM runs
               GROUP BY profile
               ORDER BY profile"""
        ).fetchall()

    return {
        "db_path": str(db_path or get_settings().db_path),
        "runs": dict(runs_row) if runs_row else {},
        "profiles": [dict(r) for r in profile_rows],
    }
