"""
Main entry point for the interview-coach evaluation service.

Usage:
    python main.py serve                                  # Start the HTTP service
    python main.py init-db                                # Initialize telemetry database
    python main.py db-stats                               # Show run telemetry summary
    python main.py cache-stats                            # Show result cache status
    python main.py evaluate-interview <session.json>      # Score an interview session
    python main.py analyze-resume <resume.pdf|txt> [--job-title T]
                                  [--job-description-file F] [--company C]
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def _parse_resume_args(args: list[str]) -> dict:
    opts: dict = {
        "path": None,
        "job_title": None,
        "job_description_file": None,
        "company": None,
    }
    flags = {
        "--job-title": "job_title",
        "--job-description-file": "job_description_file",
        "--company": "company",
    }

    i = 0
    while i < len(args):
        token = args[i]
        if token in flags:
            if i + 1 >= len(args):
                raise ValueError(f"{token} requires a value")
            opts[flags[token]] = args[i + 1]
            i += 1
        elif token.startswith("--"):
            raise ValueError(f"Unknown analyze-resume argument: {token}")
        elif opts["path"] is None:
            opts["path"] = token
        else:
            raise ValueError(f"Unexpected argument: {token}")
        i += 1

    if opts["path"] is None:
        raise ValueError("analyze-resume requires a resume file path")
    return opts


def _load_session(path: Path):
    """
    Read an interview session file.

    Expected shape:
        {"role": "...", "interview_type": "...", "tech_stack": [...],
         "duration_minutes": 12, "company": "...",
         "questions": [{"question": "...", "answer": "..."}]}
    ``transcript`` (list of {"role", "content"}) may replace ``questions``.
    """
    from agents.interview.agent import build_interview_request, pair_transcript

    data = json.loads(path.read_text(encoding="utf-8"))
    if "transcript" in data:
        entries = pair_transcript(data["transcript"])
    else:
        entries = data.get("questions", [])
    return build_interview_request(
        entries,
        role=data["role"],
        interview_type=data.get("interview_type", "mixed"),
        tech_stack=data.get("tech_stack", []),
        duration_minutes=data.get("duration_minutes"),
        company=data.get("company"),
    )


def _run_evaluate_interview(args: list[str]) -> None:
    from agents.interview.agent import generate_feedback
    from core.pipeline import build_evaluator

    if len(args) != 1:
        raise ValueError("evaluate-interview requires exactly one session file")
    request = _load_session(Path(args[0]))
    result = generate_feedback(build_evaluator(), request)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


def _run_analyze_resume(args: list[str]) -> None:
    from agents.resume.agent import analyze_resume, build_resume_request
    from core.extract_pdfs import extract_text
    from core.pipeline import build_evaluator

    opts = _parse_resume_args(args)
    job_description = None
    if opts["job_description_file"]:
        job_description = Path(opts["job_description_file"]).read_text(encoding="utf-8")

    request = build_resume_request(
        extract_text(opts["path"]),
        job_title=opts["job_title"],
        job_description=job_description,
        company=opts["company"],
    )
    result = analyze_resume(build_evaluator(), request)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1]

    if command == "serve":
        from app import run_server
        run_server()

    elif command == "init-db":
        from core.db import init_db
        path = init_db()
        print(f"✅ Database initialized at {path}")

    elif command == "db-stats":
        from core.db import get_db_stats

        stats = get_db_stats()
        runs = stats["runs"]
        print(f"DB: {stats['db_path']}")
        print(
            "Runs:"
            f" total={runs.get('total_runs', 0)}"
            f" completed={runs.get('completed_runs') or 0}"
            f" failed={runs.get('failed_runs') or 0}"
            f" cache_hits={runs.get('cache_hits') or 0}"
            f" total_tokens={runs.get('total_tokens') or 0}"
            f" avg_latency_ms={round(runs.get('avg_latency_ms') or 0)}"
        )
        for row in stats["profiles"]:
            avg_score = row.get("avg_score")
            print(
                f"Profile {row['profile']}:"
                f" runs={row['runs']}"
                f" avg_score={round(avg_score, 1) if avg_score is not None else '-'}"
            )

    elif command == "cache-stats":
        from core.cache import EvaluationCache, create_cache_client

        stats = EvaluationCache(create_cache_client()).stats()
        print(
            "Cache:"
            f" enabled={stats['enabled']}"
            f" backend={stats['backend']}"
            f" keys={stats['keys'] if stats['keys'] is not None else '-'}"
        )

    elif command == "evaluate-interview":
        _run_evaluate_interview(sys.argv[2:])

    elif command == "analyze-resume":
        _run_analyze_resume(sys.argv[2:])

    else:
        print(f"Unknown command: {command}")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
