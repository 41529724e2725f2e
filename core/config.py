"""
Centralised configuration for interview-coach.

Reads from .env and exposes a Settings dataclass.
All model names, retry knobs, cache TTLs, and paths live here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# ── locate project root (parent of core/) ────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _default_cache_backend() -> str:
    explicit = os.environ.get("CACHE_BACKEND", "").strip().lower()
    if explicit:
        return explicit
    return "redis" if os.environ.get("REDIS_URL") else "memory"


@dataclass(frozen=True)
class Settings:
    """Immutable app-wide settings.  Instantiate once at startup."""

    # ── LLM (OpenRouter) ──────────────────────────────────────────
    openrouter_api_key: str = field(
        default_factory=lambda: os.environ.get("OPENROUTER_API_KEY", "")
    )
    llm_model: str = field(
        default_factory=lambda: os.environ.get("LLM_MODEL", "google/gemini-2.0-flash-001")
    )
    llm_fast_model: str = field(
        default_factory=lambda: os.environ.get("LLM_FAST_MODEL", "google/gemini-2.0-flash-lite-001")
    )
    llm_fallback_models: str = field(
        default_factory=lambda: os.environ.get("LLM_FALLBACK_MODELS", "")
    )
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 8192
    llm_timeout_seconds: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TIMEOUT_SECONDS", "60"))
    )

    # ── Retry policy ──────────────────────────────────────────────
    llm_max_attempts: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_ATTEMPTS", "3"))
    )
    llm_initial_delay_seconds: float = field(
        default_factory=lambda: float(os.environ.get("LLM_INITIAL_DELAY_SECONDS", "1.0"))
    )
    llm_max_delay_seconds: float = field(
        default_factory=lambda: float(os.environ.get("LLM_MAX_DELAY_SECONDS", "10.0"))
    )
    llm_backoff_multiplier: float = field(
        default_factory=lambda: float(os.environ.get("LLM_BACKOFF_MULTIPLIER", "2.0"))
    )

    # ── Cache (Redis) ─────────────────────────────────────────────
    redis_url: str = field(default_factory=lambda: os.environ.get("REDIS_URL", ""))
    cache_backend: str = field(default_factory=_default_cache_backend)
    redis_socket_timeout_seconds: float = 2.0
    feedback_cache_ttl_seconds: int = field(
        default_factory=lambda: int(
            os.environ.get("FEEDBACK_CACHE_TTL_SECONDS", str(7 * 24 * 60 * 60))
        )
    )
    resume_cache_ttl_seconds: int = field(
        default_factory=lambda: int(
            os.environ.get("RESUME_CACHE_TTL_SECONDS", str(30 * 24 * 60 * 60))
        )
    )

    # ── HTTP service ──────────────────────────────────────────────
    server_host: str = field(
        default_factory=lambda: os.environ.get("SERVER_HOST", "0.0.0.0")
    )
    server_port: int = field(
        default_factory=lambda: int(os.environ.get("SERVER_PORT", "8000"))
    )

    # ── Telemetry ─────────────────────────────────────────────────
    telemetry_enabled: bool = field(
        default_factory=lambda: _env_bool("TELEMETRY_ENABLED", default=True)
    )

    # ── Paths ─────────────────────────────────────────────────────
    project_root: Path = PROJECT_ROOT
    db_path: Path = field(
        default_factory=lambda: PROJECT_ROOT
        / os.environ.get("DB_PATH", "data/interview_coach.db")
    )
    prompts_dir: Path = field(default_factory=lambda: PROJECT_ROOT / "core" / "prompts")
    runs_dir: Path = field(default_factory=lambda: PROJECT_ROOT / "runs")


# ── Singleton accessor ────────────────────────────────────────────
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return (and cache) the global Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
