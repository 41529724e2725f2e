"""
Versioned prompt loader.

Prompts live as plain-text files under core/prompts/ with the naming
convention:  {name}_v{version}.txt

Templates use ``string.Template`` placeholders ($name), so the JSON
examples inside them need no escaping.

Usage:
    from core.prompts import render_prompt
    text = render_prompt("interview_feedback", version=1, role="Backend Engineer", ...)
"""

from __future__ import annotations

from pathlib import Path
from string import Template

from core.config import get_settings


def load_prompt(name: str, *, version: int = 1, prompts_dir: Path | None = None) -> str:
    """Load a prompt template by name and version number."""
    prompts_dir = prompts_dir or get_settings().prompts_dir
    filename = f"{name}_v{version}.txt"
    path = prompts_dir / filename

    if not path.exists():
        raise FileNotFoundError(
            f"Prompt '{filename}' not found in {prompts_dir}. "
            f"Available: {[p.name for p in prompts_dir.glob('*.txt')]}"
        )

    return path.read_text(encoding="utf-8").strip()


def render_prompt(name: str, /, *, version: int = 1, prompts_dir: Path | None = None, **values: object) -> str:
    """
    Load a template and fill its $placeholders.

    Raises KeyError if the template references a value that was not supplied.
    """
    template = Template(load_prompt(name, version=version, prompts_dir=prompts_dir))
    return template.substitute({k: str(v) for k, v in values.items()})


def list_prompts() -> list[str]:
    """List all available prompt template filenames."""
    prompts_dir = get_settings().prompts_dir
    if not prompts_dir.exists():
        return []
    return sorted(p.name for p in prompts_dir.glob("*.txt"))
