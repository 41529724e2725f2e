"""Extract plain text from resume files (PDF via pymupdf, anything else as UTF-8)."""

from __future__ import annotations

import logging
from pathlib import Path

import pymupdf

logger = logging.getLogger(__name__)


def extract_pdf_text(path: Path) -> str:
    """Text of every page, blocks in reading order, pages separated by a blank line."""
    pages: list[str] = []
    with pymupdf.open(str(path)) as doc:
        for page in doc:
            blocks = page.get_text("blocks", sort=True)
            # Block tuples: (x0, y0, x1, y1, text, block_no, block_type); type 1 is an image.
            lines = [block[4].strip() for block in blocks if block[6] == 0 and block[4].strip()]
            pages.append("\n".join(lines))
        logger.info("Extracted text path=%s pages=%s", path, doc.page_count)
    return "\n\n".join(p for p in pages if p)


def extract_text(path: str | Path) -> str:
    """
    Read a resume file as text.

    Raises FileNotFoundError for a missing file and ValueError when no text
    could be extracted (e.g. a scanned PDF).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Resume file not found: {path}")

    if path.suffix.lower() == ".pdf":
        text = extract_pdf_text(path)
    else:
        text = path.read_text(encoding="utf-8")

    if not text.strip():
        raise ValueError(f"No text could be extracted from {path.name}")
    return text
