"""Receipt OCR backend base class, response parsing, and factory."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import FreshtrackConfig

PROMPT = """\
This image is a photographed grocery receipt.
Transcribe every printed line of the receipt, top to bottom, exactly as
printed. Keep prices, quantities and abbreviations; do not correct spelling.

Return a JSON array of strings, one per line (no other text):
["line 1", "line 2", ...]
"""


class ReceiptOCRBackend(ABC):
    """Abstract base for turning receipt photos into raw text lines."""

    @abstractmethod
    async def extract_lines(self, image_paths: list[str]) -> list[str]:
        """Extract receipt lines from one or more images, in reading order."""
        ...


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        # Remove first and last fence lines
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def parse_lines_response(text: str) -> list[str]:
    """Parse a model response into receipt lines.

    Accepts a JSON array of strings, an object with a ``lines`` array, or
    plain text with one receipt line per row. Blank lines are dropped.
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict):
        data = data.get("lines")
    if isinstance(data, list):
        raw_lines = [item for item in data if isinstance(item, str)]
    else:
        raw_lines = cleaned.splitlines()
    return [line.strip() for line in raw_lines if line.strip()]


def create_backend(config: FreshtrackConfig) -> ReceiptOCRBackend:
    """Create an OCR backend based on configuration."""
    backend_name = config.ocr.backend

    match backend_name:
        case "claude":
            from .claude import ClaudeOCRBackend

            return ClaudeOCRBackend(
                api_key=config.ocr.claude.api_key,
                model=config.ocr.claude.model,
            )
        case "gemini":
            from .gemini import GeminiOCRBackend

            return GeminiOCRBackend(
                api_key=config.ocr.gemini.api_key,
                model=config.ocr.gemini.model,
            )
        case _:
            raise ValueError(
                f"Unknown OCR backend: {backend_name!r} "
                f"(choose claude or gemini)"
            )
