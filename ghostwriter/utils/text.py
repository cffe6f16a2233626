"""Small text helpers shared by roles, the CLI and the knowledge base."""

from __future__ import annotations

import re
import time

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_NON_ID = re.compile(r"[^a-z0-9_]")
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def slugify(text: str, max_len: int = 80, separator: str = "-") -> str:
    """Lower-case, ASCII-only slug suitable for file names."""
    cleaned = _NON_SLUG.sub(separator, text.lower()).strip(separator)
    return cleaned[:max_len].rstrip(separator)


def section_id_from_title(title: str) -> str:
    """Section ids are the lower-cased title with spaces as underscores and other punctuation dropped."""
    return _NON_ID.sub("", title.lower().replace(" ", "_"))


def document_id_from_title(title: str) -> str:
    """Knowledge-base ids: slugged title plus a nanosecond suffix."""
    base = slugify(title, max_len=50, separator="_") or "document"
    return f"{base}_{time.time_ns()}"


def strip_markdown_json(text: str) -> str:
    """Remove a ```json fence some models wrap structured output in."""
    return _FENCE.sub("", text.strip()).strip()
