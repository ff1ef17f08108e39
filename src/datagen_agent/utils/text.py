"""Topic and query text utilities."""

from __future__ import annotations

import re


WHITESPACE_RE = re.compile(r"\s+")
UNSAFE_QUERY_RE = re.compile(r"[^a-zA-Z0-9 _,\-]")


def normalize_topic(topic: str | None) -> str:
    """Cache-key form of a topic: trimmed and lower-cased."""
    return str(topic or "").strip().lower()


def significant_words(text: str) -> list[str]:
    """Lower-cased words longer than two characters, in order."""
    return [word for word in WHITESPACE_RE.split(text.lower()) if len(word) > 2]


def sanitize_query(text: str | None, *, max_length: int = 200) -> str:
    """Strip everything outside ``[A-Za-z0-9 _,-]`` and cap the length.

    Output is safe to pass as a CLI argument or URL query value.
    """
    if not isinstance(text, str) or not text:
        return ""
    cleaned = UNSAFE_QUERY_RE.sub("", text).strip()
    return cleaned[:max_length].strip()
