"""Render a ReferenceContext as the prompt block and summarize candidates."""

from __future__ import annotations

from typing import Any

from ..schemas import RankedCandidate, ReferenceContext, SampleResult

MAX_PROMPT_PATTERNS = 5
MAX_PATTERN_EXAMPLES = 2
SUMMARY_DESCRIPTION_CHARS = 100
HIGH_RELEVANCE_SCORE = 50.0

CRITICAL_INSTRUCTIONS = (
    "CRITICAL INSTRUCTIONS:\n"
    "- Use the reference context ONLY to understand typical structure and patterns\n"
    "- DO NOT copy any actual data from the reference sources\n"
    "- Generate 100% original, synthetic data that follows the user's schema\n"
    "- Ensure all generated values are realistic and domain-appropriate\n"
    "- Output ONLY a valid JSON array of objects\n\n"
)


def format_context_for_prompt(context: ReferenceContext | None) -> str:
    """Return the reference block appended to the generation prompt.

    A context without sources renders as ``""`` so callers can concatenate
    unconditionally.
    """
    if context is None or context.is_empty:
        return ""

    lines: list[str] = ["\n\n--- REFERENCE CONTEXT (for structure understanding only) ---\n\n"]

    lines.append("Similar datasets found:\n")
    for idx, source in enumerate(context.reference_sources, start=1):
        lines.append(f"{idx}. {source.name} ({source.source_type})\n")
        lines.append(f"   {source.relevance_summary}\n")
    lines.append("\n")

    if context.column_patterns:
        lines.append("Common column patterns:\n")
        for name, pattern in list(context.column_patterns.items())[:MAX_PROMPT_PATTERNS]:
            line = f"- {name}: {pattern.datatype}"
            if pattern.sample_values:
                examples = ", ".join(format_value(v) for v in pattern.sample_values[:MAX_PATTERN_EXAMPLES])
                line += f" (e.g., {examples})"
            lines.append(line + "\n")
        lines.append("\n")

    if context.semantic_hints:
        lines.append("Recommendations:\n")
        for hint in context.semantic_hints:
            lines.append(f"- {hint}\n")
        lines.append("\n")

    lines.append("--- END REFERENCE CONTEXT ---\n\n")
    lines.append(CRITICAL_INSTRUCTIONS)
    return "".join(lines)


def build_relevance_summary(candidate: RankedCandidate) -> str:
    """Short human-readable line explaining why a candidate was picked."""
    parts: list[str] = []
    if candidate.description:
        parts.append(candidate.description[:SUMMARY_DESCRIPTION_CHARS])
    if candidate.download_count > 1000:
        parts.append(f"{_round_half_up(candidate.download_count / 1000)}k+ downloads")
    if candidate.relevance_score > HIGH_RELEVANCE_SCORE:
        parts.append("highly relevant")
    return " • ".join(parts) or "Related dataset"


def build_sample_summary(sample: SampleResult) -> str:
    return f"{sample.total_rows} sample rows with {len(sample.columns)} columns"


def format_value(value: Any) -> str:
    """Display form of a sample value; whole floats drop their ``.0``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; 2.5k downloads should read as 3k+.
    return int(value + 0.5)
