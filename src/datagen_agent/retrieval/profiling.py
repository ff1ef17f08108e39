"""Sample extraction and column datatype inference for reference rows."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Sequence

from ..constants import NOISE_COLUMN_MARKERS
from ..schemas import ColumnPattern, ColumnProfile, ValueRange

BOOLEAN_RE = re.compile(r"^(true|false|yes|no|0|1)$", re.IGNORECASE)
NUMBER_RE = re.compile(r"^-?[0-9]+\.?[0-9]*$")
DATE_PREFIX_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_RE = re.compile(r"^https?://")
PHONE_RE = re.compile(r"^[0-9\s\-+()]+$")

PATTERN_SAMPLE_SIZE = 3


def extract_sample(rows: Sequence[dict[str, Any]] | None, limit: int) -> list[dict[str, Any]]:
    """Return the first ``limit`` rows, preserving order."""
    if not rows or limit <= 0:
        return []
    return list(rows[:limit])


def infer_column_type(values: Iterable[Any] | None) -> str:
    """Infer a semantic datatype from raw column values.

    Boolean and numeric rules require every present value to match; the date,
    email, url and phone rules fire when any single value matches, checked in
    that order.
    """
    present = [_as_text(v) for v in (values or []) if not _is_missing(v)]
    if not present:
        return "string"

    if all(BOOLEAN_RE.match(v) for v in present):
        return "boolean"

    if all(NUMBER_RE.match(v) for v in present):
        return "float" if any("." in v for v in present) else "integer"

    if any(DATE_PREFIX_RE.match(v) for v in present):
        return "date"
    if any(EMAIL_RE.match(v) for v in present):
        return "email"
    if any(URL_RE.match(v) for v in present):
        return "url"
    if any(PHONE_RE.match(v) and len(v) >= 10 for v in present):
        return "phone"
    return "string"


def profile_columns(rows: Sequence[dict[str, Any]]) -> list[ColumnProfile]:
    """Build one ColumnProfile per key of the first row."""
    if not rows:
        return []
    out: list[ColumnProfile] = []
    for name in rows[0].keys():
        values = [row.get(name) for row in rows]
        out.append(
            ColumnProfile(
                name=str(name),
                datatype=infer_column_type(values),
                sample_values=values[:PATTERN_SAMPLE_SIZE],
            )
        )
    return out


def extract_column_patterns(rows: Sequence[dict[str, Any]]) -> dict[str, ColumnPattern]:
    """Summarize each column of ``rows``: datatype, counts, examples, numeric range."""
    if not rows:
        return {}

    patterns: dict[str, ColumnPattern] = {}
    for name in rows[0].keys():
        values = [row.get(name) for row in rows if row.get(name) is not None]
        if not values:
            continue
        patterns[str(name)] = ColumnPattern(
            datatype=infer_column_type(values),
            sample_values=values[:PATTERN_SAMPLE_SIZE],
            unique_count=len({_as_text(v) for v in values}),
            null_count=len(rows) - len(values),
            value_range=value_range(values),
        )
    return patterns


def value_range(values: Sequence[Any]) -> ValueRange | None:
    """Min/max/avg when more than half of the values are numeric."""
    numbers: list[float] = []
    for value in values:
        if isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            numbers.append(number)

    if not numbers or len(numbers) <= len(values) * 0.5:
        return None
    return ValueRange(min=min(numbers), max=max(numbers), avg=sum(numbers) / len(numbers))


def is_noise_column(name: str) -> bool:
    """Identifier and bookkeeping columns carry no generative signal."""
    lowered = name.lower()
    return any(marker in lowered for marker in NOISE_COLUMN_MARKERS)


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
