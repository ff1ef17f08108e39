"""CSV/JSON sample file parsing for downloaded catalog content."""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any

from ..retrieval.profiling import extract_sample, profile_columns
from ..schemas import SampleResult

logger = logging.getLogger(__name__)

DATA_FILE_SUFFIXES = (".csv", ".json")


def parse_csv_text(text: str) -> list[dict[str, Any]]:
    reader = csv.DictReader(io.StringIO(text))
    rows: list[dict[str, Any]] = []
    for row in reader:
        # Overflow cells land under the None key.
        cleaned = {key: value for key, value in row.items() if key is not None}
        if any(str(value or "").strip() for value in cleaned.values()):
            rows.append(cleaned)
    return rows


def parse_json_text(text: str) -> list[dict[str, Any]]:
    """Parse a JSON array of objects, or an object holding one such array."""
    data = json.loads(text)
    if isinstance(data, dict):
        array_value = next((value for value in data.values() if isinstance(value, list)), None)
        data = array_value if array_value is not None else [data]
    if not isinstance(data, list):
        raise ValueError("JSON file must contain an array of objects")
    return [row for row in data if isinstance(row, dict)]


def parse_sample_file(path: str | Path) -> list[dict[str, Any]]:
    """Parse a CSV or JSON file into row dicts."""
    p = Path(path)
    suffix = p.suffix.lower()
    text = p.read_text(encoding="utf-8", errors="replace")
    if suffix == ".csv":
        return parse_csv_text(text)
    if suffix == ".json":
        return parse_json_text(text)
    raise ValueError(f"Unsupported file type: {suffix or p.name}")


def sample_data_files(
    directory: str | Path,
    *,
    row_limit: int = 50,
    max_file_bytes: int = 10 * 1024 * 1024,
) -> SampleResult | None:
    """Sample the first parseable CSV/JSON file found under ``directory``."""
    root = Path(directory)
    if not root.is_dir():
        return None

    candidates = sorted(p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in DATA_FILE_SUFFIXES)
    if not candidates:
        logger.warning("No CSV or JSON files found in %s", root)
        return None

    for path in candidates:
        size = path.stat().st_size
        if size > max_file_bytes:
            logger.warning("Skipping large file: %s (%d bytes)", path.name, size)
            continue
        try:
            rows = parse_sample_file(path)
        except (OSError, ValueError, csv.Error) as exc:
            logger.warning("Failed to parse %s: %s", path.name, exc)
            continue
        if not rows:
            continue

        sample_rows = extract_sample(rows, row_limit)
        return SampleResult(
            file_name=path.name,
            total_rows=len(rows),
            columns=profile_columns(sample_rows),
            sample_rows=sample_rows,
        )
    return None
