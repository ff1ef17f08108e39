"""Generation prompt builder and strict parser for model row output."""

from __future__ import annotations

import json
import re
from typing import Any, Literal

from ..schemas import DatasetRequest

ParseErrorCode = Literal[
    "empty_output",
    "no_json_array",
    "json_decode_error",
    "empty_array",
    "row_not_object",
]

SAMPLE_ROWS_IN_PROMPT = 3
CODE_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

DATATYPE_GUIDE = """   - string: text values
   - number/integer/float: numeric values
   - boolean: true or false
   - date: ISO 8601 format (YYYY-MM-DD or full timestamp)
   - email: valid email addresses
   - phone: valid phone numbers with country code
   - url: valid URLs starting with http:// or https://
   - address: complete street addresses
   - name: realistic full names
   - percentage: numeric values between 0-100
   - currency: numeric values with 2 decimal places"""


class ParseFailure(ValueError):
    """Strict parse failure with standardized stage/code metadata."""

    def __init__(self, *, stage: str, code: ParseErrorCode, detail: str) -> None:
        self.stage = stage
        self.code = code
        self.detail = detail
        super().__init__(f"[{stage}:{code}] {detail}")


def build_generation_prompt(request: DatasetRequest, *, reference_block: str = "") -> str:
    """Render the single prompt sent to the model for one request."""
    column_lines = "\n".join(
        f"{idx}. {col.name} ({col.datatype})" for idx, col in enumerate(request.columns, start=1)
    )
    prompt = (
        "You are a professional data generator. Generate a realistic dataset based on the following "
        "specifications:\n\n"
        f"**Topic:** {request.topic}\n\n"
        f"**Description:** {request.description}\n\n"
        f"**Columns:**\n{column_lines}\n\n"
        f"**Number of Rows:** {request.row_count}\n\n"
    )

    if request.sample_data:
        sample = json.dumps(request.sample_data[:SAMPLE_ROWS_IN_PROMPT], ensure_ascii=False, indent=2)
        prompt += f"**Sample Data for Reference:**\n{sample}\n\n"

    if reference_block:
        prompt += reference_block.strip("\n") + "\n\n"

    prompt += (
        "**Instructions:**\n"
        f"1. Generate EXACTLY {request.row_count} rows of realistic data\n"
        "2. Each row must be a JSON object with keys matching the column names exactly\n"
        "3. Ensure data types match the specified column datatypes:\n"
        f"{DATATYPE_GUIDE}\n\n"
        "4. Make the data realistic and contextually relevant to the topic\n"
        "5. Ensure variety in the generated data (avoid repetitive patterns)\n"
        "6. Return ONLY a valid JSON array of objects, no additional text, explanation or code fences\n\n"
        "**Output Format:**\n"
        "[\n"
        '  { "column1": "value1", "column2": "value2", ... },\n'
        '  { "column1": "value1", "column2": "value2", ... },\n'
        "  ...\n"
        "]\n\n"
        "Generate the dataset now:"
    )
    return prompt


def parse_dataset_rows(raw_text: str, *, stage: str = "generation") -> list[dict[str, Any]]:
    """Parse model output into a non-empty list of row objects.

    Code fences are dropped and the first balanced JSON array is parsed.
    Anything else raises ParseFailure.
    """
    text = str(raw_text or "").strip()
    if not text:
        raise ParseFailure(stage=stage, code="empty_output", detail="Model output is empty")

    cleaned = CODE_FENCE_RE.sub("", text)
    fragment = _extract_json_array(cleaned)
    if fragment is None:
        raise ParseFailure(stage=stage, code="no_json_array", detail="No JSON array found in response")

    try:
        payload = json.loads(fragment)
    except json.JSONDecodeError as exc:
        raise ParseFailure(
            stage=stage,
            code="json_decode_error",
            detail=f"{exc.msg} (line={exc.lineno}, col={exc.colno})",
        ) from exc

    if not payload:
        raise ParseFailure(stage=stage, code="empty_array", detail="Generated dataset is empty")

    bad = next((idx for idx, row in enumerate(payload) if not isinstance(row, dict)), None)
    if bad is not None:
        raise ParseFailure(
            stage=stage,
            code="row_not_object",
            detail=f"Row {bad} is {type(payload[bad]).__name__}, expected object",
        )
    return payload


def _extract_json_array(text: str) -> str | None:
    start = text.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
                continue
            if ch == "\\":
                escaped = True
                continue
            if ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            continue
        if ch == "[":
            depth += 1
            continue
        if ch == "]":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None
