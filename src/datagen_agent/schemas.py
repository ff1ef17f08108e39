"""Pydantic schemas for pipeline payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import SUPPORTED_DATATYPES

SourceType = Literal["kaggle", "huggingface"]
InferredDatatype = Literal[
    "string",
    "integer",
    "float",
    "boolean",
    "date",
    "email",
    "phone",
    "url",
    "address",
    "name",
    "percentage",
    "currency",
]


class ColumnDefinition(BaseModel):
    name: str
    datatype: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Column name is required")
        return value

    @field_validator("datatype")
    @classmethod
    def datatype_supported(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in SUPPORTED_DATATYPES:
            raise ValueError(f"Invalid datatype: {value}. Supported types: {', '.join(SUPPORTED_DATATYPES)}")
        return value


class DatasetRequest(BaseModel):
    topic: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    columns: list[ColumnDefinition] = Field(min_length=1, max_length=50)
    row_count: int = Field(ge=1, le=1000)
    sample_data: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("topic", "description", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class CandidateSource(BaseModel):
    source_type: SourceType
    name: str
    url: str
    reference: str
    description: str = ""
    download_count: float = 0.0
    vote_count: float = 0.0
    usability_rating: float = 0.0


class RankedCandidate(CandidateSource):
    relevance_score: float = 0.0


class ColumnProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    datatype: InferredDatatype
    sample_values: list[Any] = Field(default_factory=list, max_length=3)


class SampleResult(BaseModel):
    file_name: str
    total_rows: int
    columns: list[ColumnProfile] = Field(default_factory=list)
    sample_rows: list[dict[str, Any]] = Field(default_factory=list)


class ValueRange(BaseModel):
    min: float
    max: float
    avg: float


class ColumnPattern(BaseModel):
    datatype: InferredDatatype
    sample_values: list[Any] = Field(default_factory=list)
    unique_count: int = 0
    null_count: int = 0
    value_range: ValueRange | None = None


class ValueExample(BaseModel):
    datatype: InferredDatatype
    examples: list[Any] = Field(default_factory=list)


class ReferenceSourceSummary(BaseModel):
    source_type: SourceType
    name: str
    url: str
    relevance_summary: str = ""
    relevance_score: float | None = None


class ReferenceSourceRecord(ReferenceSourceSummary):
    used_at: str


class ReferenceContext(BaseModel):
    """Structured reference material handed to the prompt formatter.

    The default instance is the empty context: downstream code formats it to an
    empty string rather than special-casing ``None``.
    """

    model_config = ConfigDict(frozen=True)

    reference_sources: list[ReferenceSourceSummary] = Field(default_factory=list, max_length=3)
    column_patterns: dict[str, ColumnPattern] = Field(default_factory=dict)
    value_examples: dict[str, ValueExample] = Field(default_factory=dict)
    semantic_hints: list[str] = Field(default_factory=list, max_length=10)

    @property
    def is_empty(self) -> bool:
        return not self.reference_sources


class DatasetRecord(BaseModel):
    id: str
    topic: str
    description: str
    columns: list[ColumnDefinition]
    row_count: int
    generated_rows: list[dict[str, Any]] = Field(default_factory=list)
    reference_sources: list[ReferenceSourceRecord] = Field(default_factory=list)
    created_at: str

    @property
    def dataset_size(self) -> int:
        return len(self.generated_rows)


class GenerationResult(BaseModel):
    dataset_id: str
    rows: list[dict[str, Any]]
    reference_used: bool
    sources: list[ReferenceSourceSummary] = Field(default_factory=list)
    created_at: str


class GenerationEvent(BaseModel):
    event_type: str
    run_id: str
    stage: str
    message: str
    severity: Literal["info", "warn", "error"] = "info"
    created_at: str
    payload: dict[str, Any] = Field(default_factory=dict)
