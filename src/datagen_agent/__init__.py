"""Synthetic dataset generation with reference-context enrichment."""

from .schemas import (
    ColumnDefinition,
    DatasetRecord,
    DatasetRequest,
    GenerationResult,
    ReferenceContext,
    ReferenceSourceSummary,
)

__all__ = [
    "ColumnDefinition",
    "DatasetRecord",
    "DatasetRequest",
    "GenerationResult",
    "ReferenceContext",
    "ReferenceSourceSummary",
]
