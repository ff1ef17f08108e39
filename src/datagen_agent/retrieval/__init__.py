"""Retrieval modules."""

from .context_builder import ReferenceContextBuilder, generate_semantic_hints
from .formatting import build_relevance_summary, format_context_for_prompt
from .profiling import extract_column_patterns, extract_sample, infer_column_type, profile_columns
from .ranking import rank_candidates, score_candidate

__all__ = [
    "ReferenceContextBuilder",
    "build_relevance_summary",
    "extract_column_patterns",
    "extract_sample",
    "format_context_for_prompt",
    "generate_semantic_hints",
    "infer_column_type",
    "profile_columns",
    "rank_candidates",
    "score_candidate",
]
