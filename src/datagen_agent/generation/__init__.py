"""Synthetic dataset generation helpers."""

from .openai_provider import (
    LLMCallResult,
    OpenAILLMSettings,
    OpenAIProviderError,
    OpenAITextClient,
)
from .orchestrator import DatasetGenerator
from .prompting import ParseFailure, build_generation_prompt, parse_dataset_rows

__all__ = [
    "DatasetGenerator",
    "LLMCallResult",
    "OpenAILLMSettings",
    "OpenAIProviderError",
    "OpenAITextClient",
    "ParseFailure",
    "build_generation_prompt",
    "parse_dataset_rows",
]
