"""Custom exceptions for the generator."""

from __future__ import annotations


class DatagenError(Exception):
    """Base exception for this project."""


class GenerationError(DatagenError):
    """Raised when the model output cannot be turned into dataset rows."""

    def __init__(self, message: str, *, code: str = "generation_failed"):
        super().__init__(message)
        self.code = code


class SourceError(DatagenError):
    """Raised inside catalog adapters; never escapes a fetcher."""


class RequestValidationError(DatagenError):
    """Raised when a generation request fails schema validation."""

    def __init__(self, message: str, errors: list[dict[str, str]] | None = None):
        super().__init__(message)
        self.errors = errors or []
