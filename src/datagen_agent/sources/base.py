"""Catalog adapter contract shared by every metadata source."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..schemas import CandidateSource, SampleResult


@runtime_checkable
class MetadataSource(Protocol):
    """Narrow capability over one public dataset catalog.

    Implementations sanitize the topic before it reaches a shell or URL and
    never raise: failures come back as ``[]`` or ``None`` and are only logged.
    """

    source_type: str

    def search(self, topic: str) -> list[CandidateSource]:
        ...

    def sample(self, reference: str) -> SampleResult | None:
        ...
