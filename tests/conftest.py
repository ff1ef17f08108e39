"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable

import pytest

from datagen_agent.config import kaggle_weights, huggingface_weights
from datagen_agent.retrieval.context_builder import ReferenceContextBuilder
from datagen_agent.retrieval.profiling import profile_columns
from datagen_agent.schemas import CandidateSource, SampleResult
from datagen_agent.storage.cache import CacheService
from datagen_agent.storage.sqlite_store import DatasetStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """In-memory MetadataSource recording every call."""

    def __init__(
        self,
        source_type: str,
        candidates: list[CandidateSource] | None = None,
        samples: dict[str, SampleResult] | None = None,
        *,
        fail_search: bool = False,
        delay_sec: float = 0.0,
    ) -> None:
        self.source_type = source_type
        self.candidates = list(candidates or [])
        self.samples = dict(samples or {})
        self.fail_search = fail_search
        self.delay_sec = delay_sec
        self.search_calls: list[str] = []
        self.sample_calls: list[str] = []

    def search(self, topic: str) -> list[CandidateSource]:
        self.search_calls.append(topic)
        if self.delay_sec:
            time.sleep(self.delay_sec)
        if self.fail_search:
            raise RuntimeError("catalog unavailable")
        return list(self.candidates)

    def sample(self, reference: str) -> SampleResult | None:
        self.sample_calls.append(reference)
        return self.samples.get(reference)


def candidate(
    reference: str,
    *,
    source_type: str = "kaggle",
    name: str | None = None,
    description: str = "",
    downloads: float = 0.0,
    votes: float = 0.0,
    usability: float = 0.0,
) -> CandidateSource:
    return CandidateSource(
        source_type=source_type,
        name=name or reference.split("/")[-1],
        url=f"https://example.org/{reference}",
        reference=reference,
        description=description,
        download_count=downloads,
        vote_count=votes,
        usability_rating=usability,
    )


def sample_result(rows: list[dict[str, Any]], *, file_name: str = "data.csv") -> SampleResult:
    return SampleResult(
        file_name=file_name,
        total_rows=len(rows),
        columns=profile_columns(rows),
        sample_rows=rows,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(fake_clock: FakeClock) -> CacheService:
    service = CacheService(search_ttl_sec=3600, sample_ttl_sec=86400, clock=fake_clock)
    yield service
    service.close()


@pytest.fixture
def store(tmp_path: Path) -> DatasetStore:
    return DatasetStore(tmp_path / "datasets.db")


@pytest.fixture
def make_source() -> Callable[..., FakeSource]:
    return FakeSource


@pytest.fixture
def make_candidate() -> Callable[..., CandidateSource]:
    return candidate


@pytest.fixture
def make_sample() -> Callable[..., SampleResult]:
    return sample_result


@pytest.fixture
def make_builder(cache: CacheService) -> Callable[..., ReferenceContextBuilder]:
    def _build(sources: list[Any], *, parallel_search: bool = False) -> ReferenceContextBuilder:
        return ReferenceContextBuilder(
            sources,
            cache,
            weights_by_source={"kaggle": kaggle_weights(), "huggingface": huggingface_weights()},
            parallel_search=parallel_search,
        )

    return _build


@pytest.fixture
def shop_rows() -> list[dict[str, Any]]:
    return [
        {"product_id": "1", "product_name": "Desk Lamp", "price": "19.99", "in_stock": "true"},
        {"product_id": "2", "product_name": "Office Chair", "price": "149.50", "in_stock": "false"},
        {"product_id": "3", "product_name": "Notebook", "price": "3.25", "in_stock": "true"},
    ]
