"""Reference context assembly: cache, fetch, rank, sample, summarize."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from ..config import ScoringWeights
from ..constants import MAX_REFERENCE_SOURCES, MAX_SEMANTIC_HINTS
from ..schemas import (
    CandidateSource,
    ColumnPattern,
    RankedCandidate,
    ReferenceContext,
    ReferenceSourceSummary,
    SampleResult,
    ValueExample,
)
from ..sources.base import MetadataSource
from ..storage.cache import CacheService
from ..utils.text import normalize_topic
from .formatting import build_relevance_summary, build_sample_summary, format_value
from .profiling import extract_column_patterns, is_noise_column
from .ranking import rank_candidates

logger = logging.getLogger(__name__)

TOPIC_HINT_GROUPS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("ecommerce", "product", "shop"),
        (
            "Include product identifiers, names, categories, and pricing",
            "Consider inventory levels, ratings, and reviews",
            "Use realistic price ranges for product categories",
        ),
    ),
    (
        ("social", "media", "post"),
        (
            "Include engagement metrics (likes, shares, comments)",
            "Consider temporal patterns (posting times, dates)",
            "Use realistic engagement rate distributions",
        ),
    ),
    (
        ("user", "customer", "account"),
        (
            "Include user identifiers and demographic information",
            "Consider registration dates and activity timestamps",
            "Use realistic email and name formats",
        ),
    ),
    (
        ("sales", "transaction", "order"),
        (
            "Include transaction IDs, amounts, and timestamps",
            "Consider payment methods and order statuses",
            "Use realistic transaction value distributions",
        ),
    ),
)


def generate_semantic_hints(
    topic: str,
    description: str | None,
    column_patterns: dict[str, ColumnPattern],
) -> list[str]:
    """Domain hints keyed on topic words, then column and value-range hints.

    ``description`` is accepted for symmetry with ``build`` but only the topic
    selects keyword groups.
    """
    hints: list[str] = []
    topic_lower = str(topic or "").lower()

    for keywords, group_hints in TOPIC_HINT_GROUPS:
        if any(word in topic_lower for word in keywords):
            hints.extend(group_hints)

    if column_patterns:
        names = list(column_patterns.keys())[:5]
        hints.append(f"Common columns in similar datasets: {', '.join(names)}")

    for name, pattern in column_patterns.items():
        if pattern.value_range is not None:
            low = format_value(pattern.value_range.min)
            high = format_value(pattern.value_range.max)
            hints.append(f"{name}: typical range {low} to {high}")

    return hints[:MAX_SEMANTIC_HINTS]


class ReferenceContextBuilder:
    """Builds a ReferenceContext from an ordered list of catalog sources.

    Source order is priority order. It decides merge order for reference
    sources and which candidate is sampled first, independent of how fast
    each source answers.
    """

    def __init__(
        self,
        sources: Sequence[MetadataSource],
        cache: CacheService,
        *,
        weights_by_source: dict[str, ScoringWeights] | None = None,
        parallel_search: bool = True,
        max_sources: int = MAX_REFERENCE_SOURCES,
    ) -> None:
        self.sources = list(sources)
        self.cache = cache
        self.weights_by_source = dict(weights_by_source or {})
        self.parallel_search = parallel_search
        self.max_sources = max_sources

    def build(self, topic: str, description: str | None = None) -> ReferenceContext:
        """Never raises; any internal failure yields the empty context."""
        try:
            return self._build(topic, description)
        except Exception:
            logger.exception("Error building reference context for %r", topic)
            return ReferenceContext()

    def _build(self, topic: str, description: str | None) -> ReferenceContext:
        if not normalize_topic(topic):
            return ReferenceContext()

        cached = self.cache.get_search_context(topic)
        if isinstance(cached, ReferenceContext):
            logger.info('Using cached reference context for "%s"', topic)
            return cached

        logger.info('Building reference context for: "%s"', topic)
        pools = self._search_all(topic)

        ranked_pools: list[tuple[MetadataSource, list[RankedCandidate]]] = []
        for source, candidates in pools:
            ranked = rank_candidates(
                candidates,
                topic,
                weights=self.weights_by_source.get(source.source_type),
                top_k=self.max_sources,
            )
            if ranked:
                ranked_pools.append((source, ranked))

        sampled = self._first_sample(ranked_pools)
        context = self._assemble(topic, description, ranked_pools, sampled)

        if context.is_empty:
            logger.info('No reference sources found for "%s"', topic)
        else:
            self.cache.set_search_context(topic, context)
            logger.info("Built reference context with %d sources", len(context.reference_sources))
        return context

    def _search_all(self, topic: str) -> list[tuple[MetadataSource, list[CandidateSource]]]:
        if not self.sources:
            return []
        if self.parallel_search and len(self.sources) > 1:
            with ThreadPoolExecutor(max_workers=len(self.sources)) as pool:
                futures = [pool.submit(self._search_one, source, topic) for source in self.sources]
                results = [future.result() for future in futures]
        else:
            results = [self._search_one(source, topic) for source in self.sources]
        return list(zip(self.sources, results))

    @staticmethod
    def _search_one(source: MetadataSource, topic: str) -> list[CandidateSource]:
        try:
            return list(source.search(topic) or [])
        except Exception as exc:
            logger.warning("%s search failed: %s", source.source_type, exc)
            return []

    def _first_sample(
        self,
        ranked_pools: list[tuple[MetadataSource, list[RankedCandidate]]],
    ) -> tuple[RankedCandidate, SampleResult] | None:
        for source, ranked in ranked_pools:
            for candidate in ranked:
                sample = self._sample(source, candidate)
                if sample is not None and sample.sample_rows:
                    return candidate, sample
        return None

    def _sample(self, source: MetadataSource, candidate: RankedCandidate) -> SampleResult | None:
        cached = self.cache.get_sample(source.source_type, candidate.reference)
        if isinstance(cached, SampleResult):
            return cached

        try:
            sample = source.sample(candidate.reference)
        except Exception as exc:
            logger.warning("%s sample failed for %s: %s", source.source_type, candidate.reference, exc)
            return None

        if sample is not None and sample.sample_rows:
            self.cache.set_sample(source.source_type, candidate.reference, sample)
        return sample

    def _assemble(
        self,
        topic: str,
        description: str | None,
        ranked_pools: list[tuple[MetadataSource, list[RankedCandidate]]],
        sampled: tuple[RankedCandidate, SampleResult] | None,
    ) -> ReferenceContext:
        summaries: list[ReferenceSourceSummary] = []
        column_patterns: dict[str, ColumnPattern] = {}
        value_examples: dict[str, ValueExample] = {}

        sampled_key: tuple[str, str] | None = None
        if sampled is not None:
            candidate, sample = sampled
            sampled_key = (candidate.source_type, candidate.reference)
            summaries.append(_summary(candidate, build_sample_summary(sample)))

            column_patterns = {
                name: pattern
                for name, pattern in extract_column_patterns(sample.sample_rows).items()
                if not is_noise_column(name)
            }
            value_examples = {
                col.name: ValueExample(datatype=col.datatype, examples=list(col.sample_values))
                for col in sample.columns
                if not is_noise_column(col.name)
            }

        for _source, ranked in ranked_pools:
            for candidate in ranked:
                if (candidate.source_type, candidate.reference) == sampled_key:
                    continue
                summaries.append(_summary(candidate, build_relevance_summary(candidate)))

        return ReferenceContext(
            reference_sources=summaries[: self.max_sources],
            column_patterns=column_patterns,
            value_examples=value_examples,
            semantic_hints=generate_semantic_hints(topic, description, column_patterns),
        )


def _summary(candidate: RankedCandidate, relevance_summary: str) -> ReferenceSourceSummary:
    return ReferenceSourceSummary(
        source_type=candidate.source_type,
        name=candidate.name,
        url=candidate.url,
        relevance_summary=relevance_summary,
        relevance_score=candidate.relevance_score,
    )
