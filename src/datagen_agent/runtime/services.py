"""Wire store, cache, sources and generator from one AppConfig."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import AppConfig
from ..generation.orchestrator import DatasetGenerator, TextGenerator
from ..retrieval.context_builder import ReferenceContextBuilder
from ..sources.base import MetadataSource
from ..sources.registry import build_sources
from ..storage.cache import CacheService
from ..storage.sqlite_store import DatasetStore
from .event_bus import EventBus


@dataclass
class Services:
    config: AppConfig
    store: DatasetStore
    event_bus: EventBus
    cache: CacheService
    context_builder: ReferenceContextBuilder
    generator: DatasetGenerator

    def close(self) -> None:
        self.cache.close()


def build_services(
    config: AppConfig | None = None,
    *,
    store: DatasetStore | None = None,
    cache: CacheService | None = None,
    sources: list[MetadataSource] | None = None,
    text_generator: TextGenerator | None = None,
) -> Services:
    cfg = config or AppConfig.from_env()
    sqlite_store = store or DatasetStore(cfg.paths.db_path)
    bus = EventBus(store=sqlite_store)
    cache_service = cache or CacheService(
        search_ttl_sec=cfg.cache_policy.search_ttl_sec,
        sample_ttl_sec=cfg.cache_policy.sample_ttl_sec,
        sweep_divisor=cfg.cache_policy.sweep_divisor,
        max_entries=cfg.cache_policy.max_entries,
    )
    builder = ReferenceContextBuilder(
        build_sources(cfg) if sources is None else sources,
        cache_service,
        weights_by_source=cfg.source_weights,
        parallel_search=cfg.fetch_policy.parallel_search,
    )
    generator = DatasetGenerator(
        store=sqlite_store,
        context_builder=builder,
        text_generator=text_generator,
        event_bus=bus,
        policy=cfg.generation_policy,
    )
    return Services(
        config=cfg,
        store=sqlite_store,
        event_bus=bus,
        cache=cache_service,
        context_builder=builder,
        generator=generator,
    )
