"""Build the prioritized catalog source list from configuration."""

from __future__ import annotations

import logging

from ..config import AppConfig
from .base import MetadataSource
from .huggingface import HuggingFaceSource
from .kaggle import KaggleSource

logger = logging.getLogger(__name__)


def build_sources(config: AppConfig) -> list[MetadataSource]:
    """Instantiate enabled sources in ``fetch_policy.sources`` order."""
    policy = config.fetch_policy
    out: list[MetadataSource] = []
    for name in policy.sources:
        if name == "kaggle":
            kaggle = KaggleSource(policy=policy, download_dir=config.paths.kaggle_cache_dir)
            if not kaggle.is_available():
                logger.warning("kaggle CLI not found on PATH; Kaggle lookups will return nothing")
            out.append(kaggle)
        elif name == "huggingface":
            out.append(HuggingFaceSource(policy=policy))
        else:
            logger.warning("Unknown metadata source %r ignored", name)
    return out
