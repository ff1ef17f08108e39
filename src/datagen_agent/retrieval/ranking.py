"""Weighted relevance ranking of catalog candidates against a topic."""

from __future__ import annotations

import logging
from typing import Sequence

from ..config import ScoringWeights
from ..constants import MAX_REFERENCE_SOURCES
from ..schemas import CandidateSource, RankedCandidate
from ..utils.text import significant_words

logger = logging.getLogger(__name__)


def score_candidate(
    candidate: CandidateSource,
    topic: str,
    *,
    weights: ScoringWeights,
) -> float:
    """Score one candidate; the result is only comparable within one ranking call.

    Both keyword signals use the topic words alone, divided by the topic word count.
    """
    topic_lower = topic.strip().lower()
    topic_words = significant_words(topic_lower)
    word_total = max(len(topic_words), 1)

    title = candidate.name.lower()
    candidate_description = (candidate.description or "").lower()

    score = 0.0
    if topic_lower and topic_lower in title:
        score += weights.exact_phrase

    title_matches = sum(1 for word in topic_words if word in title)
    score += (title_matches / word_total) * weights.title_words

    if weights.description_words and candidate_description:
        desc_matches = sum(1 for word in topic_words if word in candidate_description)
        score += (desc_matches / word_total) * weights.description_words

    popularity = (
        min(max(candidate.download_count, 0.0) / weights.download_threshold, 10.0)
        + min(max(candidate.vote_count, 0.0) / weights.vote_threshold, 10.0)
    ) / 20.0
    score += popularity * weights.popularity

    usability = min(max(candidate.usability_rating, 0.0), 1.0)
    score += usability * weights.usability

    return round(score, 2)


def rank_candidates(
    candidates: Sequence[CandidateSource],
    topic: str,
    *,
    weights: ScoringWeights | None = None,
    top_k: int = MAX_REFERENCE_SOURCES,
) -> list[RankedCandidate]:
    """Return the ``top_k`` candidates by descending score.

    Equal scores keep their fetch order.
    """
    if not candidates:
        return []

    active_weights = weights or ScoringWeights()
    scored = [
        RankedCandidate(
            **candidate.model_dump(mode="python", exclude={"relevance_score"}),
            relevance_score=score_candidate(candidate, topic, weights=active_weights),
        )
        for candidate in candidates
    ]
    ranked = sorted(scored, key=lambda item: item.relevance_score, reverse=True)[: max(0, top_k)]

    logger.info(
        "Top ranked datasets: %s",
        ", ".join(f"{item.reference} ({item.relevance_score})" for item in ranked),
    )
    return ranked
