"""Hugging Face Hub adapter: dataset search plus first-rows sampling."""

from __future__ import annotations

import logging
import re
from typing import Any

import requests

from ..config import FetchPolicy
from ..constants import HF_DATASET_URL, HF_ROWS_API, HF_SEARCH_API
from ..exceptions import SourceError
from ..retrieval.profiling import extract_sample, profile_columns
from ..schemas import CandidateSource, SampleResult
from ..utils.text import sanitize_query

logger = logging.getLogger(__name__)

DATASET_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*(/[A-Za-z0-9][A-Za-z0-9_.\-]*)?$")


class HuggingFaceSource:
    """Public Hub API access; no token is required for public datasets."""

    source_type = "huggingface"

    def __init__(
        self,
        *,
        policy: FetchPolicy | None = None,
        session: requests.Session | None = None,
        search_url: str = HF_SEARCH_API,
        rows_api_base: str = HF_ROWS_API,
    ) -> None:
        self.policy = policy or FetchPolicy()
        self.s = session or requests.Session()
        self.search_url = search_url
        self.rows_api_base = rows_api_base.rstrip("/")

    def search(self, topic: str) -> list[CandidateSource]:
        query = sanitize_query(topic, max_length=self.policy.max_query_length)
        if not query:
            logger.warning("Empty Hugging Face search query after sanitization")
            return []

        logger.info('Searching Hugging Face for: "%s"', query)
        try:
            payload = self._get_json(
                self.search_url,
                params={"search": query, "limit": self.policy.search_limit},
                timeout=self.policy.search_timeout_sec,
            )
        except SourceError as exc:
            logger.warning("Hugging Face search failed: %s", exc)
            return []
        if not isinstance(payload, list):
            logger.warning("Unexpected Hugging Face search payload: %s", type(payload).__name__)
            return []

        candidates: list[CandidateSource] = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            dataset_id = str(item.get("id") or "").strip()
            if not dataset_id:
                continue
            candidates.append(
                CandidateSource(
                    source_type="huggingface",
                    name=dataset_id.split("/")[-1],
                    url=f"{HF_DATASET_URL}/{dataset_id}",
                    reference=dataset_id,
                    description=str(item.get("description") or "").strip(),
                    download_count=_as_float(item.get("downloads")),
                    vote_count=_as_float(item.get("likes")),
                )
            )
        logger.info("Found %d Hugging Face datasets", len(candidates))
        return candidates

    def sample(self, reference: str) -> SampleResult | None:
        dataset_id = str(reference or "").strip()
        if not DATASET_ID_RE.match(dataset_id):
            logger.warning("Refusing Hugging Face sample for %r: invalid dataset id", reference)
            return None

        logger.info("Fetching samples from HF dataset: %s", dataset_id)
        try:
            payload = self._get_json(
                f"{self.rows_api_base}/first-rows",
                params={"dataset": dataset_id, "config": "default", "split": "train"},
                timeout=self.policy.content_timeout_sec,
            )
        except SourceError as exc:
            logger.warning("Failed to fetch HF samples for %s: %s", dataset_id, exc)
            return None
        if not isinstance(payload, dict):
            return None

        raw_rows = payload.get("rows")
        if not isinstance(raw_rows, list) or not raw_rows:
            logger.warning("No rows found in HF dataset: %s", dataset_id)
            return None

        rows = [r.get("row") for r in raw_rows if isinstance(r, dict) and isinstance(r.get("row"), dict)]
        rows = extract_sample(rows, self.policy.hf_sample_row_limit)
        if not rows:
            logger.warning("No row objects in HF first-rows payload: %s", dataset_id)
            return None

        logger.info("Fetched %d sample rows from HF", len(rows))
        return SampleResult(
            file_name=dataset_id,
            total_rows=len(rows),
            columns=profile_columns(rows),
            sample_rows=rows,
        )

    def _get_json(self, url: str, *, params: dict[str, Any], timeout: float) -> Any:
        try:
            r = self.s.get(url, params=params, timeout=timeout)
        except requests.RequestException as exc:
            raise SourceError(f"request to {url} failed: {exc}") from exc
        if r.status_code // 100 != 2:
            raise SourceError(f"request to {url} failed: HTTP {r.status_code}")
        try:
            return r.json()
        except ValueError as exc:
            raise SourceError(f"malformed payload from {url}: {exc}") from exc


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0
