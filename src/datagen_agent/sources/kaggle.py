"""Kaggle catalog adapter backed by the official ``kaggle`` CLI."""

from __future__ import annotations

import csv
import io
import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable

from ..config import FetchPolicy
from ..constants import DEFAULT_KAGGLE_CACHE_DIR, KAGGLE_DATASET_URL
from ..exceptions import SourceError
from ..schemas import CandidateSource, SampleResult
from ..utils.text import sanitize_query
from .files import sample_data_files

logger = logging.getLogger(__name__)

DATASET_REF_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*/[A-Za-z0-9][A-Za-z0-9_.\-]*$")

Runner = Callable[..., subprocess.CompletedProcess]


def normalize_dataset_ref(ref: str) -> dict[str, str]:
    """Split ``owner/dataset-name`` and build its public URL."""
    value = str(ref or "").strip()
    if not DATASET_REF_RE.match(value):
        raise ValueError("Dataset reference must be in format: owner/dataset-name")
    owner, name = value.split("/", 1)
    return {"owner": owner, "name": name, "ref": value, "url": f"{KAGGLE_DATASET_URL}/{value}"}


def parse_kaggle_list_csv(output: str) -> list[dict[str, Any]]:
    """Parse ``kaggle datasets list --csv`` output.

    The CLI may print version warnings ahead of the header, so parsing starts
    at the ``ref,`` header line.
    """
    lines = str(output or "").splitlines()
    start = next((idx for idx, line in enumerate(lines) if line.strip().lower().startswith("ref,")), None)
    if start is None:
        return []

    reader = csv.DictReader(io.StringIO("\n".join(lines[start:])))
    out: list[dict[str, Any]] = []
    for row in reader:
        ref = str(row.get("ref") or "").strip()
        if not ref:
            continue
        out.append(
            {
                "ref": ref,
                "title": str(row.get("title") or "").strip(),
                "subtitle": str(row.get("subtitle") or "").strip(),
                "size": str(row.get("size") or row.get("totalBytes") or "").strip(),
                "lastUpdated": str(row.get("lastUpdated") or "").strip(),
                "downloadCount": _as_float(row.get("downloadCount")),
                "voteCount": _as_float(row.get("voteCount")),
                "usabilityRating": _as_float(row.get("usabilityRating")),
            }
        )
    return out


class KaggleSource:
    """Search and sample Kaggle datasets through the CLI.

    The CLI reads credentials from ``KAGGLE_USERNAME``/``KAGGLE_KEY`` or
    ``~/.kaggle/kaggle.json``. Arguments are passed as a vector, never through
    a shell, and the query is sanitized first regardless.
    """

    source_type = "kaggle"

    def __init__(
        self,
        *,
        policy: FetchPolicy | None = None,
        download_dir: str | Path = DEFAULT_KAGGLE_CACHE_DIR,
        executable: str = "kaggle",
        runner: Runner = subprocess.run,
    ) -> None:
        self.policy = policy or FetchPolicy()
        self.download_dir = Path(download_dir)
        self.executable = executable
        self._run = runner

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def search(self, topic: str) -> list[CandidateSource]:
        query = sanitize_query(topic, max_length=self.policy.max_query_length)
        if not query:
            logger.warning("Empty Kaggle search query after sanitization")
            return []

        logger.info('Searching Kaggle metadata for: "%s"', query)
        try:
            proc = self._invoke(
                ["datasets", "list", "-s", query, "--csv"],
                timeout=self.policy.search_timeout_sec,
                action="search",
            )
            rows = parse_kaggle_list_csv(proc.stdout)
        except SourceError as exc:
            logger.warning("%s", exc)
            return []
        except csv.Error as exc:
            logger.warning("Malformed Kaggle list output: %s", exc)
            return []

        candidates = [
            CandidateSource(
                source_type="kaggle",
                name=row["title"] or row["ref"],
                url=f"{KAGGLE_DATASET_URL}/{row['ref']}",
                reference=row["ref"],
                description=row["subtitle"],
                download_count=row["downloadCount"],
                vote_count=row["voteCount"],
                usability_rating=row["usabilityRating"],
            )
            for row in rows
        ]
        logger.info("Found %d Kaggle datasets", len(candidates))
        return candidates

    def sample(self, reference: str) -> SampleResult | None:
        try:
            ref = normalize_dataset_ref(reference)
        except ValueError as exc:
            logger.warning("Refusing Kaggle sample for %r: %s", reference, exc)
            return None

        target_dir = self.download_dir / f"{ref['owner']}_{ref['name']}"
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Cannot create Kaggle download dir %s: %s", target_dir, exc)
            return None

        logger.info("Downloading Kaggle dataset: %s", ref["ref"])
        try:
            self._invoke(
                ["datasets", "download", "-d", ref["ref"], "-p", str(target_dir), "--unzip"],
                timeout=self.policy.content_timeout_sec,
                action="download",
            )
        except SourceError as exc:
            logger.warning("%s", exc)
            return None

        try:
            return sample_data_files(
                target_dir,
                row_limit=self.policy.sample_row_limit,
                max_file_bytes=self.policy.max_file_bytes,
            )
        except OSError as exc:
            logger.warning("Failed to sample Kaggle dataset %s: %s", ref["ref"], exc)
            return None

    def _invoke(self, args: list[str], *, timeout: float, action: str) -> subprocess.CompletedProcess:
        command = [self.executable, *args]
        try:
            proc = self._run(command, capture_output=True, text=True, timeout=timeout, check=False)
        except subprocess.TimeoutExpired as exc:
            raise SourceError(f"Kaggle {action} timed out after {timeout:.0f}s") from exc
        except OSError as exc:
            raise SourceError(f"Kaggle CLI unavailable for {action}: {exc}") from exc

        if proc.returncode != 0:
            stderr = str(proc.stderr or "").strip()
            raise SourceError(f"Kaggle {action} failed (exit {proc.returncode}): {stderr[:500]}")
        return proc


def _as_float(value: Any) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
