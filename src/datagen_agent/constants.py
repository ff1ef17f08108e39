"""Project-wide constants."""

from __future__ import annotations

from pathlib import Path

DEFAULT_DB_PATH = Path("data/datagen_agent.db")
DEFAULT_KAGGLE_CACHE_DIR = Path("kaggle-cache")

KAGGLE_DATASET_URL = "https://www.kaggle.com/datasets"
HF_SEARCH_API = "https://huggingface.co/api/datasets"
HF_ROWS_API = "https://datasets-server.huggingface.co"
HF_DATASET_URL = "https://huggingface.co/datasets"

SEARCH_CACHE_TTL_SEC = 60 * 60
SAMPLE_CACHE_TTL_SEC = 60 * 60 * 24

SEARCH_TIMEOUT_SEC = 30.0
CONTENT_TIMEOUT_SEC = 60.0
MAX_QUERY_LENGTH = 200

MAX_REFERENCE_SOURCES = 3
MAX_SEMANTIC_HINTS = 10

# Semantic datatypes a user may request for a column.
SUPPORTED_DATATYPES = (
    "string",
    "number",
    "integer",
    "float",
    "boolean",
    "date",
    "email",
    "phone",
    "url",
    "address",
    "name",
    "percentage",
    "currency",
)

# Column-name fragments that mark structural (non-generative) columns.
NOISE_COLUMN_MARKERS = ("id", "timestamp", "created", "updated")
