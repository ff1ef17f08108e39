"""SQLite persistence for generated datasets and pipeline events."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Literal

from ..constants import DEFAULT_DB_PATH
from ..schemas import DatasetRecord
from ..utils.filesystem import utc_now_iso

SortField = Literal["created_at", "topic", "row_count"]
SortOrder = Literal["asc", "desc"]

SORTABLE_COLUMNS: dict[str, str] = {
    "created_at": "created_at",
    "topic": "topic COLLATE NOCASE",
    "row_count": "row_count",
}


class DatasetStore:
    """SQLite-backed document store for generated datasets and the event log."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS datasets (
                    id TEXT PRIMARY KEY,
                    topic TEXT NOT NULL,
                    description TEXT NOT NULL,
                    columns_json TEXT NOT NULL,
                    row_count INTEGER NOT NULL,
                    generated_rows_json TEXT NOT NULL,
                    dataset_size INTEGER NOT NULL,
                    reference_sources_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_datasets_created_at ON datasets(created_at);

                CREATE TABLE IF NOT EXISTS event_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_type TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )

    def insert_dataset(self, record: DatasetRecord) -> str:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO datasets(
                    id, topic, description, columns_json, row_count,
                    generated_rows_json, dataset_size, reference_sources_json, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.topic,
                    record.description,
                    json.dumps([c.model_dump(mode="json") for c in record.columns], ensure_ascii=False),
                    record.row_count,
                    json.dumps(record.generated_rows, ensure_ascii=False, default=str),
                    record.dataset_size,
                    json.dumps([s.model_dump(mode="json") for s in record.reference_sources], ensure_ascii=False),
                    record.created_at,
                ),
            )
        return record.id

    def get_dataset(self, dataset_id: str) -> DatasetRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM datasets WHERE id = ?", (dataset_id,)).fetchone()
        if row is None:
            return None
        return _record_from_row(row)

    def find_datasets(
        self,
        *,
        skip: int = 0,
        limit: int = 10,
        sort_by: SortField = "created_at",
        sort_order: SortOrder = "desc",
    ) -> list[dict[str, Any]]:
        """Page through datasets without their generated rows."""
        column = SORTABLE_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        direction = "ASC" if sort_order == "asc" else "DESC"

        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT id, topic, description, columns_json, row_count, dataset_size,
                       reference_sources_json, created_at
                FROM datasets
                ORDER BY {column} {direction}, id {direction}
                LIMIT ? OFFSET ?
                """,
                (max(0, int(limit)), max(0, int(skip))),
            ).fetchall()
        return [_summary_from_row(row) for row in rows]

    def count_datasets(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM datasets").fetchone()
        return int(row["n"] if row else 0)

    def delete_dataset(self, dataset_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM datasets WHERE id = ?", (dataset_id,))
        return cur.rowcount > 0

    def append_event(self, event_type: str, payload: dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO event_log(event_type, payload_json, created_at) VALUES (?, ?, ?)",
                (event_type, json.dumps(payload, ensure_ascii=False, default=str), utc_now_iso()),
            )

    def list_event_records(self, *, limit: int = 100, run_id: str | None = None) -> list[dict[str, Any]]:
        """Most recent events first; ``run_id`` filters on the payload's run id."""
        query = "SELECT id, event_type, payload_json, created_at FROM event_log"
        params: list[Any] = []
        if run_id:
            query += " WHERE json_extract(payload_json, '$.run_id') = ?"
            params.append(run_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(max(1, int(limit)))

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        out: list[dict[str, Any]] = []
        for row in rows:
            try:
                payload = json.loads(row["payload_json"])
            except json.JSONDecodeError:
                payload = {}
            out.append(
                {
                    "id": row["id"],
                    "event_type": row["event_type"],
                    "payload": payload,
                    "created_at": row["created_at"],
                }
            )
        return out


def _summary_from_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "topic": row["topic"],
        "description": row["description"],
        "columns": _loads_list(row["columns_json"]),
        "row_count": row["row_count"],
        "dataset_size": row["dataset_size"],
        "reference_sources": _loads_list(row["reference_sources_json"]),
        "created_at": row["created_at"],
    }


def _record_from_row(row: sqlite3.Row) -> DatasetRecord:
    return DatasetRecord.model_validate(
        {
            "id": row["id"],
            "topic": row["topic"],
            "description": row["description"],
            "columns": _loads_list(row["columns_json"]),
            "row_count": row["row_count"],
            "generated_rows": _loads_list(row["generated_rows_json"]),
            "reference_sources": _loads_list(row["reference_sources_json"]),
            "created_at": row["created_at"],
        }
    )


def _loads_list(raw: str | None) -> list[Any]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return value if isinstance(value, list) else []
