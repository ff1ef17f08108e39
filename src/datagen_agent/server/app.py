"""FastAPI app for dataset generation, history and cache control."""

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError as FastAPIRequestValidationError
from fastapi.responses import JSONResponse

from ..config import AppConfig
from ..exceptions import GenerationError, RequestValidationError
from ..retrieval.formatting import format_context_for_prompt
from ..runtime.services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(
    *,
    config: AppConfig | None = None,
    services: Services | None = None,
) -> FastAPI:
    runtime = services or build_services(config)
    store = runtime.store
    generator = runtime.generator
    cache = runtime.cache

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if runtime.config.cache_policy.run_sweeper:
            cache.start()
        yield
        runtime.close()

    app = FastAPI(title="Synthetic Dataset Generator", version="0.1.0", lifespan=lifespan)
    app.state.services = runtime

    @app.exception_handler(FastAPIRequestValidationError)
    async def request_validation_handler(request: Request, exc: FastAPIRequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "errors": jsonable_encoder(exc.errors())},
        )

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/generate", status_code=201)
    def generate(payload: dict[str, Any]) -> dict[str, Any]:
        try:
            result = generator.generate_dataset(payload)
        except RequestValidationError as exc:
            raise HTTPException(status_code=400, detail={"message": str(exc), "errors": exc.errors}) from exc
        except GenerationError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return {
            "success": True,
            "dataset_id": result.dataset_id,
            "generated_data": result.rows,
            "created_at": result.created_at,
            "reference_context": {
                "used": result.reference_used,
                "sources": [s.model_dump(mode="json") for s in result.sources],
            },
        }

    @app.post("/api/reference-context")
    def reference_context(payload: dict[str, Any]) -> dict[str, Any]:
        topic = str(payload.get("topic") or "").strip()
        if not topic:
            raise HTTPException(status_code=400, detail="Missing topic")
        description_raw = payload.get("description")
        description = str(description_raw).strip() if description_raw is not None else None

        context = generator.get_reference_context(topic, description)
        return {
            "success": True,
            "used": not context.is_empty,
            "context": context.model_dump(mode="json"),
            "prompt_block": format_context_for_prompt(context),
        }

    @app.get("/api/datasets")
    def list_datasets(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=100),
        sort_by: Literal["created_at", "topic", "row_count"] = Query(default="created_at"),
        sort_order: Literal["asc", "desc"] = Query(default="desc"),
    ) -> dict[str, Any]:
        total = store.count_datasets()
        rows = store.find_datasets(
            skip=(page - 1) * limit,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        logger.info("Retrieved %d datasets (page %d)", len(rows), page)
        return {
            "success": True,
            "datasets": rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    @app.get("/api/datasets/{dataset_id}")
    def get_dataset(dataset_id: str) -> dict[str, Any]:
        record = store.get_dataset(dataset_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Dataset not found")
        payload = record.model_dump(mode="json")
        payload["dataset_size"] = record.dataset_size
        return {"success": True, "dataset": payload}

    @app.delete("/api/datasets/{dataset_id}")
    def delete_dataset(dataset_id: str) -> dict[str, Any]:
        if not store.delete_dataset(dataset_id):
            raise HTTPException(status_code=404, detail="Dataset not found")
        logger.info("Deleted dataset: %s", dataset_id)
        return {"success": True, "message": "Dataset deleted successfully"}

    @app.get("/api/cache/stats")
    def cache_stats() -> dict[str, Any]:
        return cache.stats()

    @app.delete("/api/cache")
    def clear_cache() -> dict[str, Any]:
        cache.clear_all()
        return {"success": True}

    @app.get("/api/events/recent")
    def recent_events(
        limit: int = Query(default=100, ge=1, le=500),
        run_id: str | None = Query(default=None),
    ) -> dict[str, Any]:
        records = store.list_event_records(limit=limit, run_id=run_id)
        return {
            "count": len(records),
            "events": [row["payload"] for row in records],
        }

    return app
