"""Dataset generation orchestration: context, prompt, model call, persistence."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable

from pydantic import ValidationError

from ..config import GenerationPolicy
from ..exceptions import GenerationError, RequestValidationError
from ..retrieval.context_builder import ReferenceContextBuilder
from ..retrieval.formatting import format_context_for_prompt
from ..runtime.event_bus import EventBus, RunEvents
from ..schemas import (
    DatasetRecord,
    DatasetRequest,
    GenerationResult,
    ReferenceContext,
    ReferenceSourceRecord,
)
from ..storage.sqlite_store import DatasetStore
from ..utils.filesystem import utc_now_iso
from .openai_provider import LLMCallResult, OpenAIProviderError, OpenAITextClient
from .prompting import ParseFailure, build_generation_prompt, parse_dataset_rows

logger = logging.getLogger(__name__)

TextGenerator = Callable[[str], str | LLMCallResult]


class DatasetGenerator:
    """Turns a DatasetRequest into persisted synthetic rows.

    The model is called once per request unless ``max_parse_retries`` is raised
    in the policy. Reference context is best-effort: an empty context simply
    leaves the reference block out of the prompt.
    """

    def __init__(
        self,
        *,
        store: DatasetStore,
        context_builder: ReferenceContextBuilder | None = None,
        text_generator: TextGenerator | None = None,
        event_bus: EventBus | None = None,
        policy: GenerationPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.context_builder = context_builder
        self.text_generator = text_generator
        self.event_bus = event_bus or EventBus(store=store)
        self.policy = policy or GenerationPolicy()
        self._sleep = sleep

    def get_reference_context(self, topic: str, description: str | None = None) -> ReferenceContext:
        if self.context_builder is None:
            return ReferenceContext()
        return self.context_builder.build(topic, description)

    def generate_dataset(self, request: DatasetRequest | dict[str, Any]) -> GenerationResult:
        req = _coerce_request(request)
        run = self.event_bus.start_run()
        logger.info("Generating dataset for topic: %s with %d rows", req.topic, req.row_count)

        run.emit(
            "generation.started",
            f"Generation started for {req.topic}",
            topic=req.topic,
            row_count=req.row_count,
            columns=len(req.columns),
        )

        context = ReferenceContext()
        if self.policy.use_reference_context:
            context = self.get_reference_context(req.topic, req.description)
        reference_used = not context.is_empty
        if reference_used:
            logger.info("Reference context built with %d sources", len(context.reference_sources))
        else:
            logger.info("No reference sources found, proceeding with model-only generation")

        run.emit(
            "context.built",
            "Reference context ready" if reference_used else "Reference context empty",
            stage="reference_context",
            reference_used=reference_used,
            sources=[s.name for s in context.reference_sources],
            hints=len(context.semantic_hints),
        )

        prompt = build_generation_prompt(req, reference_block=format_context_for_prompt(context))
        logger.debug("Prompt built: %s...", prompt[:200])

        try:
            rows = self._generate_rows(prompt, run)
        except GenerationError as exc:
            logger.error("Error generating dataset: %s", exc)
            run.fail("generation.failed", str(exc), code=exc.code)
            raise

        if len(rows) != req.row_count:
            logger.warning("Requested %d rows but model returned %d", req.row_count, len(rows))

        created_at = utc_now_iso()
        record = DatasetRecord(
            id=uuid.uuid4().hex,
            topic=req.topic,
            description=req.description,
            columns=req.columns,
            row_count=req.row_count,
            generated_rows=rows,
            reference_sources=[
                ReferenceSourceRecord(**source.model_dump(mode="python"), used_at=created_at)
                for source in context.reference_sources
            ],
            created_at=created_at,
        )
        self.store.insert_dataset(record)
        logger.info("Dataset saved with ID: %s", record.id)

        run.emit(
            "generation.completed",
            f"Generated {len(rows)} rows",
            dataset_id=record.id,
            rows=len(rows),
            requested_rows=req.row_count,
            reference_used=reference_used,
        )

        return GenerationResult(
            dataset_id=record.id,
            rows=rows,
            reference_used=reference_used,
            sources=list(context.reference_sources),
            created_at=created_at,
        )

    def _generate_rows(self, prompt: str, run: RunEvents) -> list[dict[str, Any]]:
        attempts = 1 + max(0, int(self.policy.max_parse_retries))
        last_failure: ParseFailure | None = None

        for attempt in range(attempts):
            if attempt:
                delay = self.policy.retry_backoff_sec * (2 ** (attempt - 1))
                logger.warning("Retrying generation (attempt %d/%d) in %.1fs", attempt + 1, attempts, delay)
                self._sleep(delay)

            text = self._call_model(prompt)
            try:
                rows = parse_dataset_rows(text)
            except ParseFailure as exc:
                last_failure = exc
                logger.warning("Error parsing model response: %s", exc)
                run.warn(
                    "generation.parse_failed",
                    exc.detail,
                    stage=exc.stage,
                    code=exc.code,
                    attempt=attempt + 1,
                )
                continue
            logger.info("Successfully generated %d rows", len(rows))
            return rows

        detail = last_failure.detail if last_failure is not None else "no attempts made"
        code = last_failure.code if last_failure is not None else "generation_failed"
        raise GenerationError(f"Failed to parse AI response: {detail}", code=code)

    def _call_model(self, prompt: str) -> str:
        generator = self.text_generator
        if generator is None:
            try:
                generator = self.text_generator = OpenAITextClient()
            except OpenAIProviderError as exc:
                raise GenerationError(f"Dataset generation failed: {exc}", code="provider_unavailable") from exc

        try:
            value = generator(prompt)
        except Exception as exc:
            raise GenerationError(f"Dataset generation failed: {exc}", code="provider_error") from exc

        if isinstance(value, LLMCallResult):
            return value.text
        return str(value or "")


def _coerce_request(request: DatasetRequest | dict[str, Any]) -> DatasetRequest:
    if isinstance(request, DatasetRequest):
        return request
    try:
        return DatasetRequest.model_validate(request)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": str(err.get("msg", ""))}
            for err in exc.errors()
        ]
        raise RequestValidationError("Invalid generation request", errors) from exc
