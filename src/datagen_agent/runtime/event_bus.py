"""Generation run events: persisted to the event log and fanned out to listeners."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

from ..schemas import GenerationEvent
from ..storage.sqlite_store import DatasetStore
from ..utils.filesystem import utc_now_iso

logger = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]
SEVERITIES = ("info", "warn", "error")


def new_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:12]}"


class RunEvents:
    """Event handle for one generation run.

    Every event it emits carries the run's id; ``stage`` defaults to
    ``generation`` so milestone calls only name what changed.
    """

    def __init__(self, bus: "EventBus", run_id: str) -> None:
        self.bus = bus
        self.run_id = run_id

    def emit(
        self,
        event_type: str,
        message: str,
        *,
        stage: str = "generation",
        severity: str = "info",
        **payload: Any,
    ) -> dict[str, Any]:
        return self.bus.publish(
            GenerationEvent(
                event_type=event_type,
                run_id=self.run_id,
                stage=stage,
                message=message,
                severity=severity if severity in SEVERITIES else "info",
                created_at=utc_now_iso(),
                payload=payload,
            )
        )

    def warn(self, event_type: str, message: str, **kwargs: Any) -> dict[str, Any]:
        return self.emit(event_type, message, severity="warn", **kwargs)

    def fail(self, event_type: str, message: str, **kwargs: Any) -> dict[str, Any]:
        return self.emit(event_type, message, severity="error", **kwargs)


class EventBus:
    """Best-effort publisher for generation milestones.

    A failing store write or listener never reaches the caller; the generation
    request it describes still completes.
    """

    def __init__(self, *, store: DatasetStore | None = None) -> None:
        self.store = store
        self.listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self.listeners:
            self.listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def start_run(self, run_id: str | None = None) -> RunEvents:
        return RunEvents(self, run_id or new_run_id())

    def publish(self, event: GenerationEvent) -> dict[str, Any]:
        row = event.model_dump(mode="json")

        if self.store is not None:
            try:
                self.store.append_event(event.event_type, row)
            except Exception as exc:
                logger.debug("Could not persist %s event: %s", event.event_type, exc)

        for listener in tuple(self.listeners):
            try:
                listener(row)
            except Exception as exc:
                logger.debug("Listener %r rejected %s event: %s", listener, event.event_type, exc)
        return row
