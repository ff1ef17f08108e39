"""OpenAI Responses API client used to generate dataset rows."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

ROW_WRITER_INSTRUCTIONS = "You generate synthetic tabular data. Reply with a JSON array only."


class OpenAIProviderError(RuntimeError):
    """Raised when the OpenAI client cannot be built or a call yields no text."""


@dataclass
class OpenAILLMSettings:
    model: str = "gpt-4.1-mini"
    temperature: float = 0.7
    top_p: float = 0.95
    max_output_tokens: int = 8192
    timeout_sec: float = 120.0

    @classmethod
    def from_env(cls) -> "OpenAILLMSettings":
        """Read ``DATAGEN_LLM_*`` overrides; unparseable values keep the default."""
        defaults = cls()
        tokens_raw = str(os.getenv("DATAGEN_LLM_MAX_OUTPUT_TOKENS") or "").strip()
        try:
            tokens = max(256, int(tokens_raw)) if tokens_raw else defaults.max_output_tokens
        except ValueError:
            tokens = defaults.max_output_tokens

        return cls(
            model=str(os.getenv("DATAGEN_LLM_MODEL") or "").strip() or defaults.model,
            temperature=_bounded_env("DATAGEN_LLM_TEMPERATURE", defaults.temperature, 0.0, 2.0),
            top_p=_bounded_env("DATAGEN_LLM_TOP_P", defaults.top_p, 0.0, 1.0),
            max_output_tokens=tokens,
            timeout_sec=_bounded_env("DATAGEN_LLM_TIMEOUT_SEC", defaults.timeout_sec, 5.0, None),
        )


@dataclass
class LLMCallResult:
    text: str
    model: str
    response_id: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)
    refusal: str | None = None


class OpenAITextClient:
    """Callable prompt -> text client; sampling settings are fixed per instance."""

    def __init__(
        self,
        *,
        settings: OpenAILLMSettings | None = None,
        api_key: str | None = None,
    ) -> None:
        self.settings = settings or OpenAILLMSettings.from_env()
        resolved_key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        if not resolved_key:
            raise OpenAIProviderError("OPENAI_API_KEY is not set")

        from openai import OpenAI

        self.client = OpenAI(api_key=resolved_key, timeout=self.settings.timeout_sec)

    def generate(self, prompt: str) -> LLMCallResult:
        s = self.settings
        try:
            response = self.client.responses.create(
                model=s.model,
                instructions=ROW_WRITER_INSTRUCTIONS,
                input=prompt,
                temperature=s.temperature,
                top_p=s.top_p,
                max_output_tokens=s.max_output_tokens,
            )
        except Exception as exc:
            raise OpenAIProviderError(f"OpenAI request failed: {exc}") from exc

        payload = _as_payload(response)
        texts, refusals = _message_parts(payload)
        direct = getattr(response, "output_text", None)
        text = direct.strip() if isinstance(direct, str) and direct.strip() else "\n".join(texts).strip()
        refusal = refusals[0] if refusals else None

        if not text:
            if refusal:
                raise OpenAIProviderError(f"Model refused request: {refusal}")
            raise OpenAIProviderError("OpenAI response carried no output text")

        logger.debug("Model %s returned %d chars", s.model, len(text))
        usage = payload.get("usage")
        return LLMCallResult(
            text=text,
            model=s.model,
            response_id=payload.get("id") or None,
            usage=usage if isinstance(usage, dict) else {},
            refusal=refusal,
        )

    def __call__(self, prompt: str) -> str:
        return self.generate(prompt).text


def _bounded_env(name: str, default: float, low: float, high: float | None) -> float:
    try:
        value = float(os.environ[name])
    except (KeyError, ValueError):
        return default
    value = max(low, value)
    return value if high is None else min(high, value)


def _as_payload(response: Any) -> dict[str, Any]:
    """Plain-dict view of an SDK response object (or of a dict already)."""
    if isinstance(response, dict):
        return response
    dump = getattr(response, "model_dump", None)
    if dump is None:
        return {}
    dumped = dump(mode="python")
    return dumped if isinstance(dumped, dict) else {}


def _message_parts(payload: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Collect output_text and refusal strings from message items."""
    texts: list[str] = []
    refusals: list[str] = []
    for item in payload.get("output") or []:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        for part in item.get("content") or []:
            if not isinstance(part, dict):
                continue
            kind = part.get("type")
            if kind == "output_text" and str(part.get("text") or "").strip():
                texts.append(part["text"])
            elif kind == "refusal" and str(part.get("refusal") or "").strip():
                refusals.append(part["refusal"].strip())
    return texts, refusals
