"""
Text-generation client used for query planning and text relevance scoring.

Wraps ``openai.AsyncOpenAI`` (OpenAI cloud, or any compatible endpoint via
``OPENAI_BASE_URL``). Structured calls request a JSON object and parse it;
anything that is not a JSON object raises ``ValueError``.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any, Dict, Optional

import structlog
from openai import AsyncOpenAI

from mediamind.core import config
from mediamind.utils.otel import otel_span
from mediamind.utils.retry import get_llm_retry_decorator

logger = structlog.get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a research assistant for documentary producers. "
    "You always answer with a single JSON object and nothing else."
)


class LLMClient:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout_sec: float = 60.0,
    ) -> None:
        self._api_key = api_key or os.getenv("OPENAI_API_KEY", "")
        self._base_url = base_url or os.getenv("OPENAI_BASE_URL") or None
        self.model = model or config.LLM_MODEL
        self.timeout_sec = timeout_sec
        self._client: Optional[AsyncOpenAI] = None

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise RuntimeError("OPENAI_API_KEY is not set")
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self.timeout_sec,
            )
            logger.info("LLM client initialized", model=self.model, base_url=self._base_url)
        return self._client

    @get_llm_retry_decorator()
    async def _complete_json(self, messages: list, *, model: str, temperature: float) -> str:
        client = self._ensure_client()
        with otel_span("llm.chat_completions", {"model": model, "structured": True}):
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate_structured_output(
        self,
        prompt: str,
        schema: Dict[str, Any],
        *,
        model: Optional[str] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        temperature: float = 0.3,
    ) -> Dict[str, Any]:
        """Generate a JSON object shaped like ``schema``."""
        model = model or self.model
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": f"{prompt}\n\nRespond with JSON matching this schema:\n{json.dumps(schema)}",
            },
        ]
        t0 = time.time()
        raw = await self._complete_json(messages, model=model, temperature=temperature)
        logger.info(
            "Structured output received",
            model=model,
            response_length=len(raw),
            duration_ms=int((time.time() - t0) * 1000),
        )
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse structured output", error=str(e))
            raise ValueError("Structured generation failed") from e
        if not isinstance(parsed, dict):
            raise ValueError("Structured generation returned a non-object")
        return parsed

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
