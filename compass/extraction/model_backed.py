"""Model-backed extraction over an OpenAI-compatible chat endpoint.

Sends the normalised (and truncated) document text together with a
strict JSON schema and expects back an object whose ``rows`` array holds
one object per task row.  Anything else -- transport errors, non-2xx
responses, non-JSON content, a missing or non-list ``rows`` -- raises an
:class:`~compass.extraction.base.ExtractionError` subclass so that the
fallback combinator can switch to the heuristic strategy.

Calls are synchronous ``httpx`` requests bounded by ``timeout_s``; the
worker processes one job at a time, so there is nothing to overlap.
"""
from __future__ import annotations

import json
import logging
import time

import httpx

from compass.core.settings import PipelineConfig, is_real_api_key
from compass.extraction.base import (
    ExtractionConnectionError,
    ExtractionResponseError,
    ExtractionStrategy,
    ExtractionTimeoutError,
    ExtractionUnavailableError,
    RawRow,
)
from compass.extraction.prompts import SCHEMA_NAME, SYSTEM_PROMPT, TASK_ROW_SCHEMA, USER_PROMPT
from compass.extraction.text import normalize_text

logger = logging.getLogger(__name__)


class ModelBackedExtractor(ExtractionStrategy):
    """Structured extraction delegated to a hosted model.

    Parameters
    ----------
    api_key:
        Bearer credential.  ``None``, empty, or the placeholder value
        means the strategy is unavailable.
    model:
        Model name sent with every request.
    base_url:
        API root, e.g. ``https://api.openai.com/v1``.
    timeout_s:
        Request timeout in seconds.
    max_text_chars:
        Document text is cut to this many characters before sending.
    """

    name = "model"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout_s: int = 60,
        max_text_chars: int = 12000,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.max_text_chars = max_text_chars
        self._last_latency_ms: int | None = None

    @classmethod
    def from_config(cls, config: PipelineConfig) -> ModelBackedExtractor:
        return cls(
            api_key=config.openai_api_key,
            model=config.openai_model,
            base_url=config.openai_base_url,
            timeout_s=config.openai_timeout_s,
            max_text_chars=config.max_text_chars,
        )

    # -- public API ---------------------------------------------------------

    def is_available(self) -> bool:
        return is_real_api_key(self.api_key)

    def extract(self, document_text: str, *, filename: str = "", document_id: str = "") -> list[RawRow]:
        if not self.is_available():
            raise ExtractionUnavailableError("No model credential configured")

        text = normalize_text(document_text)[: self.max_text_chars]
        payload = self._build_payload(text, filename=filename, document_id=document_id)

        start = time.monotonic()
        try:
            response = httpx.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            self._last_latency_ms = int((time.monotonic() - start) * 1000)
            raise ExtractionTimeoutError(
                f"Extraction request timed out after {self.timeout_s}s"
            ) from exc
        except httpx.HTTPError as exc:
            self._last_latency_ms = int((time.monotonic() - start) * 1000)
            raise ExtractionConnectionError(f"Extraction service error: {exc}") from exc

        self._last_latency_ms = int((time.monotonic() - start) * 1000)
        rows = self._parse_rows(response)
        logger.info(
            "Model extraction returned %d rows for %s in %dms",
            len(rows),
            document_id or filename,
            self._last_latency_ms,
        )
        return rows

    @property
    def last_latency_ms(self) -> int | None:
        return self._last_latency_ms

    # -- helpers ------------------------------------------------------------

    def _build_payload(self, text: str, *, filename: str, document_id: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": USER_PROMPT.format(
                        filename=filename,
                        document_id=document_id,
                        document_text=text,
                    ),
                },
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": SCHEMA_NAME,
                    "strict": True,
                    "schema": TASK_ROW_SCHEMA,
                },
            },
        }

    @staticmethod
    def _parse_rows(response: httpx.Response) -> list[RawRow]:
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ExtractionResponseError("Malformed completion envelope") from exc

        if not isinstance(content, str):
            raise ExtractionResponseError("Completion content is not text")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ExtractionResponseError("Completion content is not valid JSON") from exc

        if not isinstance(parsed, dict) or not isinstance(parsed.get("rows"), list):
            raise ExtractionResponseError("Response JSON has no 'rows' array")

        rows = parsed["rows"]
        if not all(isinstance(row, dict) for row in rows):
            raise ExtractionResponseError("Every entry in 'rows' must be an object")
        return rows
