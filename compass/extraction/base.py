from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

RawRow = dict[str, Any]


class ExtractionError(RuntimeError):
    """Base class for recoverable strategy failures."""


class ExtractionUnavailableError(ExtractionError):
    """Raised when a strategy is not configured (e.g. no API key)."""


class ExtractionConnectionError(ExtractionError, ConnectionError):
    """Raised when the extraction service is unreachable or errors."""


class ExtractionTimeoutError(ExtractionError, TimeoutError):
    """Raised when the extraction service exceeds the configured timeout."""


class ExtractionResponseError(ExtractionError, ValueError):
    """Raised when the service response does not match the row schema."""


class ExtractionStrategy(ABC):
    """One way of turning document text into raw rows."""

    name: str = "base"

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def extract(self, document_text: str, *, filename: str = "", document_id: str = "") -> list[RawRow]:
        """Return raw rows for *document_text*.

        May raise :class:`ExtractionError`; the fallback combinator turns
        that into a heuristic result.
        """


@dataclass
class ExtractionResult:
    rows: list[RawRow]
    strategy: str
    fallback_reason: str | None = None
    attempted: list[str] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.fallback_reason is not None
