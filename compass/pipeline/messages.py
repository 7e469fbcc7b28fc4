"""Queue message contract: ``{"jobId": str, "documentId": str}``."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MessageError(ValueError):
    """Raised for a queue payload that cannot be turned into a message."""


class QueueMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    job_id: str = Field(alias="jobId", min_length=1)
    document_id: str = Field(alias="documentId", min_length=1)
    type: str = "document-ingest"

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def parse_message(payload: str | bytes) -> QueueMessage:
    """Parse a raw queue payload, raising :class:`MessageError` if malformed."""
    try:
        return QueueMessage.model_validate_json(payload)
    except ValidationError as exc:
        raise MessageError(f"Malformed queue message: {exc.error_count()} error(s)") from exc
