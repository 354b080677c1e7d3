"""Schemas for dead letter queue entries."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from core.schemas.base_schema_model import BaseSchemaModel


class DeadLetterEntry(BaseSchemaModel):
    """A dead letter record as shown to operators."""

    dead_letter_id: UUID = Field(..., description="Dead letter record ID")
    recipient_address: str
    recipient_user_id: str | None = None
    subject: str
    message_type: str
    category: str
    payload: dict[str, Any] = Field(default_factory=dict)
    tags: dict[str, Any] = Field(default_factory=dict)
    final_error: str
    attempt_count: int
    failed_at: datetime
    created_at: datetime


class DeadLetterListResponse(BaseSchemaModel):
    """Page of dead letter entries, newest first."""

    results: list[DeadLetterEntry]
    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
