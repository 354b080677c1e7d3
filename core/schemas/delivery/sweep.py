"""Schemas for retry queue administration."""

from pydantic import Field

from core.schemas.base_schema_model import BaseSchemaModel


class SweepResponse(BaseSchemaModel):
    """Result of an immediate retry queue sweep."""

    scheduled_count: int = Field(..., ge=0)
    immediate: bool
    message: str


class PurgeRetryResponse(BaseSchemaModel):
    """Result of purging a single pending retry."""

    removed: bool
    recipient_address: str
    message_type: str
