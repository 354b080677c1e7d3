"""Schemas for dead letter replay requests."""

from uuid import UUID

from pydantic import Field

from core.constants import MAX_REPLAY_BATCH_SIZE
from core.schemas.base_schema_model import BaseSchemaModel


class ReplayRequest(BaseSchemaModel):
    """Request body for POST /dead-letters/replay."""

    ids: list[UUID] = Field(
        ...,
        min_length=1,
        max_length=MAX_REPLAY_BATCH_SIZE,
        description="Dead letter record IDs to re-inject as retries",
    )


class ReplayResponse(BaseSchemaModel):
    """Per-id outcome of a replay."""

    replayed: list[UUID] = Field(default_factory=list)
    not_found: list[UUID] = Field(default_factory=list)
    failed: list[UUID] = Field(default_factory=list)
