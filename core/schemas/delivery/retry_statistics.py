"""Schema for retry queue statistics."""

from datetime import datetime

from pydantic import Field

from core.schemas.base_schema_model import BaseSchemaModel


class RetryStatistics(BaseSchemaModel):
    """Retry queue depth and rolling success rate."""

    total_in_queue: int = Field(..., description="Pending retry records", ge=0)
    by_attempt_count: dict[int, int] = Field(
        ..., description="Pending retry records keyed by attempt count"
    )
    oldest_retry: datetime | None = Field(
        None, description="Earliest next_retry_at among pending records"
    )
    retry_rate: float = Field(
        ...,
        description="Retry success percentage over the trailing window",
        ge=0.0,
        le=100.0,
    )
    dead_letter_total: int = Field(..., description="Dead letter records", ge=0)
    dead_lettered_today: int = Field(
        ..., description="Messages dead-lettered in the current day window", ge=0
    )
