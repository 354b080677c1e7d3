"""Schema for the retry policy of a delivery category."""

from datetime import timedelta

from pydantic import ConfigDict, Field, model_validator

from core.schemas.base_schema_model import BaseSchemaModel


class RetryPolicy(BaseSchemaModel):
    """Bounds for retrying a failed message.

    max_attempts counts every delivery attempt of a message, including the
    original send, so the default allows the original send plus four retries.
    """

    # Unknown keys in RELIABLE_DELIVERY["POLICIES"] are configuration mistakes
    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(5, ge=1, description="Maximum delivery attempts")
    initial_delay_seconds: float = Field(
        60.0, gt=0, description="Delay before the first retry"
    )
    max_delay_seconds: float = Field(
        3600.0, gt=0, description="Upper bound for any retry delay"
    )
    backoff_multiplier: float = Field(
        2.0, ge=1.0, description="Growth factor between successive delays"
    )
    jitter_fraction: float = Field(
        0.10, ge=0.0, le=1.0, description="Symmetric jitter as a fraction of delay"
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryPolicy":
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ValueError("max_delay_seconds must be >= initial_delay_seconds")
        return self

    @property
    def initial_delay(self) -> timedelta:
        """Delay before the first retry."""
        return timedelta(seconds=self.initial_delay_seconds)

    @property
    def max_delay(self) -> timedelta:
        """Upper bound for any retry delay."""
        return timedelta(seconds=self.max_delay_seconds)
