"""Schema for the outcome reported by a send client."""

from pydantic import Field

from core.schemas.base_schema_model import BaseSchemaModel


class SendResult(BaseSchemaModel):
    """Result of one send client call.

    A send client may either return a failed result or raise; the engine
    treats both the same way.
    """

    success: bool = Field(..., description="Whether the provider accepted the message")
    message_id: str | None = Field(None, description="Provider message ID")
    error: str | None = Field(None, description="Provider error message on failure")
    status_code: int | None = Field(
        None, description="HTTP-like status code returned by the provider"
    )
