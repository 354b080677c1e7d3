"""Base pydantic model for the delivery service schemas."""

from pydantic import BaseModel, ConfigDict


class BaseSchemaModel(BaseModel):
    """Common configuration for API bodies, send results and retry policies.

    Schemas validate straight from ORM records (``from_attributes``) and use
    the same snake_case field names as the retry_queue and dead_letter_queue
    columns, so no aliases are generated.
    """

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        extra="ignore",
        str_strip_whitespace=True,
    )
