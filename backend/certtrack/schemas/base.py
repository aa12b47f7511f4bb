"""Base schema configuration."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Rows may come back as ORM objects or mappings
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class RowSchema(BaseSchema):
    """Schema for a row read back from the remote store; unknown columns are ignored."""

    model_config = ConfigDict(extra="ignore")


class StoreState(BaseModel):
    """Base for in-memory store state; replaced wholesale on every transition."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    loading: bool = False
    error: str | None = None
