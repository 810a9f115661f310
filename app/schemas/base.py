"""Shared pydantic configuration: snake_case in Python, camelCase on the wire."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for response bodies serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(BaseModel):
    """Plain confirmation message (e.g. after a delete)."""

    message: str


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Stable error label, e.g. 'Not Found'")
    message: str = Field(..., description="Human-readable description")
    details: list[dict[str, Any]] | None = Field(
        default=None, description="Field-level validation errors, when present"
    )
