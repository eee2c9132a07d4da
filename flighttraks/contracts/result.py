"""Structured error body returned by the API."""

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error from a service call."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, str | int | float | bool | None] | None = None
