"""Response envelope and shared schema pieces."""

import uuid
from datetime import date
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Envelope of every successful JSON response."""

    status: str = "success"
    data: T | None = None
    message: str | None = None
    errors: list[dict[str, Any]] | None = None


class ErrorDetail(BaseModel):
    """One problem, tied to the request field that caused it."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Envelope of every error response."""

    status: str = "error"
    message: str
    errors: list[ErrorDetail] | None = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class WindowMixin(BaseModel):
    """Columns shared by effective-dated rows."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    effective_from: date
    effective_to: date | None = None
    is_active: bool
