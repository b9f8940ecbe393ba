"""Base schemas and common types for the policy API."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class WireModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(WireModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(WireModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []
    reason: str | None = None


# =============================================================================
# PAGINATION
# =============================================================================


class Pagination(WireModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedResponse(WireModel):
    """Wrapper for paginated responses."""

    items: list[Any]
    pagination: Pagination
