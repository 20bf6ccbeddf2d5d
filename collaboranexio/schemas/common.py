"""
Common/shared Pydantic schemas.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# Base configuration for all schemas
class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All schemas should inherit from this.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM mode (SQLAlchemy objects)
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class PaginationParams(BaseModel):
    """Query parameters for pagination."""

    skip: int = Field(0, ge=0, description="Number of records to skip")
    limit: int = Field(10, ge=1, le=100, description="Maximum records to return")


T = TypeVar('T')


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response wrapper.

    Usage:
        PaginatedResponse[UserRead](items=users, total=100, skip=0, limit=10)
    """

    items: list[T]
    total: int = Field(..., description="Total number of items")
    skip: int = Field(..., description="Number of items skipped")
    limit: int = Field(..., description="Maximum items per page")

    @property
    def has_next(self) -> bool:
        return self.skip + self.limit < self.total


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope shared by every JSON endpoint.

    Usage:
        ApiResponse[TenantRead](data=tenant, message="Company created")
    """

    success: bool = True
    data: T | None = None
    message: str = ""


class MessageResponse(BaseModel):
    """Envelope without payload."""
    success: bool = True
    data: None = None
    message: str


class ErrorDetail(BaseModel):
    field: str | None = None
    message: str
    type: str | None = None


class ErrorResponse(BaseModel):
    """Error envelope returned by the exception handlers."""

    success: bool = False
    message: str
    field: str | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
