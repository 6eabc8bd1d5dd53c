"""Schemas shared by every router: paging and the error envelope."""

from typing import Optional

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Query parameters of list endpoints; use as ``Depends()``."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    per_page: int = Field(default=20, ge=1, le=100, description="Items per page (max 100)")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


class PageMeta(BaseModel):
    """Paging fields carried by every list response."""

    total: int = Field(description="Total number of matching rows")
    page: int = Field(description="Current page number")
    per_page: int = Field(description="Items per page")


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx raised from a PipelineException."""

    detail: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Exception class name, e.g. GateNotSatisfiedError")
    request_id: Optional[str] = Field(default=None, description="X-Request-ID of the failed request")
