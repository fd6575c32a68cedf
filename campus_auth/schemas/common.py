"""
Common schema types used across the API.
"""

from typing import Optional
from pydantic import BaseModel, computed_field


class ErrorResponse(BaseModel):
    """
    Standard error response.

    ``message`` mirrors ``detail``; the CampusSync front-end reads
    ``message`` from failed auth calls.
    """
    
    detail: str
    code: Optional[str] = None
    field: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        return self.detail


class HealthResponse(BaseModel):
    """Health check response."""
    
    status: str = "ok"
    version: str
    database: str = "connected"
