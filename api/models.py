"""
Response envelope models for the catalog API.

Every endpoint answers with the same envelope:
``{success, data, message?, error?, errors?, totalPages?, currentPage?, total?, count?}``.
Optional keys are omitted when unset; ``data`` is passed through untouched.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PageResult(BaseModel):
    """One page of a listing as returned by the service layer."""
    items: List[Dict[str, Any]] = Field(default_factory=list, description="Documents on this page")
    total: int = Field(..., ge=0, description="Documents matching the filter")
    page: int = Field(..., ge=1, description="Current page number")
    limit: int = Field(..., ge=1, description="Page size")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


class ErrorResponse(BaseModel):
    """Error envelope, documented for OpenAPI."""
    success: bool = Field(False, description="Always false")
    message: str = Field(..., description="Error message")
    error: Optional[str] = Field(None, description="Underlying error detail, only in debug mode")
    errors: Optional[List[Dict[str, str]]] = Field(None, description="Field-level validation errors")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failure or conflict"},
    404: {"model": ErrorResponse, "description": "Entity not found"},
    500: {"model": ErrorResponse, "description": "Server error"},
}


def single(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Envelope for a single entity or computed view."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def paginated(result: PageResult) -> Dict[str, Any]:
    """Envelope for a page of results; totalPages is ceil(total / limit)."""
    return {
        "success": True,
        "data": result.items,
        "totalPages": result.total_pages,
        "currentPage": result.page,
        "total": result.total,
    }


def counted(items: List[Any]) -> Dict[str, Any]:
    """Envelope for an unpaginated list with its length."""
    return {"success": True, "data": items, "count": len(items)}


def acknowledged(message: str) -> Dict[str, Any]:
    """Envelope for writes that return no entity, such as deletes."""
    return {"success": True, "message": message}


def failure(
    message: str,
    error: Optional[str] = None,
    errors: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    """Envelope for any failed request."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if error:
        body["error"] = error
    if errors:
        body["errors"] = errors
    return body
