"""
Pydantic schemas for the HTTP API.

Field names follow the wire contract callers already use (``sessionId``),
so they are camelCase rather than snake_case.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Request body for POST /api/mcp.

    Both fields are optional at the schema level so that a missing value is
    reported with the API's own 400 error body instead of a validation error.
    """

    sessionId: Optional[str] = Field(default=None, description="Caller session id")
    query: Optional[str] = Field(default=None, description="The user's message")

    model_config = {
        "json_schema_extra": {
            "example": {"sessionId": "user-123", "query": "How many deliveries this week?"}
        }
    }


class QueryResponse(BaseModel):
    """Successful orchestration result."""

    result: str = Field(..., description="Model output with tool-call annotations")


class ErrorResponse(BaseModel):
    """Error body for 400 and 500 responses."""

    error: str


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""

    status: Literal["healthy", "unhealthy"]
    version: str
    tools: list[str] = Field(default_factory=list, description="Tools in the catalog")
    sessions: int = Field(default=0, description="Sessions held in memory")
