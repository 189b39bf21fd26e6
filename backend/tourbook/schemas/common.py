"""
Tourbook Backend — Shared Pydantic Schemas
===========================================

What:  Base model configuration and response models shared by all resources.

Field naming:
    Python attributes are snake_case; the JSON API is camelCase
    (max_group_size ↔ maxGroupSize). Requests accept either spelling.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API schema: camelCase aliases, readable from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "status": "fail",
            "error": "not_found",
            "message": "Can't find /api/v2/tours on this server!",
            "request_id": "1f0c9e2a"
        }
    """
    status: str = Field(description="fail (4xx) or error (5xx)")
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer health checks."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    environment: str = Field(description="NODE_ENV the process runs with")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class ListEnvelope(BaseModel):
    """{"status": "success", "results": n, "data": {"data": [...]}}"""
    status: str = "success"
    results: int
    data: Dict[str, List[Dict[str, Any]]]


class ItemEnvelope(BaseModel):
    """{"status": "success", "data": {"data": {...}}}"""
    status: str = "success"
    data: Dict[str, Dict[str, Any]]
