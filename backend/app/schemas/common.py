"""
PlaceShare Backend — Shared Response Schemas
==============================================

What:  Error and health payloads used across all routers.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "unsupported_media_type",
            "message": "Invalid mime type! Allowed types: png, jpeg, jpg",
            "request_id": "550e8400"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service health with the state of each dependency."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder status: available, circuit_open")
    storage: str = Field(description="Asset storage: writable, unwritable")
    uptime_seconds: float = Field(description="Seconds since service started")
