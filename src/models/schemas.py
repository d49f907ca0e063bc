"""Response models shared by the HTTP layer and the services."""

import uuid

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    service: str
    version: str
    status: str
    uptime_seconds: float


class TurtleResponse(BaseModel):
    """Message produced by the turtle service."""

    message: str


class Movie(BaseModel):
    """A movie in the in-memory catalogue."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    year: int
    description: str
