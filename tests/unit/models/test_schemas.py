"""Tests for the shared response models."""

import pytest
from pydantic import ValidationError

from src.models.schemas import HealthResponse, Movie, TurtleResponse


class TestMovie:
    def test_generates_uuid_id(self):
        movie = Movie(name="Rocky", year=1976, description="Boxing.")
        assert len(movie.id) == 36
        assert movie.id.count("-") == 4

    def test_ids_differ_per_instance(self):
        a = Movie(name="A", year=2000, description="")
        b = Movie(name="A", year=2000, description="")
        assert a.id != b.id

    def test_name_is_required(self):
        with pytest.raises(ValidationError):
            Movie(name="", year=2000, description="")

    def test_serializes_all_fields(self):
        data = Movie(id="x", name="Matrix", year=1999, description="d").model_dump()
        assert data == {"id": "x", "name": "Matrix", "year": 1999, "description": "d"}


def test_turtle_response():
    assert TurtleResponse(message="hi").message == "hi"


def test_health_response():
    resp = HealthResponse(service="s", version="v", status="healthy", uptime_seconds=1.5)
    assert resp.uptime_seconds == 1.5
