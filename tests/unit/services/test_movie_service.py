"""Tests for MovieService lookups."""

import random

import pytest

from src.core.errors import NotFoundError
from src.models.schemas import Movie
from src.services.movie_service import MovieService

CATALOGUE_NAMES = {"Matrix", "The Godfather", "Casablanca", "Rocky"}


@pytest.fixture
def service() -> MovieService:
    return MovieService(rng=random.Random(7))


class TestListing:
    def test_default_catalogue(self, service):
        movies = service.movies()
        assert {m.name for m in movies} == CATALOGUE_NAMES
        assert {m.name: m.year for m in movies}["Casablanca"] == 1942

    def test_listing_is_a_copy(self, service):
        service.movies().clear()
        assert len(service.movies()) == 4

    def test_ids_are_unique(self, service):
        assert len({m.id for m in service.movies()}) == 4


class TestLookups:
    @pytest.mark.parametrize("name", ["rocky", "ROCKY", "Rocky", "rOcKy"])
    def test_by_name_ignores_case(self, service, name):
        assert service.movie_by_name(name).name == "Rocky"

    def test_by_name_is_exact(self, service):
        with pytest.raises(NotFoundError):
            service.movie_by_name("Rock")

    def test_by_name_miss(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.movie_by_name("Jaws")
        assert exc_info.value.key == "Jaws"

    def test_by_id(self, service):
        godfather = service.movie_by_name("the godfather")
        assert service.movie_by_id(godfather.id) is godfather

    def test_by_id_miss(self, service):
        with pytest.raises(NotFoundError):
            service.movie_by_id("c7f399bc-ff4c-4a2f-bddf-d92d53a96df2")

    def test_random_movie_comes_from_catalogue(self, service):
        for _ in range(20):
            assert service.random_movie().name in CATALOGUE_NAMES

    def test_random_movie_on_empty_catalogue(self):
        with pytest.raises(NotFoundError):
            MovieService(movies=[]).random_movie()

    def test_custom_catalogue(self):
        service = MovieService(movies=[Movie(id="1", name="Heat", year=1995, description="Cops and robbers.")])
        assert service.movie_by_id("1").name == "Heat"
