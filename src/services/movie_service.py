"""MovieService — lookups against a fixed in-memory catalogue."""

from __future__ import annotations

import random

from src.core.errors import NotFoundError
from src.models.schemas import Movie


def _default_catalogue() -> list[Movie]:
    return [
        Movie(
            name="Matrix",
            year=1999,
            description=(
                "A computer hacker learns from mysterious rebels about the true nature "
                "of his reality and his role in the war against its controllers."
            ),
        ),
        Movie(
            name="The Godfather",
            year=1972,
            description=(
                "The aging patriarch of an organized crime dynasty transfers control "
                "of his clandestine empire to his reluctant son."
            ),
        ),
        Movie(
            name="Casablanca",
            year=1942,
            description=(
                "A cynical American expatriate struggles to decide whether or not he should "
                "help his former lover and her fugitive husband escape French Morocco."
            ),
        ),
        Movie(
            name="Rocky",
            year=1976,
            description=(
                "A small-time boxer gets a supremely rare chance to fight a heavy-weight "
                "champion in a bout in which he strives to go the distance for his self-respect."
            ),
        ),
    ]


class MovieService:
    """Read-only access to the movie catalogue.

    Args:
        movies: Catalogue to serve; defaults to the four built-in classics.
        rng:    Random source for ``random_movie``.
    """

    def __init__(self, movies: list[Movie] | None = None, rng: random.Random | None = None) -> None:
        self._movies = list(movies) if movies is not None else _default_catalogue()
        self._rng = rng or random.Random()

    def movies(self) -> list[Movie]:
        return list(self._movies)

    def random_movie(self) -> Movie:
        if not self._movies:
            raise NotFoundError("Movie", "random")
        return self._rng.choice(self._movies)

    def movie_by_name(self, name: str) -> Movie:
        """Return the movie whose name matches *name*, ignoring case."""
        wanted = name.casefold()
        for movie in self._movies:
            if movie.name.casefold() == wanted:
                return movie
        raise NotFoundError("Movie", name)

    def movie_by_id(self, movie_id: str) -> Movie:
        for movie in self._movies:
            if movie.id == movie_id:
                return movie
        raise NotFoundError("Movie", movie_id)
