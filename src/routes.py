"""HTTP routes — greeting, turtle (protected) and movie catalogue endpoints.

Services are wired explicitly by ``src.main.create_app`` and read from
``app.state``; nothing here constructs its own collaborators.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from src.clients.turtle_client import FALLBACK_MESSAGE
from src.models.schemas import Movie
from src.resilience.gateway import CallRequest, ProtectedCallGateway
from src.services.movie_service import MovieService
from src.services.turtle_service import TurtleService

TURTLE_TARGET = "turtle-service"

router = APIRouter()


def get_gateway(request: Request) -> ProtectedCallGateway:
    return request.app.state.gateway


def get_turtle_service(request: Request) -> TurtleService:
    return request.app.state.turtle_service


def get_movie_service(request: Request) -> MovieService:
    return request.app.state.movie_service


# ── Greeting / turtle ──────────────────────────────────────────────────


@router.get("/hello/{name}", response_class=PlainTextResponse)
async def hello(name: str) -> str:
    return f"Hello, {name}!"


@router.get("/slow/{name}", response_class=PlainTextResponse)
async def slow(
    name: str,
    gateway: ProtectedCallGateway = Depends(get_gateway),
    turtle_service: TurtleService = Depends(get_turtle_service),
) -> str:
    """Run ``ready_set_go`` behind the gateway; answers with the fallback on failure."""

    async def ready_set_go(call: CallRequest) -> str:
        response = await turtle_service.ready_set_go(call.argument)
        return response.message

    result = await gateway.protected_call(
        TURTLE_TARGET,
        CallRequest(operation="readySetGo", argument=name),
        ready_set_go,
        lambda call, error: FALLBACK_MESSAGE,
    )
    return result.value


# ── Movies ─────────────────────────────────────────────────────────────


@router.get("/movies/random", response_model=Movie)
async def random_movie(service: MovieService = Depends(get_movie_service)) -> Movie:
    return service.random_movie()


@router.get("/movies/", response_model=None)
async def movies(
    name: str | None = None,
    service: MovieService = Depends(get_movie_service),
) -> Movie | list[Movie]:
    """Full listing, or a single movie when ``?name=`` is given."""
    if name is not None:
        return service.movie_by_name(name)
    return service.movies()


@router.get("/movies/{movie_id}", response_model=Movie)
async def movie_by_id(movie_id: str, service: MovieService = Depends(get_movie_service)) -> Movie:
    return service.movie_by_id(movie_id)


# ── Circuit breaker admin ──────────────────────────────────────────────


@router.get("/circuit-breakers")
async def circuit_breakers(gateway: ProtectedCallGateway = Depends(get_gateway)) -> list[dict]:
    return gateway.circuit_breakers.all_snapshots()


@router.post("/circuit-breakers/reset")
async def reset_circuit_breakers(gateway: ProtectedCallGateway = Depends(get_gateway)) -> list[dict]:
    await gateway.circuit_breakers.reset_all()
    return gateway.circuit_breakers.all_snapshots()
