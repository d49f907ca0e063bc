"""FastAPI application entrypoint.

Builds the circuit breaker registry, the protected-call gateway and the
backend services from ``Settings`` and wires them into the app explicitly.
Provides ``/health``, request-ID middleware and a structured error handler
for every ``TurtleGatewayError``.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from src.clients.turtle_client import TurtleClient
from src.core.config import Settings
from src.core.errors import StructuredErrorResponse, TurtleGatewayError, status_code_for
from src.models.schemas import HealthResponse
from src.resilience.circuit_breaker import CircuitBreakerConfig, CircuitBreakerRegistry
from src.resilience.gateway import ProtectedCallGateway
from src.routes import router
from src.services.movie_service import MovieService
from src.services.turtle_service import RandomLatency, TurtleService

logger = logging.getLogger(__name__)

MOVIE_TARGET = "movie-service"


def build_registry(settings: Settings) -> CircuitBreakerRegistry:
    """Create the registry with the default config and named overrides."""
    default = CircuitBreakerConfig(
        sliding_window_size=settings.CB_SLIDING_WINDOW_SIZE,
        permitted_calls_in_half_open=settings.CB_PERMITTED_CALLS_IN_HALF_OPEN,
        failure_rate_threshold=settings.CB_FAILURE_RATE_THRESHOLD,
        slow_call_rate_threshold=settings.CB_SLOW_CALL_RATE_THRESHOLD,
        slow_call_duration=settings.CB_SLOW_CALL_DURATION_SECONDS,
        wait_duration_in_open=settings.CB_WAIT_DURATION_IN_OPEN_SECONDS,
        timeout=settings.CB_TIMEOUT_SECONDS,
    )
    registry = CircuitBreakerRegistry(default)
    registry.configure(
        MOVIE_TARGET,
        CircuitBreakerConfig.from_mapping(
            {
                "sliding_window_size": settings.MOVIE_CB_SLIDING_WINDOW_SIZE,
                "permitted_calls_in_half_open": settings.MOVIE_CB_PERMITTED_CALLS_IN_HALF_OPEN,
                "failure_rate_threshold": settings.MOVIE_CB_FAILURE_RATE_THRESHOLD,
                "slow_call_rate_threshold": settings.MOVIE_CB_SLOW_CALL_RATE_THRESHOLD,
                "wait_duration_in_open": settings.MOVIE_CB_WAIT_DURATION_IN_OPEN_SECONDS,
            },
            base=default,
        ),
    )
    if settings.CIRCUIT_BREAKER_CONFIG_PATH:
        count = registry.load_overrides(settings.CIRCUIT_BREAKER_CONFIG_PATH)
        logger.info("Loaded %d circuit breaker overrides from %s", count, settings.CIRCUIT_BREAKER_CONFIG_PATH)
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    client: TurtleClient | None = None
    burst: asyncio.Task | None = None
    if settings.CLIENT_STARTUP_CALLS > 0:
        client = TurtleClient(settings.BACKEND_URL, app.state.gateway, target_name=MOVIE_TARGET)
        burst = asyncio.create_task(client.call_many(settings.CLIENT_STARTUP_CALLS))
        logger.info("Fired %d start-up calls against %s", settings.CLIENT_STARTUP_CALLS, settings.BACKEND_URL)
    yield
    if burst is not None:
        burst.cancel()
        try:
            await burst
        except asyncio.CancelledError:
            pass
    if client is not None:
        await client.close()


def create_app(
    settings: Settings | None = None,
    *,
    turtle_service: TurtleService | None = None,
    movie_service: MovieService | None = None,
    registry: CircuitBreakerRegistry | None = None,
) -> FastAPI:
    """Build the FastAPI app; collaborators may be injected for tests."""
    settings = settings or Settings()
    start_time = time.monotonic()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = ProtectedCallGateway(registry or build_registry(settings))
    app.state.turtle_service = turtle_service or TurtleService(
        RandomLatency(settings.TURTLE_MIN_DELAY, settings.TURTLE_MAX_DELAY),
        delay_unit=settings.TURTLE_DELAY_UNIT_SECONDS,
    )
    app.state.movie_service = movie_service or MovieService()

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        """Assign or preserve a unique request ID on every request."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(TurtleGatewayError)
    async def gateway_error_handler(request: Request, exc: TurtleGatewayError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "")
        body = StructuredErrorResponse.from_exception(exc, request_id)
        return JSONResponse(status_code=status_code_for(exc), content=body.model_dump())

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Return service health with name, version, status, and uptime."""
        return HealthResponse(
            service=settings.SERVICE_NAME,
            version=settings.SERVICE_VERSION,
            status="healthy",
            uptime_seconds=round(time.monotonic() - start_time, 2),
        )

    app.include_router(router)
    return app


settings = Settings()
logging.basicConfig(level=settings.LOG_LEVEL)

app = create_app(settings)


def run() -> None:
    """Serve ``app`` with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
