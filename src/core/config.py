"""Settings for the turtle-gateway service.

Centralized configuration loaded from environment variables with the
``TURTLE_GATEWAY_`` prefix.  Circuit breaker defaults mirror the values the
demo application shipped with; the ``movie-service`` target carries its own
override.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Turtle gateway configuration.

    All fields can be overridden by environment variables prefixed with
    ``TURTLE_GATEWAY_``.  For example, ``TURTLE_GATEWAY_PORT=9999`` overrides
    the default port.
    """

    # ── Service identity ────────────────────────────────────────────
    SERVICE_NAME: str = "turtle-gateway"
    SERVICE_VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # ── Outbound client ─────────────────────────────────────────────
    BACKEND_URL: str = "http://localhost:8080"
    CLIENT_STARTUP_CALLS: int = 0  # Burst of /slow calls fired once the app is up

    # ── Turtle service latency ──────────────────────────────────────
    TURTLE_MIN_DELAY: int = 0
    TURTLE_MAX_DELAY: int = 10
    TURTLE_DELAY_UNIT_SECONDS: float = 1.0

    # ── Default circuit breaker ─────────────────────────────────────
    CB_SLIDING_WINDOW_SIZE: int = 5
    CB_PERMITTED_CALLS_IN_HALF_OPEN: int = 5
    CB_FAILURE_RATE_THRESHOLD: float = 50.0  # Percent
    CB_SLOW_CALL_RATE_THRESHOLD: float = 50.0  # Percent
    CB_SLOW_CALL_DURATION_SECONDS: float = 60.0
    CB_WAIT_DURATION_IN_OPEN_SECONDS: float = 0.03
    CB_TIMEOUT_SECONDS: float = 1.0

    # ── movie-service override ──────────────────────────────────────
    MOVIE_CB_SLIDING_WINDOW_SIZE: int = 5
    MOVIE_CB_PERMITTED_CALLS_IN_HALF_OPEN: int = 1
    MOVIE_CB_FAILURE_RATE_THRESHOLD: float = 100.0
    MOVIE_CB_SLOW_CALL_RATE_THRESHOLD: float = 200.0  # Clamped to 100 by the breaker config
    MOVIE_CB_WAIT_DURATION_IN_OPEN_SECONDS: float = 0.1

    # ── Extra named overrides (YAML) ────────────────────────────────
    CIRCUIT_BREAKER_CONFIG_PATH: str = ""

    model_config = {
        "env_prefix": "TURTLE_GATEWAY_",
    }
