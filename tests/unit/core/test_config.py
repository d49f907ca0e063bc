"""Tests for Settings.

Verifies typed defaults, the circuit breaker defaults and the
``TURTLE_GATEWAY_`` environment overrides.
"""

import pytest

from src.core.config import Settings


class TestSettingsDefaults:
    def test_service_identity(self):
        settings = Settings()
        assert settings.SERVICE_NAME == "turtle-gateway"
        assert settings.SERVICE_VERSION == "0.1.0"
        assert settings.HOST == "0.0.0.0"
        assert settings.PORT == 8080

    def test_backend_url_default(self):
        assert Settings().BACKEND_URL == "http://localhost:8080"

    def test_turtle_delay_range(self):
        settings = Settings()
        assert (settings.TURTLE_MIN_DELAY, settings.TURTLE_MAX_DELAY) == (0, 10)

    def test_circuit_breaker_defaults(self):
        settings = Settings()
        assert settings.CB_SLIDING_WINDOW_SIZE == 5
        assert settings.CB_PERMITTED_CALLS_IN_HALF_OPEN == 5
        assert settings.CB_FAILURE_RATE_THRESHOLD == 50.0
        assert settings.CB_SLOW_CALL_RATE_THRESHOLD == 50.0
        assert settings.CB_WAIT_DURATION_IN_OPEN_SECONDS == 0.03

    def test_movie_service_override_defaults(self):
        settings = Settings()
        assert settings.MOVIE_CB_PERMITTED_CALLS_IN_HALF_OPEN == 1
        assert settings.MOVIE_CB_SLOW_CALL_RATE_THRESHOLD == 200.0

    def test_startup_burst_disabled(self):
        assert Settings().CLIENT_STARTUP_CALLS == 0


class TestSettingsEnvOverrides:
    def test_port_override(self, monkeypatch):
        monkeypatch.setenv("TURTLE_GATEWAY_PORT", "9999")
        assert Settings().PORT == 9999

    def test_threshold_override(self, monkeypatch):
        monkeypatch.setenv("TURTLE_GATEWAY_CB_FAILURE_RATE_THRESHOLD", "75.5")
        assert Settings().CB_FAILURE_RATE_THRESHOLD == 75.5

    def test_invalid_int_rejected(self, monkeypatch):
        monkeypatch.setenv("TURTLE_GATEWAY_CB_SLIDING_WINDOW_SIZE", "five")
        with pytest.raises(ValueError):
            Settings()
