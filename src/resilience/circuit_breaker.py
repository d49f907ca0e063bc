"""Async circuit breaker with a count-based sliding window.

Implements the three-state circuit breaker per protected target:

    CLOSED    →  (window full and failure/slow rate >= threshold)  →  OPEN
    OPEN      →  (wait duration elapsed)                            →  HALF_OPEN
    HALF_OPEN →  (all permitted trials succeed, slow rate < threshold) →  CLOSED
    HALF_OPEN →  (any trial fails, or slow rate >= threshold)       →  OPEN

Every target name gets its own ``CircuitBreaker`` via
``CircuitBreakerRegistry``, so one misbehaving backend never trips the
circuit of another.  All bookkeeping for a target is serialized by that
breaker's ``asyncio.Lock``; the lock is never held while a protected call
is running.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.core.errors import ShortCircuitedError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class OutcomeKind(str, Enum):
    """Classification of a single protected call."""

    SUCCESS = "success"
    SLOW = "slow"
    FAILURE = "failure"


@dataclass(frozen=True)
class CallOutcome:
    """Result of one protected call as recorded in the sliding window.

    Attributes:
        kind:     ``SUCCESS``, ``SLOW`` (succeeded but too slow) or ``FAILURE``.
        duration: Measured call duration in seconds.
        slow:     True when the duration exceeded the slow-call threshold.
                  A failure can be slow as well.
        message:  Returned value for successful calls.
        error:    Raised error for failed calls.
    """

    kind: OutcomeKind
    duration: float
    slow: bool = False
    message: Any = None
    error: BaseException | None = None

    @property
    def is_failure(self) -> bool:
        return self.kind is OutcomeKind.FAILURE


class CircuitBreakerConfig(BaseModel):
    """Per-target circuit breaker parameters.

    Rate thresholds are percentages and are clamped to ``[0, 100]``, so a
    configured 200% behaves as 100%.

    Attributes:
        sliding_window_size:          Number of outcomes kept while CLOSED.
        permitted_calls_in_half_open: Trial calls admitted while HALF_OPEN.
        failure_rate_threshold:       Failure percentage that opens the circuit.
        slow_call_rate_threshold:     Slow-call percentage that opens the circuit.
        slow_call_duration:           Seconds above which a call counts as slow.
        wait_duration_in_open:        Seconds to stay OPEN before probing.
        timeout:                      Seconds before a call is abandoned
                                      (``None`` disables the limit).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sliding_window_size: int = Field(default=100, ge=1)
    permitted_calls_in_half_open: int = Field(default=10, ge=1)
    failure_rate_threshold: float = 50.0
    slow_call_rate_threshold: float = 100.0
    slow_call_duration: float = Field(default=60.0, ge=0.0)
    wait_duration_in_open: float = Field(default=60.0, ge=0.0)
    timeout: float | None = Field(default=1.0, gt=0.0)

    @field_validator("failure_rate_threshold", "slow_call_rate_threshold")
    @classmethod
    def clamp_percent(cls, v: float) -> float:
        return min(100.0, max(0.0, v))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: CircuitBreakerConfig | None = None) -> CircuitBreakerConfig:
        """Build a config from *data*, filling missing keys from *base*.

        Raises:
            ValidationError: If *data* has unknown keys or badly typed values.
        """
        values = base.model_dump() if base is not None else {}
        values.update(data)
        return cls.model_validate(values)

    def is_slow(self, duration: float) -> bool:
        return duration > self.slow_call_duration


class SlidingWindow:
    """Fixed-capacity ring buffer of the most recent call outcomes.

    Once full, recording a new outcome drops the oldest one.  Rates are
    percentages of the window capacity.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("window size must be at least 1")
        self.size = size
        self._outcomes: deque[CallOutcome] = deque(maxlen=size)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self):
        return iter(self._outcomes)

    def record(self, outcome: CallOutcome) -> None:
        self._outcomes.append(outcome)

    def clear(self) -> None:
        self._outcomes.clear()

    @property
    def is_full(self) -> bool:
        return len(self._outcomes) == self.size

    @property
    def failure_count(self) -> int:
        return sum(1 for o in self._outcomes if o.is_failure)

    @property
    def slow_call_count(self) -> int:
        return sum(1 for o in self._outcomes if o.slow)

    @property
    def failure_rate(self) -> float:
        return self.failure_count * 100.0 / self.size

    @property
    def slow_call_rate(self) -> float:
        return self.slow_call_count * 100.0 / self.size


class CircuitBreaker:
    """Async-safe circuit breaker for a single protected target.

    ``pre_check()`` must be awaited before every call; it returns a permit
    identifying the state generation the call was admitted under.  Hand the
    permit back to ``on_success()`` / ``on_failure()`` so that outcomes of
    calls admitted before a transition are discarded instead of deciding the
    new state.

    Args:
        name:   Target name (for logging/errors).
        config: Breaker parameters; defaults to ``CircuitBreakerConfig()``.
        clock:  Monotonic time source in seconds.
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.clock = clock

        self._state = CircuitState.CLOSED
        self._window = SlidingWindow(self.config.sliding_window_size)
        self._opened_at = 0.0
        self._generation = 0
        self._half_open_admitted = 0
        self._half_open_outcomes = SlidingWindow(self.config.permitted_calls_in_half_open)
        self._lock = asyncio.Lock()

        # Metrics
        self.total_calls = 0
        self.total_successes = 0
        self.total_failures = 0
        self.total_slow_calls = 0
        self.total_rejections = 0

    # ── Public properties ────────────────────────────────────────────

    @property
    def state(self) -> CircuitState:
        """Return the current state, reporting OPEN as HALF_OPEN once the wait is over."""
        if self._state == CircuitState.OPEN and self._wait_elapsed():
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def window(self) -> SlidingWindow:
        return self._window

    @property
    def half_open_admitted(self) -> int:
        return self._half_open_admitted

    # ── Core call wrapper ────────────────────────────────────────────

    async def pre_check(self) -> int:
        """Check whether a call is allowed and return its permit.

        Raises:
            ShortCircuitedError: If the circuit is OPEN, or HALF_OPEN with
                every trial slot already taken.
        """
        async with self._lock:
            if self._state == CircuitState.OPEN and self._wait_elapsed():
                self._transition_to(CircuitState.HALF_OPEN)

            if self._state == CircuitState.OPEN:
                self.total_rejections += 1
                retry_after = self.config.wait_duration_in_open - (self.clock() - self._opened_at)
                raise ShortCircuitedError(self.name, retry_after)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_admitted >= self.config.permitted_calls_in_half_open:
                    self.total_rejections += 1
                    raise ShortCircuitedError(self.name, 0.0)
                self._half_open_admitted += 1

            self.total_calls += 1
            return self._generation

    async def on_success(self, duration: float = 0.0, message: Any = None, permit: int | None = None) -> CallOutcome:
        """Record a completed call, classifying it as SUCCESS or SLOW."""
        slow = self.config.is_slow(duration)
        outcome = CallOutcome(
            kind=OutcomeKind.SLOW if slow else OutcomeKind.SUCCESS,
            duration=duration,
            slow=slow,
            message=message,
        )
        await self.record(outcome, permit)
        return outcome

    async def on_failure(
        self,
        duration: float = 0.0,
        error: BaseException | None = None,
        permit: int | None = None,
    ) -> CallOutcome:
        """Record a failed call."""
        outcome = CallOutcome(
            kind=OutcomeKind.FAILURE,
            duration=duration,
            slow=self.config.is_slow(duration),
            error=error,
        )
        await self.record(outcome, permit)
        return outcome

    async def record(self, outcome: CallOutcome, permit: int | None = None) -> None:
        """Record *outcome* and apply any state transition it triggers."""
        async with self._lock:
            if outcome.is_failure:
                self.total_failures += 1
            else:
                self.total_successes += 1
            if outcome.slow:
                self.total_slow_calls += 1

            if permit is not None and permit != self._generation:
                logger.debug("Discarding stale outcome for '%s' (permit %d, now %d)", self.name, permit, self._generation)
                return

            if self._state == CircuitState.CLOSED:
                self._record_closed(outcome)
            elif self._state == CircuitState.HALF_OPEN:
                self._record_half_open(outcome)

    async def reset(self) -> None:
        """Force-reset the circuit breaker to CLOSED with an empty window."""
        async with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot for health/metrics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "buffered_calls": len(self._window),
            "failure_rate": self._window.failure_rate,
            "slow_call_rate": self._window.slow_call_rate,
            "total_calls": self.total_calls,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "total_slow_calls": self.total_slow_calls,
            "total_rejections": self.total_rejections,
            "config": self.config.model_dump(),
        }

    # ── State machine internals (lock held) ──────────────────────────

    def _wait_elapsed(self) -> bool:
        return self.clock() - self._opened_at >= self.config.wait_duration_in_open

    def _record_closed(self, outcome: CallOutcome) -> None:
        self._window.record(outcome)
        if not self._window.is_full:
            return
        failure_rate = self._window.failure_rate
        slow_rate = self._window.slow_call_rate
        if failure_rate >= self.config.failure_rate_threshold or slow_rate >= self.config.slow_call_rate_threshold:
            logger.warning(
                "Circuit '%s' tripped: failure rate %.1f%%, slow-call rate %.1f%%",
                self.name,
                failure_rate,
                slow_rate,
            )
            self._transition_to(CircuitState.OPEN)

    def _record_half_open(self, outcome: CallOutcome) -> None:
        self._half_open_outcomes.record(outcome)
        if outcome.is_failure:
            self._transition_to(CircuitState.OPEN)
            return

        if not self._half_open_outcomes.is_full:
            return
        if self._half_open_outcomes.slow_call_rate >= self.config.slow_call_rate_threshold:
            self._transition_to(CircuitState.OPEN)
        else:
            self._transition_to(CircuitState.CLOSED)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._generation += 1
        self._window.clear()
        self._half_open_admitted = 0
        self._half_open_outcomes.clear()
        if new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
            logger.warning("Circuit '%s' %s -> %s", self.name, old_state.value, new_state.value)
        else:
            logger.info("Circuit '%s' %s -> %s", self.name, old_state.value, new_state.value)


class CircuitBreakerRegistry:
    """Manages per-target ``CircuitBreaker`` instances.

    Targets without a named override use the default config.

    Usage::

        registry = CircuitBreakerRegistry(CircuitBreakerConfig(sliding_window_size=5))
        registry.configure("movie-service", CircuitBreakerConfig(failure_rate_threshold=100))
        cb = registry.get("turtle-service")
        permit = await cb.pre_check()
        # ... call ...
        await cb.on_success(duration, permit=permit)
    """

    def __init__(self, default_config: CircuitBreakerConfig | None = None, clock: Clock = time.monotonic) -> None:
        self._default = default_config or CircuitBreakerConfig()
        self._clock = clock
        self._overrides: dict[str, CircuitBreakerConfig] = {}
        self._breakers: dict[str, CircuitBreaker] = {}

    @property
    def default_config(self) -> CircuitBreakerConfig:
        return self._default

    def configure_default(self, config: CircuitBreakerConfig) -> None:
        """Replace the default config for targets created from now on."""
        self._default = config

    def configure(self, target_name: str, config: CircuitBreakerConfig) -> None:
        """Register a named override; an existing breaker for the target is rebuilt."""
        self._overrides[target_name] = config
        if self._breakers.pop(target_name, None) is not None:
            logger.info("Rebuilt circuit breaker '%s' with new config", target_name)

    def config_for(self, target_name: str) -> CircuitBreakerConfig:
        return self._overrides.get(target_name, self._default)

    def get(self, target_name: str) -> CircuitBreaker:
        """Return (or create) the circuit breaker for *target_name*."""
        if target_name not in self._breakers:
            self._breakers[target_name] = CircuitBreaker(
                name=target_name,
                config=self.config_for(target_name),
                clock=self._clock,
            )
        return self._breakers[target_name]

    def load_overrides(self, config_path: str | Path) -> int:
        """Register named overrides from a YAML file.

        The file holds a ``circuit_breakers:`` list; each entry has a
        ``name`` plus any ``CircuitBreakerConfig`` field.  Missing fields
        fall back to the default config.

        Returns:
            The number of overrides registered.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the YAML is invalid or an entry is malformed.
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Circuit breaker config not found: {path}")

        try:
            data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("circuit_breakers"), list):
            raise ValueError(f"YAML must contain a top-level 'circuit_breakers' list in {path}")

        count = 0
        for item in data["circuit_breakers"]:
            if not isinstance(item, dict) or not item.get("name"):
                raise ValueError(f"Circuit breaker entry missing 'name' in {path}")
            settings = {k: v for k, v in item.items() if k != "name"}
            try:
                config = CircuitBreakerConfig.from_mapping(settings, base=self._default)
            except ValidationError as exc:
                raise ValueError(f"Invalid circuit breaker '{item['name']}' in {path}: {exc}") from exc
            self.configure(item["name"], config)
            count += 1
        return count

    def names(self) -> set[str]:
        return set(self._breakers)

    def all_snapshots(self) -> list[dict]:
        """Return snapshots for every registered breaker."""
        return [cb.snapshot() for cb in self._breakers.values()]

    async def reset_all(self) -> None:
        """Reset every circuit breaker to CLOSED."""
        for cb in self._breakers.values():
            await cb.reset()
