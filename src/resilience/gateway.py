"""Protected-call gateway — circuit breaking, timeout and fallback.

``ProtectedCallGateway.protected_call()`` decides per target whether to
attempt a call, runs it under the target's timeout, records the outcome in
the target's circuit breaker and falls back when the call is skipped or
fails.  Errors from the underlying call never escape the gateway: callers
always get either the real value or the fallback's value.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.core.errors import CallTimeoutError, ShortCircuitedError, UnderlyingFailureError
from src.resilience.circuit_breaker import CallOutcome, CircuitBreakerRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallRequest:
    """Identifies the target operation and its argument."""

    operation: str
    argument: str | None = None


@dataclass
class CallResult:
    """What a caller gets back from ``protected_call``.

    Attributes:
        value:           Real response, or the fallback's value.
        short_circuited: True when the circuit rejected the call outright.
        fallback_used:   True whenever ``value`` came from the fallback.
        outcome:         Recorded outcome, ``None`` for short-circuited calls.
        error:           Why the fallback was used, if it was.
    """

    value: Any
    short_circuited: bool = False
    fallback_used: bool = False
    outcome: CallOutcome | None = None
    error: Exception | None = None


UnderlyingCall = Callable[[CallRequest], Awaitable[Any]]
Fallback = Callable[[CallRequest, Exception], Any]


class ProtectedCallGateway:
    """Wraps outbound calls with per-target circuit breakers.

    Args:
        registry: Source of the per-target ``CircuitBreaker`` instances and
                  their configs (timeout, thresholds).
    """

    def __init__(self, registry: CircuitBreakerRegistry) -> None:
        self._registry = registry

    @property
    def circuit_breakers(self) -> CircuitBreakerRegistry:
        """Expose circuit breaker registry for health/metrics endpoints."""
        return self._registry

    async def protected_call(
        self,
        target_name: str,
        request: CallRequest,
        underlying_call: UnderlyingCall,
        fallback: Fallback,
    ) -> CallResult:
        """Call ``underlying_call(request)`` under *target_name*'s breaker.

        Args:
            target_name:     Circuit breaker name.
            request:         Passed to both the underlying call and the fallback.
            underlying_call: Async callable doing the real work.
            fallback:        ``fallback(request, error)``, sync or async.

        Returns:
            A ``CallResult``.  Only errors raised by the fallback itself
            propagate.
        """
        cb = self._registry.get(target_name)
        try:
            permit = await cb.pre_check()
        except ShortCircuitedError as exc:
            value = await self._apply_fallback(fallback, request, exc)
            return CallResult(value=value, short_circuited=True, fallback_used=True, error=exc)

        timeout = cb.config.timeout
        start = cb.clock()
        try:
            value = await asyncio.wait_for(underlying_call(request), timeout=timeout)
        except asyncio.TimeoutError:
            error: Exception = CallTimeoutError(target_name, timeout)
        except Exception as exc:
            error = UnderlyingFailureError(target_name, exc)
        except BaseException as exc:
            # Cancellation, KeyboardInterrupt and friends: record, then let it propagate.
            await cb.on_failure(cb.clock() - start, exc, permit)
            raise
        else:
            outcome = await cb.on_success(cb.clock() - start, value, permit)
            return CallResult(value=value, outcome=outcome)

        outcome = await cb.on_failure(cb.clock() - start, error, permit)
        value = await self._apply_fallback(fallback, request, error)
        return CallResult(value=value, fallback_used=True, outcome=outcome, error=error)

    async def _apply_fallback(self, fallback: Fallback, request: CallRequest, error: Exception) -> Any:
        logger.warning("-----> !!! %s", error)
        value = fallback(request, error)
        if inspect.isawaitable(value):
            value = await value
        return value
