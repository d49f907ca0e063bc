"""Resilience patterns — circuit breaker and protected-call gateway.

Provides per-target circuit breakers with a count-based sliding window and
a gateway that adds timeouts and fallbacks around outbound calls.
"""

from src.resilience.circuit_breaker import (
    CallOutcome,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
    OutcomeKind,
    SlidingWindow,
)
from src.resilience.gateway import CallRequest, CallResult, ProtectedCallGateway

__all__ = [
    "CallOutcome",
    "CallRequest",
    "CallResult",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    "OutcomeKind",
    "ProtectedCallGateway",
    "SlidingWindow",
]
