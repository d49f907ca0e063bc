"""TurtleService — a backend with deliberately variable latency.

Each call sleeps for a pseudo-random number of time units before
answering, which makes it a convenient target for the protected-call
gateway's timeout and slow-call handling.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable

from src.core.errors import MissingArgumentError
from src.models.schemas import TurtleResponse

logger = logging.getLogger(__name__)

LatencyProvider = Callable[[], int]


class RandomLatency:
    """Pick a delay uniformly from the inclusive range ``[min_delay, max_delay]``."""

    def __init__(self, min_delay: int = 0, max_delay: int = 10, rng: random.Random | None = None) -> None:
        if min_delay < 0 or min_delay > max_delay:
            raise ValueError(f"Invalid delay range: {min_delay}..{max_delay}")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._rng = rng or random.Random()

    def __call__(self) -> int:
        return self._rng.randint(self.min_delay, self.max_delay)


class TurtleService:
    """Answers ``ready_set_go`` after a simulated delay.

    Args:
        latency_provider: Returns the delay, in time units, for the next call.
        delay_unit:       Seconds per time unit.
    """

    def __init__(self, latency_provider: LatencyProvider | None = None, delay_unit: float = 1.0) -> None:
        self._latency = latency_provider or RandomLatency()
        self._delay_unit = delay_unit

    async def ready_set_go(self, name: str | None) -> TurtleResponse:
        """Sleep for the provided delay, then return the greeting.

        Raises:
            MissingArgumentError: If *name* is ``None`` or empty.
        """
        if not name:
            raise MissingArgumentError("name")

        delay = self._latency()
        await asyncio.sleep(delay * self._delay_unit)
        response = TurtleResponse(message=f"{name} Ready, set, go!! this call took {delay}")
        logger.info("<-- TurtleService : %s", response.message)
        return response
