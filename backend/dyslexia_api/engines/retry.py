from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(step: float = 0.5) -> Callable[[int], float]:
    """attempt * step seconds (attempt is 1-based)."""
    return lambda attempt: attempt * step


def _retry_everything(_: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry used by the report and chat LLM calls.

    ``run`` awaits ``fn`` up to ``max_attempts`` times. Between attempts it sleeps
    ``backoff(attempt)`` seconds; the sleep is a cancellation point, so a cancelled
    request stops retrying immediately. Errors rejected by ``retry_on`` propagate
    at once; after the last attempt the last error is re-raised.
    """

    max_attempts: int = 3
    backoff: Callable[[int], float] = field(default_factory=linear_backoff)
    retry_on: Callable[[BaseException], bool] = _retry_everything

    async def run(self, fn: Callable[[], Awaitable[T]], *, label: str = "call") -> T:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await fn()
            except Exception as exc:
                if not self.retry_on(exc):
                    raise
                last_error = exc
                logger.warning("%s failed (attempt %d/%d): %s", label, attempt, self.max_attempts, exc)
            if attempt < self.max_attempts:
                await asyncio.sleep(self.backoff(attempt))
        assert last_error is not None
        raise last_error
