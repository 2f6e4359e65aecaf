"""Wall-clock budget for one analysis request."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RequestBudget:
    """Runs enrichment stages against a shared deadline.

    A stage that would overrun is cancelled and its name recorded in
    ``incomplete``; the caller keeps whatever finished.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.deadline = clock() + seconds
        self.incomplete: list[str] = []

    @property
    def remaining(self) -> float:
        return max(0.0, self.deadline - self._clock())

    async def run(self, section: str, stage: Awaitable[T]) -> T | None:
        remaining = self.remaining
        if remaining <= 0:
            if asyncio.iscoroutine(stage):
                stage.close()
            self._skip(section, "budget already spent")
            return None
        try:
            return await asyncio.wait_for(stage, timeout=remaining)
        except asyncio.TimeoutError:
            self._skip(section, f"exceeded remaining {remaining:.1f}s")
            return None

    def _skip(self, section: str, reason: str) -> None:
        logger.warning(f"Section '{section}' incomplete: {reason}")
        if section not in self.incomplete:
            self.incomplete.append(section)
