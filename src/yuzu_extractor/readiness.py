"""
Readiness sequence: make lazily rendered content real before extraction.

MathJax in the reader only typesets formulas that come near the viewport,
leaving ``<mjx-lazy>`` placeholders everywhere else. The conductor scrolls the
document top to bottom in small steps, waits for the placeholders to drain,
lets the typesetter finish and waits for images.

Every wait is bounded. Timeouts are races between an operation and a timer:
the losing operation is left running, never cancelled, and whatever it does
later is ignored.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Any, Awaitable, Optional

import structlog

from .config.config import ReadinessConfig
from .models import TimeoutExceeded
from .protocols import ScrollTarget

logger = structlog.get_logger(__name__)


async def _pause(ms: float) -> None:
    await asyncio.sleep(max(ms, 0) / 1000)


def _consume_result(task: "asyncio.Future[Any]") -> None:
    if not task.cancelled():
        task.exception()


async def race(awaitable: Awaitable[Any], timeout: float) -> bool:
    """
    Wait for ``awaitable`` for at most ``timeout`` seconds.

    Returns:
        True if it finished in time (successfully or not), False otherwise
    """
    task = asyncio.ensure_future(awaitable)
    task.add_done_callback(_consume_result)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    return bool(done)


class ReadinessConductor:
    """Drives the scroll-and-poll sequence over a ``ScrollTarget``."""

    def __init__(self, config: Optional[ReadinessConfig] = None) -> None:
        self.config = config or ReadinessConfig()

    async def run(self, target: ScrollTarget, step_delay_ms: Optional[int] = None) -> None:
        """Run the whole sequence. Never raises; every step is best-effort."""
        delay = self.config.default_step_delay_ms if step_delay_ms is None else step_delay_ms
        started = time.monotonic()

        await self._best_effort("scroll", self.scroll_through(target, delay))
        await self._best_effort("lazy_placeholders", self.drain_placeholders(target))
        await self._best_effort("return_to_top", self._return_to_top(target))
        await self._best_effort("typesetter", self.await_typesetter(target))
        await self._best_effort("images", self.await_images(target))
        await _pause(self.config.settle_ms)

        logger.info("Readiness sequence finished", elapsed=round(time.monotonic() - started, 3))

    async def _best_effort(self, step: str, operation: Awaitable[Any]) -> None:
        try:
            await operation
        except TimeoutExceeded as e:
            logger.info("Readiness step timed out", step=step, detail=str(e))
        except Exception as e:
            logger.warning("Readiness step failed", step=step, error=str(e), error_type=type(e).__name__)

    async def scroll_through(self, target: ScrollTarget, delay_ms: int) -> int:
        """Scroll down in fixed increments, then jump to the true bottom. Returns the step count."""
        total_height = await target.scroll_height()
        step_px = self.config.step_px
        steps = math.ceil(total_height / step_px)

        for i in range(steps + 1):
            await target.scroll_to(i * step_px)
            await _pause(delay_ms)

        await target.scroll_to(total_height)
        await _pause(delay_ms * self.config.bottom_pause_factor)
        logger.debug("Scrolled through document", height=total_height, steps=steps + 1)
        return steps + 1

    async def drain_placeholders(self, target: ScrollTarget) -> int:
        """
        Poll until no lazy placeholders remain or the ceiling is reached.

        Returns:
            Placeholders left (0 when drained)

        Raises:
            TimeoutExceeded: placeholders remained at the ceiling
        """
        selector = self.config.lazy_placeholder_selector
        deadline = time.monotonic() + self.config.poll_ceiling_seconds
        remaining = await target.count_lazy_placeholders(selector)

        while remaining > 0:
            if time.monotonic() >= deadline:
                raise TimeoutExceeded(f"{remaining} lazy placeholders left after {self.config.poll_ceiling_seconds}s")
            await race(target.nudge_typesetter(), self.config.typeset_timeout_seconds)
            await _pause(self.config.poll_interval_ms)
            remaining = await target.count_lazy_placeholders(selector)

        return remaining

    async def _return_to_top(self, target: ScrollTarget) -> None:
        await target.scroll_to(0)
        await _pause(self.config.top_pause_ms)

    async def await_typesetter(self, target: ScrollTarget) -> None:
        timeout = self.config.typeset_timeout_seconds
        if not await race(target.typesetter_settled(), timeout):
            raise TimeoutExceeded(f"typesetter did not settle within {timeout}s")

    async def await_images(self, target: ScrollTarget) -> int:
        """Wait for every pending image, each bounded on its own. Returns how many timed out."""
        pending = await target.pending_images()
        if not pending:
            return 0
        timeout = self.config.image_timeout_seconds
        outcomes = await asyncio.gather(*(race(target.wait_for_image(index), timeout) for index in pending))
        timed_out = sum(1 for finished in outcomes if not finished)
        if timed_out:
            logger.info("Images still loading after timeout", pending=len(pending), timed_out=timed_out)
        return timed_out
