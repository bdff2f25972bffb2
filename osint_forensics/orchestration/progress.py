"""
Progress Simulator
==================

Fabricates an incremental progress estimate while a stage's real result
is pending. The ticker is a scoped resource: leaving the ``async with``
block cancels and awaits it, whichever way the block exits.
"""

from __future__ import annotations

import asyncio
import contextlib
import random
from collections.abc import Callable
from typing import Optional

from core.logging import get_logger

logger = get_logger(__name__)

TickHandler = Callable[[float], None]


class ProgressSimulator:
    """
    Recurring timer that reports a random progress increment per tick.

    Usage:
        async with ProgressSimulator(on_tick, interval_s=0.5, max_increment=15):
            result = await runner(targets)
    """

    def __init__(
        self,
        on_tick: TickHandler,
        interval_s: float,
        max_increment: float,
        rng: Optional[random.Random] = None,
        name: str = "progress",
    ):
        self._on_tick = on_tick
        self.interval_s = interval_s
        self.max_increment = max_increment
        self._rng = rng or random.Random()
        self._name = name
        self._task: Optional[asyncio.Task[None]] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> ProgressSimulator:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def cancel(self) -> None:
        """Stop the ticker and wait until it has exited."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            self.ticks += 1
            try:
                self._on_tick(self._rng.uniform(0, self.max_increment))
            except Exception:
                logger.exception("Progress tick handler failed", ticker=self._name)
