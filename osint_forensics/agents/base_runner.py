"""
StageRunner Base Class.

Every built-in stage runner (alias mapping, metadata extraction, image &
face analysis, geo/IP lookup, deepfake detection) extends this base class.
The runners stand in for the external intelligence tools; the executor
only sees the ``await runner(targets) -> StageResult`` contract.
"""

from __future__ import annotations

import asyncio
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from core.config import Settings, get_settings
from core.logging import get_logger
from core.models import PipelineKind, StageResult, StageStatus

logger = get_logger(__name__)


class StageRunner(ABC):
    """
    Base class for a single analysis stage.

    Subclasses declare their kind, the tools they report as sources, a
    simulated latency window and a baseline confidence, and implement
    ``collect`` to produce the stage's records.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self._rng = rng or random.Random()

    @property
    @abstractmethod
    def kind(self) -> PipelineKind:
        """Pipeline kind served by this runner."""

    @property
    @abstractmethod
    def sources(self) -> list[str]:
        """Names of the intelligence tools this stage draws on."""

    @property
    @abstractmethod
    def latency_range_s(self) -> tuple[float, float]:
        """Bounds of the simulated tool latency, in seconds."""

    @property
    @abstractmethod
    def confidence(self) -> float:
        """Confidence reported for a successful run."""

    @abstractmethod
    async def collect(self, targets: list[str]) -> list[dict[str, Any]]:
        """Produce the stage's records for ``targets``."""

    async def __call__(self, targets: Union[str, list[str]]) -> StageResult:
        """
        Run the stage.

        Args:
            targets: A single target (alias mapping) or the target list

        Returns:
            StageResult with the collected records
        """
        target_list = [targets] if isinstance(targets, str) else list(targets)
        logger.info("Running stage", pipeline=self.kind.value, targets=target_list)

        started = time.perf_counter()
        if self.settings.simulate_stage_latency:
            await asyncio.sleep(self._rng.uniform(*self.latency_range_s))

        items = await self.collect(target_list)
        elapsed_ms = (time.perf_counter() - started) * 1000

        return StageResult(
            status=StageStatus.SUCCESS if items else StageStatus.PARTIAL,
            items=tuple(items),
            execution_time_ms=elapsed_ms,
            confidence=self.confidence,
            sources=frozenset(self.sources),
        )
