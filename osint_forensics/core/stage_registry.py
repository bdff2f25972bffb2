"""
Stage Runner Registry
=====================

Maps each pipeline kind to the asynchronous operation that performs its
analysis, and bridges the one signature mismatch between runners: alias
mapping takes a single target, every other kind takes the full list.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Optional, Sequence, Union

from core.config import Settings
from core.exceptions import UnknownPipelineError
from core.models import PipelineKind, StageResult

UNKNOWN_TARGET = "unknown"

StageInput = Union[str, list[str]]
StageRunnerFn = Callable[[Any], Awaitable[StageResult]]


def select_targets(kind: PipelineKind, targets: Sequence[str]) -> StageInput:
    """
    Choose the runner input for ``kind``.

    Alias mapping receives the first target (``"unknown"`` when there is
    none); all other kinds receive the whole target list.
    """
    if kind == PipelineKind.ALIAS_MAPPING:
        return targets[0] if targets else UNKNOWN_TARGET
    return list(targets)


class StageRunnerRegistry:
    """
    Registry of stage runners keyed by pipeline kind.

    Runners are independently swappable: registering a kind twice replaces
    the earlier runner.
    """

    def __init__(self) -> None:
        self._runners: dict[PipelineKind, StageRunnerFn] = {}

    def register(self, kind: PipelineKind, runner: StageRunnerFn) -> None:
        """
        Register the runner for a pipeline kind.

        Args:
            kind: Pipeline kind the runner serves
            runner: Async callable returning a StageResult
        """
        self._runners[PipelineKind(kind)] = runner

    def unregister(self, kind: PipelineKind) -> None:
        self._runners.pop(PipelineKind(kind), None)

    def is_registered(self, kind: PipelineKind) -> bool:
        return kind in self._runners

    def list_kinds(self) -> list[PipelineKind]:
        return PipelineKind.ordered(self._runners)

    def get_runner(self, kind: PipelineKind) -> StageRunnerFn:
        """
        Resolve the runner for ``kind``.

        Raises:
            UnknownPipelineError: If no runner is registered for the kind
        """
        runner = self._runners.get(kind)
        if runner is None:
            name = kind.value if isinstance(kind, PipelineKind) else str(kind)
            raise UnknownPipelineError(
                f"Unknown pipeline: {name}",
                details={"pipeline": name},
            )
        return runner

    async def run(self, kind: PipelineKind, targets: Sequence[str]) -> StageResult:
        """Resolve the runner for ``kind`` and call it with the bridged targets."""
        runner = self.get_runner(kind)
        return await runner(select_targets(kind, targets))


def default_registry(settings: Optional[Settings] = None) -> StageRunnerRegistry:
    """Registry wired with the five built-in runners."""
    from agents import BUILTIN_RUNNERS

    registry = StageRunnerRegistry()
    for runner_cls in BUILTIN_RUNNERS:
        runner = runner_cls(settings=settings)
        registry.register(runner.kind, runner)
    return registry
