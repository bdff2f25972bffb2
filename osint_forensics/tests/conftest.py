"""
Pytest Configuration and Fixtures
==================================

Shared fixtures for testing the investigation engine.
Provides fast settings, stub stage runners and recording channels.
"""

import asyncio
import os
from typing import Any, Callable, Optional
from unittest.mock import MagicMock

import pytest

# Set test environment before importing modules
os.environ["APP_ENV"] = "testing"
os.environ["PROGRESS_INTERVAL_MS"] = "10"
os.environ["BOOTSTRAP_LATENCY_MS"] = "0"
os.environ["SIMULATE_STAGE_LATENCY"] = "false"

from core.config import Settings, get_settings
from core.models import PipelineKind, StageResult, StageStatus, StateUpdate
from core.stage_registry import StageRunnerRegistry
from infra.realtime import RealtimeChannel

SCENARIO_QUERY = "check user@example.com images/photo.jpg"


def make_result(confidence: float = 0.9, items: int = 3, **kwargs: Any) -> StageResult:
    """Build a successful StageResult with ``items`` placeholder records."""
    return StageResult(
        status=StageStatus.SUCCESS,
        items=tuple({"type": "record", "n": n} for n in range(items)),
        execution_time_ms=kwargs.pop("execution_time_ms", 12.5),
        confidence=confidence,
        sources=frozenset(kwargs.pop("sources", {"stub"})),
        **kwargs,
    )


class StubRunner:
    """
    Stage runner double that records its calls.

    Args:
        kind: Pipeline kind it serves
        result: Result to return
        error: Exception to raise instead of returning
        delay: Seconds to sleep before resolving
        log: Shared list receiving ``(kind, targets)`` per call
        on_call: Hook run at call time (before the delay)
    """

    def __init__(
        self,
        kind: PipelineKind,
        result: Optional[StageResult] = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        log: Optional[list] = None,
        on_call: Optional[Callable[[PipelineKind], None]] = None,
    ):
        self.kind = kind
        self.result = result or make_result()
        self.error = error
        self.delay = delay
        self.log = log if log is not None else []
        self.on_call = on_call
        self.calls: list[Any] = []

    async def __call__(self, targets: Any) -> StageResult:
        self.calls.append(targets)
        self.log.append((self.kind, targets))
        if self.on_call:
            self.on_call(self.kind)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def build_registry(
    failures: Optional[dict[PipelineKind, BaseException]] = None,
    delay: float = 0.0,
    log: Optional[list] = None,
    skip: tuple[PipelineKind, ...] = (),
    on_call: Optional[Callable[[PipelineKind], None]] = None,
) -> StageRunnerRegistry:
    """Registry of StubRunners; ``failures`` maps kinds to the error they raise."""
    failures = failures or {}
    registry = StageRunnerRegistry()
    for kind in PipelineKind:
        if kind in skip:
            continue
        registry.register(kind, StubRunner(kind, error=failures.get(kind), delay=delay, log=log, on_call=on_call))
    return registry


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Get test settings."""
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with a 10 ms progress tick and no simulated latency."""
    return Settings(
        app_env="testing",
        progress_interval_ms=10,
        bootstrap_latency_ms=0,
        simulate_stage_latency=False,
    )


@pytest.fixture
def update_log() -> list[StateUpdate]:
    return []


@pytest.fixture
def recording_channel_factory(update_log):
    """Channel factory whose channels append every emitted update to ``update_log``."""
    channels: list[RealtimeChannel] = []

    def factory() -> RealtimeChannel:
        channel = RealtimeChannel()
        channel.on("*", update_log.append)
        channels.append(channel)
        return channel

    factory.channels = channels
    return factory


@pytest.fixture
def mock_channel_factory():
    """Channel factory handing out MagicMock channels."""
    channels: list[MagicMock] = []

    def factory() -> MagicMock:
        channel = MagicMock(spec=RealtimeChannel)
        channel.url = "ws://test/live"
        channels.append(channel)
        return channel

    factory.channels = channels
    return factory


@pytest.fixture
def result_factory():
    """Factory for successful StageResults."""
    return make_result


@pytest.fixture
def registry_factory():
    """Factory for registries of StubRunners."""
    return build_registry


@pytest.fixture
def scenario_query() -> str:
    return SCENARIO_QUERY
