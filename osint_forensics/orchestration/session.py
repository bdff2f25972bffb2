"""
Investigation Session
=====================

Owns the single current investigation of one user session: creates and
replaces it, opens its realtime channel, schedules the executor, and
serves pause/resume, stop and summary requests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Optional

from core.config import Settings, get_settings
from core.exceptions import InvestigationBootstrapError, OsintForensicsBaseException
from core.logging import get_logger
from core.models import Investigation, InvestigationSummary, PipelineKind, StateUpdate, StructuredQuery, utc_now
from core.query_parser import parse_query
from core.stage_registry import StageRunnerRegistry, default_registry
from infra.bootstrap import InvestigationBootstrap, LocalInvestigationBootstrap
from infra.realtime import RealtimeChannel
from orchestration.executor import SequentialExecutor
from orchestration.state import InvestigationState
from orchestration.summary import summarize

logger = get_logger(__name__)

ChannelFactory = Callable[[], RealtimeChannel]


class InvestigationSession:
    """
    Controller for one session's current investigation.

    Exactly one investigation is current at a time; starting a new one
    releases the previous one (its channel is disconnected and its late
    stage results are discarded). Several sessions may coexist, each with
    its own current investigation.
    """

    def __init__(
        self,
        bootstrap: Optional[InvestigationBootstrap] = None,
        registry: Optional[StageRunnerRegistry] = None,
        channel_factory: Optional[ChannelFactory] = None,
        settings: Optional[Settings] = None,
        executor: Optional[SequentialExecutor] = None,
    ):
        self.settings = settings or get_settings()
        self.bootstrap = bootstrap or LocalInvestigationBootstrap(settings=self.settings)
        self.registry = registry or default_registry(self.settings)
        self.executor = executor or SequentialExecutor(self.registry, settings=self.settings)
        self._channel_factory = channel_factory or (lambda: RealtimeChannel(settings=self.settings))

        self.is_loading = False
        self.error: Optional[str] = None
        self.channel: Optional[RealtimeChannel] = None
        self._state: Optional[InvestigationState] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def current_investigation(self) -> Optional[Investigation]:
        return self._state.snapshot() if self._state else None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start_new_investigation(
        self,
        query_text: str,
        pipelines: Optional[Sequence[PipelineKind]] = None,
    ) -> Investigation:
        """
        Parse, register and start executing a new investigation.

        Args:
            query_text: Natural-language request
            pipelines: Explicit pipeline kinds, in execution order; defaults
                to the kinds selected by the parser in canonical order

        Returns:
            The freshly created investigation snapshot

        Raises:
            InvestigationBootstrapError: If the query could not be registered.
                No investigation is created and ``error`` holds the message.
        """
        self.is_loading = True
        self.error = None
        try:
            query = parse_query(query_text, self.settings)
            kinds = list(dict.fromkeys(PipelineKind(k) for k in pipelines)) if pipelines else query.ordered_kinds
            if pipelines:
                query = query.model_copy(update={"pipeline_kinds": frozenset(kinds)})
            investigation_id = await self._bootstrap(query)
        except InvestigationBootstrapError as exc:
            self.error = exc.message
            logger.error("Failed to start investigation", error=exc.message)
            raise
        finally:
            self.is_loading = False

        self._release_current(reason="replaced")

        investigation = Investigation.create(investigation_id, query_text, kinds, now=utc_now())
        state = InvestigationState(investigation)
        channel = self._channel_factory()
        channel.connect(investigation_id)
        state.subscribe(channel.emit)
        self._state = state
        self.channel = channel

        logger.info(
            "Investigation started",
            investigation_id=investigation_id,
            pipelines=[kind.value for kind in kinds],
            targets=list(query.targets),
        )
        state.notify(StateUpdate(
            type="INVESTIGATION_STARTED",
            investigation_id=investigation_id,
            message=f'Investigation started: "{query_text}"',
            data={"investigation": investigation.model_dump(mode="json")},
        ))

        self._task = asyncio.create_task(
            self._execute(state, query),
            name=f"investigation-{investigation_id}",
        )
        return investigation

    def toggle(self) -> Optional[Investigation]:
        """Flip the current investigation between active and paused."""
        if self._state is None:
            return None
        updated = self._state.apply(
            lambda inv: inv.toggled(),
            "INVESTIGATION_TOGGLED",
            message="Investigation status toggled",
        )
        logger.info("Investigation toggled", investigation_id=updated.id, status=updated.status.value)
        return updated

    def stop(self) -> Optional[Investigation]:
        """
        Stop the current investigation.

        Freezes its status, stamps ``ended_at`` and releases the realtime
        channel. An in-flight stage call is not cancelled; its outcome is
        discarded when it arrives. Calling stop again changes nothing.
        """
        if self._state is None:
            return None
        state = self._state
        already_stopped = not state.accepting
        stopped = state.apply(
            lambda inv: inv.stopped(utc_now()),
            "INVESTIGATION_STOPPED",
            message="Investigation stopped",
        )
        state.close()
        self._disconnect_channel()
        if not already_stopped:
            logger.info("Investigation stopped", investigation_id=stopped.id, status=stopped.status.value)
        return stopped

    def get_summary(self) -> Optional[InvestigationSummary]:
        if self._state is None:
            return None
        return summarize(self._state.snapshot())

    async def wait_until_finished(self) -> Optional[Investigation]:
        """Wait for the executor task of the current investigation."""
        if self._task is not None:
            await self._task
        return self.current_investigation

    def close(self) -> None:
        """Session teardown: disconnect the channel and cancel any in-flight run."""
        self._release_current(reason="session closed")
        if self.running:
            self._task.cancel()

    async def _bootstrap(self, query: StructuredQuery) -> str:
        try:
            return await self.bootstrap.start(query)
        except InvestigationBootstrapError:
            raise
        except Exception as exc:
            raise InvestigationBootstrapError(
                str(exc) or "Failed to start investigation",
                details={"error_type": type(exc).__name__},
            ) from exc

    async def _execute(self, state: InvestigationState, query: StructuredQuery) -> None:
        try:
            await self.executor.execute(state, query)
        except OsintForensicsBaseException as exc:
            self._report_execution_failure(state, exc.message)
        except Exception as exc:
            self._report_execution_failure(state, str(exc))

    def _report_execution_failure(self, state: InvestigationState, message: str) -> None:
        logger.exception("Investigation execution failed", investigation_id=state.investigation_id)
        if state is self._state:
            self.error = message
        state.notify(StateUpdate(
            type="ERROR",
            investigation_id=state.investigation_id,
            message=f"Investigation failed: {message}",
            data={"error": message},
        ))

    def _release_current(self, reason: str) -> None:
        if self._state is not None:
            self._state.close()
            logger.info("Investigation released", investigation_id=self._state.investigation_id, reason=reason)
        self._disconnect_channel()

    def _disconnect_channel(self) -> None:
        channel, self.channel = self.channel, None
        if channel is not None:
            channel.disconnect()
