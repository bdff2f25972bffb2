"""
Sequential Executor
===================

Drives every pipeline of an investigation to a terminal status, in
declaration order, one stage at a time.
"""

from __future__ import annotations

import asyncio
import random
from typing import Optional

from core.config import Settings, get_settings
from core.exceptions import OsintForensicsBaseException, StageTimeoutError
from core.logging import StructuredLogger, get_logger
from core.models import InvestigationStatus, PipelineKind, StageResult, StructuredQuery
from core.stage_registry import StageRunnerRegistry
from orchestration.progress import ProgressSimulator
from orchestration.state import InvestigationState
from orchestration.summary import describe_stage

logger = get_logger(__name__)


def _failure_message(exc: BaseException) -> str:
    if isinstance(exc, OsintForensicsBaseException):
        return exc.message
    return str(exc)


def _cancel_requested() -> bool:
    """True when the running task itself has a pending cancellation request."""
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class SequentialExecutor:
    """
    Runs stages strictly one after another.

    For each pipeline: mark it running, start the progress simulator, call
    the stage runner, then record the result or the failure. A failing
    stage never stops the remaining ones. Once every pipeline is terminal
    the investigation is settled as completed (all succeeded) or error.

    Results arriving after the state stopped accepting updates (stop,
    replacement or session teardown) are discarded and no further stage
    is started.
    """

    def __init__(
        self,
        registry: StageRunnerRegistry,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self._rng = rng or random.Random()

    async def execute(self, state: InvestigationState, query: StructuredQuery) -> None:
        """
        Run every pipeline of ``state``'s investigation.

        Args:
            state: Holder of the investigation being executed
            query: Parsed query supplying targets and options
        """
        run_logger = logger.bind(investigation_id=state.investigation_id)
        total = len(state.snapshot().pipelines)
        run_logger.info("Executing pipelines", pipelines=total, targets=list(query.targets))

        for index in range(total):
            if not await self._ready_for_next_stage(state):
                run_logger.info("Execution abandoned", next_stage=index)
                return
            await self._run_stage(state, index, query, run_logger)

        if not state.accepting:
            run_logger.info("Execution abandoned after last stage")
            return

        final = state.snapshot().finished()
        state.apply(lambda inv: final, "INVESTIGATION_COMPLETED", message=final.summary or "")
        run_logger.info("Investigation finished", status=final.status.value, summary=final.summary)

    async def _ready_for_next_stage(self, state: InvestigationState) -> bool:
        if not state.accepting:
            return False
        if not self.settings.pause_gates_next_stage:
            return True
        while state.accepting and state.snapshot().status == InvestigationStatus.PAUSED:
            await state.wait_for_change()
        return state.accepting

    async def _run_stage(
        self,
        state: InvestigationState,
        index: int,
        query: StructuredQuery,
        run_logger: StructuredLogger,
    ) -> None:
        kind = state.snapshot().pipelines[index].id
        stage_logger = run_logger.bind(pipeline=kind.value)

        state.apply(
            lambda inv: inv.with_pipeline(index, inv.pipelines[index].start()),
            "STAGE_STARTED",
            pipeline=kind,
            message=f"{kind.display_name} started",
        )
        stage_logger.info("Stage started", position=index)

        ceiling = self.settings.progress_ceiling

        def tick(increment: float) -> None:
            if state.accepting:
                state.apply(
                    lambda inv: inv.with_pipeline(index, inv.pipelines[index].advance(increment, ceiling)),
                    "STAGE_PROGRESS",
                    pipeline=kind,
                )

        simulator = ProgressSimulator(
            tick,
            interval_s=self.settings.progress_interval_s,
            max_increment=self.settings.progress_max_increment,
            rng=self._rng,
            name=f"progress-{state.investigation_id}-{kind.value}",
        )

        try:
            async with simulator:
                result = await self._invoke(kind, query)
        except asyncio.CancelledError as exc:
            # Teardown cancels the executor task after closing the state
            if not state.accepting or _cancel_requested():
                raise
            self._record_failure(state, index, exc, stage_logger)
            return
        except Exception as exc:
            self._record_failure(state, index, exc, stage_logger)
            return

        if not state.accepting:
            stage_logger.info("Discarding stage result after stop", items=len(result.items))
            return

        completed = state.snapshot().pipelines[index].complete(result)
        state.apply(
            lambda inv: inv.with_pipeline(index, completed),
            "STAGE_COMPLETED",
            pipeline=kind,
            message=describe_stage(completed) or "",
        )
        stage_logger.info(
            "Stage completed",
            items=len(result.items),
            confidence=result.confidence,
            execution_time_ms=result.execution_time_ms,
        )

    def _record_failure(
        self,
        state: InvestigationState,
        index: int,
        exc: BaseException,
        stage_logger: StructuredLogger,
    ) -> None:
        message = _failure_message(exc)
        if not state.accepting:
            stage_logger.info("Discarding stage failure after stop", error=message)
            return
        failed = state.snapshot().pipelines[index].fail(message)
        state.apply(
            lambda inv: inv.with_pipeline(index, failed),
            "STAGE_FAILED",
            pipeline=failed.id,
            message=describe_stage(failed) or "",
        )
        stage_logger.warning(
            "Stage failed",
            error=failed.error_message,
            error_type=type(exc).__name__,
        )

    async def _invoke(self, kind: PipelineKind, query: StructuredQuery) -> StageResult:
        call = self.registry.run(kind, query.targets)
        if not self.settings.enforce_stage_timeout:
            return StageResult.model_validate(await call)

        timeout_ms = query.options.timeout_ms
        try:
            result = await asyncio.wait_for(call, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise StageTimeoutError(
                f"{kind.display_name} timed out after {timeout_ms} ms",
                details={"pipeline": kind.value, "timeout_ms": timeout_ms},
            ) from None
        return StageResult.model_validate(result)
