"""
Investigation Data Model
========================

Pydantic models for queries, stage results, pipelines and investigations.

Pipelines and investigations are frozen: every state change builds a new
instance, so a reader never observes a half-applied update. The transition
methods on ``Pipeline`` and ``Investigation`` are the only sanctioned way to
move between statuses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.exceptions import InvalidTransitionError

DEFAULT_STAGE_ERROR = "Pipeline execution failed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineKind(str, Enum):
    """The five analysis stages, in canonical execution order."""
    ALIAS_MAPPING = "alias-mapping"
    METADATA_EXTRACTION = "metadata-extraction"
    IMAGE_FACE_ANALYSIS = "image-face-analysis"
    GEO_IP_LOOKUP = "geo-ip-lookup"
    DEEPFAKE_DETECTION = "deepfake-detection"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def ordered(cls, kinds: Iterable[PipelineKind]) -> list[PipelineKind]:
        """Return ``kinds`` de-duplicated and sorted into canonical order."""
        wanted = set(kinds)
        return [kind for kind in cls if kind in wanted]


_DISPLAY_NAMES: dict[PipelineKind, str] = {
    PipelineKind.ALIAS_MAPPING: "Alias Mapping",
    PipelineKind.METADATA_EXTRACTION: "Metadata Extraction",
    PipelineKind.IMAGE_FACE_ANALYSIS: "Image & Face Analysis",
    PipelineKind.GEO_IP_LOOKUP: "Geo/IP Lookup",
    PipelineKind.DEEPFAKE_DETECTION: "Deepfake Detection",
}


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StageStatus(str, Enum):
    """Outcome reported by a stage runner."""
    SUCCESS = "success"
    ERROR = "error"
    PARTIAL = "partial"


class PipelineStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class InvestigationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ERROR = "error"


TERMINAL_PIPELINE_STATUSES = frozenset({PipelineStatus.COMPLETED, PipelineStatus.ERROR})
TERMINAL_INVESTIGATION_STATUSES = frozenset({InvestigationStatus.COMPLETED, InvestigationStatus.ERROR})


class QueryOptions(BaseModel):
    """Execution options attached to a structured query."""
    model_config = ConfigDict(frozen=True)

    human_review: bool = True
    priority: Priority = Priority.MEDIUM
    timeout_ms: int = Field(default=300_000, gt=0)


class StructuredQuery(BaseModel):
    """A parsed investigation request. Immutable once produced."""
    model_config = ConfigDict(frozen=True)

    raw_text: str
    targets: tuple[str, ...] = ()
    pipeline_kinds: frozenset[PipelineKind] = Field(default_factory=lambda: frozenset(PipelineKind))
    options: QueryOptions = Field(default_factory=QueryOptions)

    @property
    def ordered_kinds(self) -> list[PipelineKind]:
        return PipelineKind.ordered(self.pipeline_kinds)


class StageResult(BaseModel):
    """Output of one stage runner call."""
    model_config = ConfigDict(frozen=True)

    status: StageStatus = StageStatus.SUCCESS
    items: tuple[dict[str, Any], ...] = ()
    execution_time_ms: float = Field(default=0.0, ge=0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sources: frozenset[str] = frozenset()
    errors: Optional[tuple[str, ...]] = None


class Pipeline(BaseModel):
    """
    One analysis stage within an investigation.

    Lifecycle: pending -> running -> completed | error. ``result`` is set
    only when completed, ``error_message`` only on error, and progress is
    100 exactly when completed.
    """
    model_config = ConfigDict(frozen=True)

    id: PipelineKind
    display_name: str
    status: PipelineStatus = PipelineStatus.PENDING
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    result: Optional[StageResult] = None
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> Pipeline:
        completed = self.status == PipelineStatus.COMPLETED
        failed = self.status == PipelineStatus.ERROR
        if completed != (self.result is not None):
            raise ValueError("result must be set exactly when the pipeline is completed")
        if failed != (self.error_message is not None):
            raise ValueError("error_message must be set exactly when the pipeline failed")
        if completed != (self.progress == 100.0):
            raise ValueError("progress is 100 exactly when the pipeline is completed")
        if self.status in (PipelineStatus.PENDING, PipelineStatus.ERROR) and self.progress != 0.0:
            raise ValueError(f"progress must be 0 while {self.status.value}")
        return self

    @classmethod
    def pending(cls, kind: PipelineKind) -> Pipeline:
        return cls(id=kind, display_name=kind.display_name)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PIPELINE_STATUSES

    def _evolve(self, **changes: Any) -> Pipeline:
        # Rebuild instead of model_copy so the invariants are re-checked
        return type(self)(**{**dict(self), **changes})

    def _require(self, expected: PipelineStatus, action: str) -> None:
        if self.status != expected:
            raise InvalidTransitionError(
                f"Cannot {action} pipeline {self.id.value} while {self.status.value}",
                details={"pipeline": self.id.value, "status": self.status.value},
            )

    def start(self) -> Pipeline:
        """pending -> running, progress reset to 0."""
        self._require(PipelineStatus.PENDING, "start")
        return self._evolve(status=PipelineStatus.RUNNING, progress=0.0)

    def advance(self, increment: float, ceiling: float) -> Pipeline:
        """Raise a running pipeline's progress estimate, never past ``ceiling``."""
        if self.status != PipelineStatus.RUNNING or self.progress >= ceiling:
            return self
        progress = min(ceiling, self.progress + max(increment, 0.0))
        if progress == self.progress:
            return self
        return self._evolve(progress=progress)

    def complete(self, result: StageResult) -> Pipeline:
        """running -> completed with the runner's result."""
        self._require(PipelineStatus.RUNNING, "complete")
        return self._evolve(status=PipelineStatus.COMPLETED, progress=100.0, result=result)

    def fail(self, message: Optional[str]) -> Pipeline:
        """running -> error; an empty message falls back to a generic one."""
        self._require(PipelineStatus.RUNNING, "fail")
        return self._evolve(
            status=PipelineStatus.ERROR,
            progress=0.0,
            error_message=message or DEFAULT_STAGE_ERROR,
        )


class Investigation(BaseModel):
    """
    One end-to-end run of the pipeline sequence for a submitted query.

    Status moves active <-> paused until the executor finishes, which sets
    completed (every pipeline succeeded) or error. ``ended_at`` is stamped
    exactly once, by finishing or by an explicit stop.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    query_text: str
    status: InvestigationStatus = InvestigationStatus.ACTIVE
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: Optional[datetime] = None
    pipelines: tuple[Pipeline, ...] = ()
    summary: Optional[str] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> Investigation:
        if self.status == InvestigationStatus.COMPLETED and not all(p.is_terminal for p in self.pipelines):
            raise ValueError("an investigation completes only after every pipeline is terminal")
        running = [p for p in self.pipelines if p.status == PipelineStatus.RUNNING]
        if len(running) > 1:
            raise ValueError("at most one pipeline may be running")
        return self

    @classmethod
    def create(
        cls,
        investigation_id: str,
        query_text: str,
        kinds: Iterable[PipelineKind],
        now: Optional[datetime] = None,
    ) -> Investigation:
        """Build an active investigation with one pending pipeline per kind."""
        seen: set[PipelineKind] = set()
        pipelines = []
        for kind in kinds:
            if kind not in seen:
                seen.add(kind)
                pipelines.append(Pipeline.pending(kind))
        return cls(
            id=investigation_id,
            query_text=query_text,
            started_at=now or utc_now(),
            pipelines=tuple(pipelines),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INVESTIGATION_STATUSES

    @property
    def is_stopped(self) -> bool:
        return self.status == InvestigationStatus.PAUSED and self.ended_at is not None

    @property
    def running_pipeline(self) -> Optional[Pipeline]:
        return next((p for p in self.pipelines if p.status == PipelineStatus.RUNNING), None)

    @property
    def completed_pipelines(self) -> list[Pipeline]:
        return [p for p in self.pipelines if p.status == PipelineStatus.COMPLETED]

    def _evolve(self, **changes: Any) -> Investigation:
        return type(self)(**{**dict(self), **changes})

    def with_pipeline(self, index: int, pipeline: Pipeline) -> Investigation:
        pipelines = list(self.pipelines)
        pipelines[index] = pipeline
        return self._evolve(pipelines=tuple(pipelines))

    def toggled(self) -> Investigation:
        """Flip active <-> paused. Terminal and stopped investigations are left alone."""
        if self.is_stopped:
            return self
        if self.status == InvestigationStatus.ACTIVE:
            return self._evolve(status=InvestigationStatus.PAUSED)
        if self.status == InvestigationStatus.PAUSED:
            return self._evolve(status=InvestigationStatus.ACTIVE)
        return self

    def stopped(self, now: Optional[datetime] = None) -> Investigation:
        """Freeze as paused and stamp ``ended_at``; no-op once ended."""
        if self.ended_at is not None:
            return self
        return self._evolve(status=InvestigationStatus.PAUSED, ended_at=now or utc_now())

    def finished(self, now: Optional[datetime] = None) -> Investigation:
        """Settle the final status and summary line once every pipeline is terminal."""
        if self.ended_at is not None:
            raise InvalidTransitionError(
                f"Investigation {self.id} has already ended",
                details={"investigation_id": self.id},
            )
        pending = [p.id.value for p in self.pipelines if not p.is_terminal]
        if pending:
            raise InvalidTransitionError(
                f"Investigation {self.id} still has unfinished pipelines",
                details={"investigation_id": self.id, "pipelines": pending},
            )
        completed = len(self.completed_pipelines)
        total = len(self.pipelines)
        return self._evolve(
            status=InvestigationStatus.COMPLETED if completed == total else InvestigationStatus.ERROR,
            ended_at=now or utc_now(),
            summary=f"Investigation completed. {completed}/{total} pipelines successful.",
        )


class InvestigationSummary(BaseModel):
    """Roll-up statistics derived from an investigation on request."""
    model_config = ConfigDict(frozen=True)

    total_pipelines: int
    completed_pipelines: int
    total_result_items: int
    average_confidence: float
    duration_ms: float


UpdateType = Literal[
    "CONNECTED",
    "INVESTIGATION_STARTED",
    "STAGE_STARTED",
    "STAGE_PROGRESS",
    "STAGE_COMPLETED",
    "STAGE_FAILED",
    "INVESTIGATION_TOGGLED",
    "INVESTIGATION_STOPPED",
    "INVESTIGATION_COMPLETED",
    "ERROR",
]


class StateUpdate(BaseModel):
    """Notification pushed to live displays after a state change."""
    type: UpdateType
    investigation_id: str
    pipeline: Optional[str] = None
    pipeline_name: Optional[str] = None
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
