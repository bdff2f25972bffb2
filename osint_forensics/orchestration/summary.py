"""
Summary Aggregator
==================

Roll-up statistics computed on demand from an investigation snapshot.
Safe to call at any point in the lifecycle; an in-flight run yields a
point-in-time view.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import Investigation, InvestigationSummary, Pipeline, PipelineStatus, utc_now


def summarize(investigation: Investigation, now: Optional[datetime] = None) -> InvestigationSummary:
    """
    Aggregate an investigation's completed pipelines.

    Args:
        investigation: Snapshot to aggregate
        now: Clock reading used while the investigation has not ended

    Returns:
        InvestigationSummary; average confidence is 0.0 when nothing completed
    """
    completed = [p for p in investigation.pipelines if p.status == PipelineStatus.COMPLETED and p.result]
    total_items = sum(len(p.result.items) for p in completed)
    average_confidence = (
        sum(p.result.confidence for p in completed) / len(completed) if completed else 0.0
    )

    end = investigation.ended_at or now or utc_now()
    duration_ms = (end - investigation.started_at).total_seconds() * 1000

    return InvestigationSummary(
        total_pipelines=len(investigation.pipelines),
        completed_pipelines=len(completed),
        total_result_items=total_items,
        average_confidence=average_confidence,
        duration_ms=duration_ms,
    )


def describe_stage(pipeline: Pipeline) -> Optional[str]:
    """One-line status of a finished stage, for the live activity feed."""
    if pipeline.status == PipelineStatus.COMPLETED and pipeline.result:
        confidence = round(pipeline.result.confidence * 100)
        return (
            f"{pipeline.display_name} completed - "
            f"{len(pipeline.result.items)} results found ({confidence}% confidence)"
        )
    if pipeline.status == PipelineStatus.ERROR:
        return f"{pipeline.display_name} failed: {pipeline.error_message or 'Unknown error'}"
    return None
