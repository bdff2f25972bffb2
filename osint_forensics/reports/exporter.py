"""
Report Exporter Module
======================

Serializes an investigation snapshot into a downloadable report.
"""

import csv
import io
import json
from datetime import datetime
from typing import Any, Optional

from core.exceptions import ReportExportError
from core.models import Investigation, utc_now
from orchestration.summary import summarize

SUPPORTED_FORMATS = ("json", "csv")

CSV_COLUMNS = [
    "pipeline",
    "name",
    "status",
    "progress",
    "result_items",
    "confidence",
    "execution_time_ms",
    "sources",
    "error",
]


def _pipeline_rows(investigation: Investigation) -> list[dict[str, Any]]:
    rows = []
    for pipeline in investigation.pipelines:
        result = pipeline.result
        rows.append({
            "pipeline": pipeline.id.value,
            "name": pipeline.display_name,
            "status": pipeline.status.value,
            "progress": round(pipeline.progress, 1),
            "result_items": len(result.items) if result else 0,
            "confidence": result.confidence if result else None,
            "execution_time_ms": round(result.execution_time_ms, 1) if result else None,
            "sources": sorted(result.sources) if result else [],
            "error": pipeline.error_message,
        })
    return rows


def render_json(investigation: Investigation, generated_at: Optional[datetime] = None) -> dict[str, Any]:
    """
    Render an investigation as a JSON-serializable report.

    Args:
        investigation: Snapshot to export
        generated_at: Report timestamp (defaults to now)

    Returns:
        Dictionary with header fields, summary statistics, per-pipeline
        rows and the findings of every completed pipeline
    """
    generated_at = generated_at or utc_now()
    stats = summarize(investigation, now=generated_at)
    return {
        "investigation_id": investigation.id,
        "generated_at": generated_at.isoformat(),
        "query": investigation.query_text,
        "status": investigation.status.value,
        "started_at": investigation.started_at.isoformat(),
        "ended_at": investigation.ended_at.isoformat() if investigation.ended_at else None,
        "summary": investigation.summary,
        "statistics": stats.model_dump(mode="json"),
        "pipelines": _pipeline_rows(investigation),
        "findings": {
            p.id.value: list(p.result.items)
            for p in investigation.completed_pipelines
            if p.result
        },
    }


def render_csv(investigation: Investigation) -> str:
    """Render one CSV row per pipeline."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for row in _pipeline_rows(investigation):
        row["sources"] = ";".join(row["sources"])
        writer.writerow(row)
    return buffer.getvalue()


def export_investigation_report(investigation: Investigation, format: str = "json") -> bytes:
    """
    Export a report in the requested format.

    Raises:
        ReportExportError: If the format is not supported
    """
    fmt = format.lower()
    if fmt == "json":
        return json.dumps(render_json(investigation), indent=2, default=str).encode("utf-8")
    if fmt == "csv":
        return render_csv(investigation).encode("utf-8")
    raise ReportExportError(
        f"Unsupported report format: {format}",
        details={"format": format, "supported": list(SUPPORTED_FORMATS)},
    )


def report_filename(investigation: Investigation, format: str = "json") -> str:
    return f"forensics-report-{investigation.id}.{format.lower()}"
