"""
Tests for the Report Exporter
=============================
"""

import csv
import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import ReportExportError
from core.models import Investigation, PipelineKind, StageResult
from reports.exporter import export_investigation_report, render_json, report_filename

T0 = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def finished_investigation():
    investigation = Investigation.create(
        "inv_report", "check a@b.io", [PipelineKind.ALIAS_MAPPING, PipelineKind.GEO_IP_LOOKUP], now=T0
    )
    result = StageResult(
        items=({"type": "username", "value": "a"},),
        execution_time_ms=42.0,
        confidence=0.91,
        sources=frozenset({"twint", "SpiderFoot"}),
    )
    investigation = investigation.with_pipeline(0, investigation.pipelines[0].start().complete(result))
    investigation = investigation.with_pipeline(1, investigation.pipelines[1].start().fail("offline"))
    return investigation.finished(T0 + timedelta(seconds=3))


class TestReportExporter:
    """Test report rendering."""

    def test_render_json(self, finished_investigation):
        report = render_json(finished_investigation, generated_at=T0 + timedelta(seconds=10))

        assert report["investigation_id"] == "inv_report"
        assert report["status"] == "error"
        assert report["summary"] == "Investigation completed. 1/2 pipelines successful."
        assert report["statistics"]["completed_pipelines"] == 1
        assert report["statistics"]["duration_ms"] == pytest.approx(3000)
        assert report["pipelines"][1]["error"] == "offline"
        assert report["pipelines"][0]["sources"] == ["SpiderFoot", "twint"]
        assert report["findings"] == {"alias-mapping": [{"type": "username", "value": "a"}]}

    def test_export_json_bytes(self, finished_investigation):
        data = json.loads(export_investigation_report(finished_investigation, "json"))

        assert data["query"] == "check a@b.io"

    def test_export_csv(self, finished_investigation):
        content = export_investigation_report(finished_investigation, "CSV").decode("utf-8")
        rows = list(csv.DictReader(io.StringIO(content)))

        assert [row["pipeline"] for row in rows] == ["alias-mapping", "geo-ip-lookup"]
        assert rows[0]["result_items"] == "1"
        assert rows[1]["status"] == "error"

    def test_unsupported_format(self, finished_investigation):
        with pytest.raises(ReportExportError) as exc_info:
            export_investigation_report(finished_investigation, "pdf")

        assert exc_info.value.message == "Unsupported report format: pdf"

    def test_filename(self, finished_investigation):
        assert report_filename(finished_investigation, "CSV") == "forensics-report-inv_report.csv"
