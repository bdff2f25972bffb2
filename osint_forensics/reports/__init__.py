"""
Reports Module
==============

Investigation report export (JSON and CSV).
"""

from reports.exporter import SUPPORTED_FORMATS, export_investigation_report, report_filename

__all__ = [
    "SUPPORTED_FORMATS",
    "export_investigation_report",
    "report_filename",
]
