"""
Investigation Engine Core Module
================================

This module contains the core components of the investigation engine:
- Configuration management
- Structured logging
- Exception hierarchy
- Data model and state transitions
- Query parsing and stage runner registry
"""

from core.config import Settings, get_settings
from core.logging import get_logger, StructuredLogger
from core.exceptions import (
    OsintForensicsBaseException,
    InvestigationError,
    InvestigationBootstrapError,
    InvalidTransitionError,
    StageError,
    UnknownPipelineError,
    StageExecutionError,
    StageTimeoutError,
    ReportError,
    ReportExportError,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "StructuredLogger",
    "OsintForensicsBaseException",
    "InvestigationError",
    "InvestigationBootstrapError",
    "InvalidTransitionError",
    "StageError",
    "UnknownPipelineError",
    "StageExecutionError",
    "StageTimeoutError",
    "ReportError",
    "ReportExportError",
]
