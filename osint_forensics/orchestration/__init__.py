"""
Investigation Orchestration Layer
=================================

Sequential pipeline execution, progress simulation, summary aggregation
and the per-session investigation controller.
"""

from orchestration.executor import SequentialExecutor
from orchestration.progress import ProgressSimulator
from orchestration.session import InvestigationSession
from orchestration.state import InvestigationState
from orchestration.summary import describe_stage, summarize

__all__ = [
    "SequentialExecutor",
    "ProgressSimulator",
    "InvestigationSession",
    "InvestigationState",
    "describe_stage",
    "summarize",
]
