"""
Infrastructure Module
=====================

This module contains the collaborators the engine talks to:
- Investigation bootstrap (registers a query, returns an investigation id)
- Realtime channel and WebSocket connection hub for live updates
"""

from infra.bootstrap import InvestigationBootstrap, LocalInvestigationBootstrap, new_investigation_id
from infra.realtime import ConnectionHub, RealtimeChannel

__all__ = [
    "InvestigationBootstrap",
    "LocalInvestigationBootstrap",
    "new_investigation_id",
    "ConnectionHub",
    "RealtimeChannel",
]
