"""
Geo/IP Lookup Runner.

Resolves network locations for the investigation targets.
"""

from __future__ import annotations

from typing import Any

from agents.base_runner import StageRunner
from core.models import PipelineKind


class GeoIpLookupRunner(StageRunner):
    """IP intelligence and geolocation."""

    @property
    def kind(self) -> PipelineKind:
        return PipelineKind.GEO_IP_LOOKUP

    @property
    def sources(self) -> list[str]:
        return ["Shodan", "Censys", "MaxMind"]

    @property
    def latency_range_s(self) -> tuple[float, float]:
        return (1.0, 3.0)

    @property
    def confidence(self) -> float:
        return 0.93

    async def collect(self, targets: list[str]) -> list[dict[str, Any]]:
        return [
            {"type": "ip_info", "target": targets[0], "ip": "192.168.1.100", "location": "New York, NY, US", "risk_score": "low"},
            {"type": "shodan_scan", "ip": "192.168.1.100", "open_ports": [80, 443, 22], "services": ["HTTP", "HTTPS", "SSH"]},
            {"type": "geolocation", "coordinates": {"lat": 40.7128, "lng": -74.0060}, "accuracy": "city", "timezone": "America/New_York"},
        ]
