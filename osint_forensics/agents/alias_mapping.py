"""
Alias Mapping Runner.

Maps a single seed identity (e-mail address or handle) to related
usernames and addresses across platforms.
"""

from __future__ import annotations

from typing import Any

from agents.base_runner import StageRunner
from core.models import PipelineKind


class AliasMappingRunner(StageRunner):
    """Identity pivoting over username and breach sources."""

    @property
    def kind(self) -> PipelineKind:
        return PipelineKind.ALIAS_MAPPING

    @property
    def sources(self) -> list[str]:
        return ["theHarvester", "twint", "SpiderFoot"]

    @property
    def latency_range_s(self) -> tuple[float, float]:
        return (2.0, 5.0)

    @property
    def confidence(self) -> float:
        return 0.91

    async def collect(self, targets: list[str]) -> list[dict[str, Any]]:
        seed = targets[0]
        handle = seed.split("@", 1)[0] if "@" in seed else seed
        return [
            {"type": "username", "value": handle, "platform": "twitter", "seed": seed, "confidence": 0.95},
            {"type": "email", "value": f"{handle}@company.com", "source": "breach_data", "seed": seed, "confidence": 0.87},
            {"type": "username", "value": f"{handle}2024", "platform": "github", "seed": seed, "confidence": 0.92},
        ]
