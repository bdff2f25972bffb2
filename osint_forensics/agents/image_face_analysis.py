"""
Image & Face Analysis Runner.

Reverse image search and face matching over image targets.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from agents.base_runner import StageRunner
from core.models import PipelineKind

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif"}


class ImageFaceAnalysisRunner(StageRunner):
    """Reverse image search plus face detection and matching."""

    @property
    def kind(self) -> PipelineKind:
        return PipelineKind.IMAGE_FACE_ANALYSIS

    @property
    def sources(self) -> list[str]:
        return ["Chrome_ReverseImageSearch", "DeepFace"]

    @property
    def latency_range_s(self) -> tuple[float, float]:
        return (3.0, 7.0)

    @property
    def confidence(self) -> float:
        return 0.86

    async def collect(self, targets: list[str]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for image in (t for t in targets if PurePath(t).suffix.lower() in IMAGE_SUFFIXES):
            items.append({"type": "reverse_search", "image": image, "matches": 3, "confidence": 0.89})
            items.append({
                "type": "face_match",
                "image": image,
                "faces_detected": 2,
                "matches": [{"person_id": "P001", "confidence": 0.92}],
            })
        return items
