"""
Deepfake Detection Runner.

Authenticity checks over image, video and audio targets.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from agents.base_runner import StageRunner
from core.models import PipelineKind

CHECKS_BY_SUFFIX = {
    ".mp4": ("authenticity_check", "manipulation_detected"),
    ".avi": ("authenticity_check", "manipulation_detected"),
    ".jpg": ("face_swap_detection", "face_swap_detected"),
    ".jpeg": ("face_swap_detection", "face_swap_detected"),
    ".png": ("face_swap_detection", "face_swap_detected"),
    ".gif": ("face_swap_detection", "face_swap_detected"),
    ".wav": ("audio_analysis", "voice_cloning_detected"),
    ".mp3": ("audio_analysis", "voice_cloning_detected"),
}


class DeepfakeDetectionRunner(StageRunner):
    """Manipulation detection for media files."""

    @property
    def kind(self) -> PipelineKind:
        return PipelineKind.DEEPFAKE_DETECTION

    @property
    def sources(self) -> list[str]:
        return ["deepfake-detection", "OpenCV", "FaceSwap-Detector"]

    @property
    def latency_range_s(self) -> tuple[float, float]:
        return (4.0, 7.0)

    @property
    def confidence(self) -> float:
        return 0.89

    async def collect(self, targets: list[str]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for target in targets:
            check = CHECKS_BY_SUFFIX.get(PurePath(target).suffix.lower())
            if check is None:
                continue
            check_type, flag = check
            items.append({"type": check_type, "file": target, "authenticity_score": 0.92, flag: False})
        return items
