"""
Query Parser
============

Turns a free-text investigation request into a StructuredQuery.

Keyword rules stand in for real language understanding: e-mail addresses
and media paths become targets, and a handful of trigger words select the
pipelines. The parser is total; it never raises.
"""

from __future__ import annotations

import re
from typing import Optional

from core.config import Settings, get_settings
from core.models import PipelineKind, Priority, QueryOptions, StructuredQuery

UNKNOWN_TARGET = "unknown"

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
MEDIA_PATH_PATTERN = re.compile(
    r"\b[\w/\\.-]+\.(?:jpg|jpeg|png|gif|mp4|avi|wav|mp3)\b",
    re.IGNORECASE,
)
WORD_PATTERN = re.compile(r"[a-z0-9]+")

PIPELINE_KEYWORDS: dict[PipelineKind, frozenset[str]] = {
    PipelineKind.ALIAS_MAPPING: frozenset({"alias", "aliases", "username", "usernames", "map", "mapping"}),
    PipelineKind.METADATA_EXTRACTION: frozenset({"exif", "metadata", "extract", "extraction"}),
    PipelineKind.IMAGE_FACE_ANALYSIS: frozenset({"face", "faces", "image", "images", "reverse"}),
    PipelineKind.GEO_IP_LOOKUP: frozenset({"ip", "geo", "geolocation", "location"}),
    PipelineKind.DEEPFAKE_DETECTION: frozenset({"deepfake", "deepfakes", "manipulation", "authentic", "authenticity"}),
}


def extract_targets(text: str) -> list[str]:
    """E-mail addresses first, then media paths, without duplicates."""
    found = [m.group(0) for m in EMAIL_PATTERN.finditer(text)]
    found += [m.group(0) for m in MEDIA_PATH_PATTERN.finditer(text)]
    return list(dict.fromkeys(found))


def select_pipelines(text: str, targets: list[str]) -> list[PipelineKind]:
    """
    Pick pipeline kinds by trigger words.

    Targets are removed before matching so that a path such as
    ``images/photo.jpg`` does not request image analysis on its own.
    Falls back to every kind when nothing matches.
    """
    remainder = text
    for target in targets:
        remainder = remainder.replace(target, " ")
    words = set(WORD_PATTERN.findall(remainder.lower()))

    kinds = [kind for kind, keywords in PIPELINE_KEYWORDS.items() if words & keywords]
    return kinds or list(PipelineKind)


def parse_query(text: str, settings: Optional[Settings] = None) -> StructuredQuery:
    """
    Parse a natural-language request.

    Args:
        text: The request as typed by the investigator
        settings: Source of the option defaults

    Returns:
        StructuredQuery with at least one target and one pipeline kind
    """
    settings = settings or get_settings()
    targets = extract_targets(text)
    kinds = select_pipelines(text, targets)

    return StructuredQuery(
        raw_text=text,
        targets=tuple(targets) if targets else (UNKNOWN_TARGET,),
        pipeline_kinds=frozenset(kinds),
        options=QueryOptions(
            human_review=settings.default_human_review,
            priority=Priority(settings.default_priority),
            timeout_ms=settings.default_timeout_ms,
        ),
    )
