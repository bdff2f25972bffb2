"""
Investigation Bootstrap
=======================

Registers a structured query with the investigation backend and returns
the identifier the rest of the run is keyed by.
"""

from __future__ import annotations

import asyncio
import random
import string
import time
from typing import Optional, Protocol

from core.config import Settings, get_settings
from core.exceptions import InvestigationBootstrapError
from core.logging import get_logger
from core.models import StructuredQuery

logger = get_logger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


class InvestigationBootstrap(Protocol):
    """Anything that can register a query and hand back an investigation id."""

    async def start(self, query: StructuredQuery) -> str:
        ...


def new_investigation_id(
    now_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Identifier of the form ``inv_<epoch ms>_<9 base36 chars>``."""
    rng = rng or random.Random()
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"inv_{now_ms}_{suffix}"


class LocalInvestigationBootstrap:
    """
    In-process bootstrap used when no investigation backend is deployed.

    Rejects queries with no text; otherwise waits the configured latency
    and mints a fresh id.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self._rng = rng or random.Random()

    async def start(self, query: StructuredQuery) -> str:
        if not query.raw_text.strip():
            raise InvestigationBootstrapError("Investigation query is empty")

        logger.info(
            "Registering investigation",
            targets=list(query.targets),
            pipelines=[kind.value for kind in query.ordered_kinds],
            priority=query.options.priority.value,
        )
        if self.settings.bootstrap_latency_ms:
            await asyncio.sleep(self.settings.bootstrap_latency_ms / 1000)

        return new_investigation_id(rng=self._rng)
