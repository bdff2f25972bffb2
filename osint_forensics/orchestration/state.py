"""
Investigation State Holder
==========================

Owns the current snapshot of one investigation. Every mutation replaces
the whole snapshot (read, transform, write back) and notifies listeners,
so observers only ever see complete states.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Optional

from core.logging import get_logger
from core.models import Investigation, PipelineKind, StateUpdate, UpdateType

logger = get_logger(__name__)

Listener = Callable[[StateUpdate], None]


class InvestigationState:
    """
    Mutable cell holding an immutable Investigation snapshot.

    ``accepting`` turns false once the investigation is stopped, replaced
    or its session closes; the executor checks it before writing results.
    """

    def __init__(self, investigation: Investigation):
        self._investigation = investigation
        self._listeners: list[Listener] = []
        self._accepting = True
        self._changed = asyncio.Event()

    @property
    def investigation_id(self) -> str:
        return self._investigation.id

    @property
    def accepting(self) -> bool:
        return self._accepting

    def snapshot(self) -> Investigation:
        return self._investigation

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def apply(
        self,
        transform: Callable[[Investigation], Investigation],
        update_type: Optional[UpdateType] = None,
        pipeline: Optional[PipelineKind] = None,
        message: str = "",
    ) -> Investigation:
        """
        Replace the snapshot with ``transform(snapshot)``.

        Listeners are notified with ``update_type`` when the transform
        produced a new snapshot.
        """
        previous = self._investigation
        current = transform(previous)
        if current is previous:
            return current

        self._investigation = current
        self._signal_change()

        if update_type is not None:
            self._notify(StateUpdate(
                type=update_type,
                investigation_id=current.id,
                pipeline=pipeline.value if pipeline else None,
                pipeline_name=pipeline.display_name if pipeline else None,
                message=message,
                data={"investigation": current.model_dump(mode="json")},
            ))
        return current

    def notify(self, update: StateUpdate) -> None:
        self._notify(update)

    def close(self) -> None:
        """Stop accepting executor results. Idempotent."""
        if self._accepting:
            self._accepting = False
            self._signal_change()

    async def wait_for_change(self) -> None:
        """Suspend until the next snapshot replacement or close."""
        await self._changed.wait()

    def _signal_change(self) -> None:
        # Wake current waiters, then arm a fresh event for the next change
        self._changed.set()
        self._changed = asyncio.Event()

    def _notify(self, update: StateUpdate) -> None:
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                logger.exception(
                    "State listener failed",
                    investigation_id=update.investigation_id,
                    update_type=update.type,
                )
