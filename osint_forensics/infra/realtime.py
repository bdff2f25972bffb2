"""
Realtime Channel Module
=======================

Notification channel scoped to one investigation's lifetime, plus the hub
of live WebSocket subscribers it relays to.

Usage:
    hub = ConnectionHub()
    channel = RealtimeChannel(hub=hub)
    channel.connect("inv_1")
    channel.on("STAGE_COMPLETED", handler)
    channel.emit(update)
    channel.disconnect()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, Optional, Protocol

from core.config import Settings, get_settings
from core.logging import get_logger
from core.models import StateUpdate

logger = get_logger(__name__)

ALL_EVENTS = "*"

EventHandler = Callable[[StateUpdate], Any]


class Subscriber(Protocol):
    """The part of a WebSocket connection the hub relies on."""

    async def send_json(self, data: Any) -> None:
        ...

    async def close(self) -> None:
        ...


class ConnectionHub:
    """
    Live WebSocket subscribers grouped by investigation id.

    A subscriber whose send fails is dropped; the failure is logged and
    never reaches the executor.
    """

    def __init__(self) -> None:
        self._connections: dict[str, list[Subscriber]] = {}

    def register(self, investigation_id: str, websocket: Subscriber) -> None:
        self._connections.setdefault(investigation_id, []).append(websocket)

    def unregister(self, investigation_id: str, websocket: Subscriber) -> None:
        subscribers = self._connections.get(investigation_id)
        if subscribers and websocket in subscribers:
            subscribers.remove(websocket)
        if not subscribers:
            self._connections.pop(investigation_id, None)

    def subscribers(self, investigation_id: str) -> list[Subscriber]:
        return list(self._connections.get(investigation_id, []))

    async def broadcast(self, investigation_id: str, update: StateUpdate) -> None:
        """Send ``update`` to every subscriber of the investigation."""
        payload = update.model_dump(mode="json")
        for websocket in self.subscribers(investigation_id):
            try:
                await websocket.send_json(payload)
            except Exception as e:
                logger.warning(
                    "Failed to send WebSocket message",
                    investigation_id=investigation_id,
                    error=str(e),
                )
                self.unregister(investigation_id, websocket)

    async def close(self, investigation_id: str) -> None:
        """Close and forget every subscriber of the investigation."""
        for websocket in self._connections.pop(investigation_id, []):
            try:
                await websocket.close()
            except Exception as e:
                logger.warning(
                    "Failed to close WebSocket",
                    investigation_id=investigation_id,
                    error=str(e),
                )

    def clear(self) -> None:
        self._connections.clear()


class RealtimeChannel:
    """
    Notification channel for a single investigation.

    ``connect`` and ``disconnect`` bracket the investigation's lifetime;
    there is no reconnect. Local handlers registered with ``on`` run
    synchronously on ``emit``; delivery to hub subscribers is scheduled on
    the running event loop, one update at a time in emit order.
    """

    def __init__(
        self,
        hub: Optional[ConnectionHub] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self._hub = hub
        self._investigation_id: Optional[str] = None
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pending: set[asyncio.Task[None]] = set()
        self._last_delivery: Optional[asyncio.Task[None]] = None

    @property
    def is_connected(self) -> bool:
        return self._investigation_id is not None

    @property
    def investigation_id(self) -> Optional[str]:
        return self._investigation_id

    @property
    def url(self) -> Optional[str]:
        if self._investigation_id is None:
            return None
        return f"{self.settings.realtime_base_url.rstrip('/')}/{self._investigation_id}/live"

    def connect(self, investigation_id: str) -> None:
        """Open the channel for ``investigation_id``."""
        if self._investigation_id == investigation_id:
            return
        if self.is_connected:
            self.disconnect()
        self._investigation_id = investigation_id
        logger.info("Realtime channel connected", investigation_id=investigation_id, url=self.url)

    def disconnect(self) -> None:
        """Close the channel and its subscribers. Safe to call repeatedly."""
        investigation_id, self._investigation_id = self._investigation_id, None
        if investigation_id is None:
            return
        if self._hub is not None:
            self._schedule(self._hub.close(investigation_id))
        logger.info("Realtime channel disconnected", investigation_id=investigation_id)

    def on(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for an update type, or ``"*"`` for every update."""
        self._handlers.setdefault(event, []).append(handler)

    def emit(self, update: StateUpdate) -> None:
        """Deliver ``update`` to local handlers and hub subscribers."""
        if self._investigation_id is None:
            logger.debug("Dropping update on closed channel", update_type=update.type)
            return

        for handler in self._handlers.get(update.type, []) + self._handlers.get(ALL_EVENTS, []):
            try:
                handler(update)
            except Exception:
                logger.exception("Channel handler failed", update_type=update.type)

        if self._hub is not None:
            self._schedule(self._hub.broadcast(self._investigation_id, update))

    async def drain(self) -> None:
        """Wait for scheduled deliveries to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("No running event loop; hub delivery skipped")
            return
        # Each delivery waits for the previous one so subscribers see emit order
        previous = self._last_delivery if self._last_delivery and not self._last_delivery.done() else None
        task = loop.create_task(self._deliver_after(previous, coro))
        self._last_delivery = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _deliver_after(
        previous: Optional[asyncio.Task[None]],
        coro: Coroutine[Any, Any, None],
    ) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        await coro
