"""Broadcast hub: fans one event out to every registered session.

The hub is the single place outbound events go through. Deliveries are
serialized by one asyncio lock, so two publishes issued in order A, B reach
every session that stays connected in order A, B.

The transport primitive is injected. In production it is ``sio.emit`` from
``group_chat.realtime.socketio``; tests pass a recording fake.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Awaitable
    from collections.abc import Callable

    from .sessions import SessionId
    from .sessions import SessionRegistry

    Emitter = Callable[..., Awaitable[Any]]

logger = logging.getLogger(__name__)


class BroadcastHub:
    """Fans events out to every registered session, one publish at a time."""

    def __init__(self, registry: SessionRegistry, emit: Emitter) -> None:
        self._registry = registry
        self._emit = emit
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def publish(self, event: str, payload: Any) -> int:
        """Deliver ``payload`` to every session registered right now.

        Sessions that unregister while the fan-out is running are skipped.
        A failed delivery is logged and does not stop the others; the
        transport's own disconnect signal takes care of dead sockets.

        Returns:
            Number of sessions the event was handed to.

        """

        async with self._lock:
            targets = self._registry.for_each(lambda session: session.sid)
            delivered = 0
            for sid in targets:
                if not self._registry.is_registered(sid):
                    continue
                if await self._deliver(sid, event, payload):
                    delivered += 1
        logger.debug("Published %s to %s/%s sessions", event, delivered, len(targets))
        return delivered

    async def unicast(self, session_id: SessionId, event: str, payload: Any) -> bool:
        """Deliver ``payload`` to a single session."""

        async with self._lock:
            return await self._deliver(session_id, event, payload)

    async def _deliver(self, sid: SessionId, event: str, payload: Any) -> bool:
        try:
            await self._emit(event, payload, to=sid)
        except Exception:  # noqa: BLE001 - one bad socket must not stop the fan-out
            logger.warning("Failed to deliver %s to session %s", event, sid, exc_info=True)
            return False
        return True
