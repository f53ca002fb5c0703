"""Chat coordinator: turns inbound socket events into store calls and
outbound events.

Failure policy differs per event on purpose:

- send-message: validation and storage failures are reported back to the
  sending session as an ``error`` event.
- add-reaction: every failure (unknown message, bad payload, storage) is
  logged and dropped. Nobody receives an error and nothing is broadcast.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from typing import Any

from group_chat.chat.api.serializers import SendMessageSerializer
from group_chat.realtime.events.messages import publish_new_message
from group_chat.realtime.events.messages import publish_reaction_updated
from group_chat.realtime.events.messages import send_error
from group_chat.realtime.events.messages import send_history

from .exceptions import ChatError
from .exceptions import NotFound
from .exceptions import StorageError
from .exceptions import ValidationError
from .reactions import ReactionToggle
from .reactions import apply_toggle
from .reactions import normalize_reactions

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import AsyncIterator
    from collections.abc import Hashable

    from group_chat.realtime.broadcast import BroadcastHub
    from group_chat.realtime.sessions import SessionId
    from group_chat.realtime.sessions import SessionRegistry

    from .models import Message
    from .reactions import Reactions
    from .store import DjangoMessageStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


class KeyedLock:
    """One asyncio lock per key, dropped once nobody holds or awaits it."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]


class ChatCoordinator:
    """Handles connect, send-message, add-reaction and disconnect."""

    def __init__(
        self,
        store: DjangoMessageStore,
        registry: SessionRegistry,
        hub: BroadcastHub,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.store = store
        self.registry = registry
        self.hub = hub
        self.history_limit = history_limit
        self._message_locks = KeyedLock()

    async def connect(self, sid: SessionId, display_name: str | None = None) -> None:
        self.registry.register(sid, display_name)
        logger.info("User connected: %s (%s online)", sid, self.registry.count())
        try:
            messages = await self.store.list_recent(self.history_limit)
        except StorageError:
            logger.exception("Failed to load history for %s", sid)
            await send_error(self.hub, sid, "Failed to load messages")
            return
        await send_history(self.hub, sid, messages)

    async def send_message(self, sid: SessionId, data: Any) -> Message | None:
        """Store a message and broadcast it.

        Returns the stored message, or None when the sender was sent an error.
        """

        try:
            text, sender = self._validate_message(data)
            message = await self.store.append(text, sender)
        except ValidationError as exc:
            logger.info("Rejected message from %s: %s", sid, exc)
            await send_error(self.hub, sid, "Failed to send message", str(exc))
            return None
        except StorageError as exc:
            logger.exception("Error saving message from %s", sid)
            await send_error(self.hub, sid, "Failed to send message", str(exc))
            return None

        self.registry.set_display_name(sid, sender)
        await publish_new_message(self.hub, message)
        return message

    async def toggle_reaction(self, sid: SessionId, data: Any) -> Reactions | None:
        """Toggle one reaction and broadcast the message's new reaction set.

        Read-modify-write runs under a per-message lock so concurrent toggles
        on the same message are applied one after the other.

        Returns the new reaction set, or None if nothing changed.
        """

        try:
            toggle = ReactionToggle.from_payload(data)
        except ValidationError as exc:
            logger.warning("Ignoring add-reaction from %s: %s", sid, exc)
            return None

        async with self._message_locks.hold(toggle.message_id):
            try:
                message = await self.store.find_by_id(toggle.message_id)
            except NotFound:
                logger.debug("Reaction for unknown message %s ignored", toggle.message_id)
                return None
            except ChatError:
                logger.exception("Error adding reaction")
                return None

            try:
                reactions = apply_toggle(
                    normalize_reactions(message.reactions),
                    toggle.emoji,
                    toggle.username,
                )
                await self.store.replace_reactions(message.pk, reactions)
            except ChatError:
                logger.exception("Error adding reaction")
                return None

            await publish_reaction_updated(self.hub, message.pk, reactions)
        return reactions

    def disconnect(self, sid: SessionId) -> None:
        session = self.registry.unregister(sid)
        if session is not None:
            logger.info("User disconnected: %s (%s online)", sid, self.registry.count())

    def _validate_message(self, data: Any) -> tuple[str, str]:
        if not isinstance(data, dict):
            msg = "Message payload must be an object."
            raise ValidationError(msg)
        serializer = SendMessageSerializer(data=data)
        if not serializer.is_valid():
            errors = "; ".join(
                f"{field}: {' '.join(str(e) for e in messages)}"
                for field, messages in serializer.errors.items()
            )
            raise ValidationError(errors)
        return serializer.validated_data["text"], serializer.validated_data["sender"]
