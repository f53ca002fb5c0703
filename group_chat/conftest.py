from __future__ import annotations

import asyncio
import itertools
from datetime import timedelta
from typing import Any

import pytest
from django.utils import timezone

from group_chat.chat.exceptions import NotFound
from group_chat.chat.exceptions import StorageError
from group_chat.chat.models import Message
from group_chat.chat.reactions import check_reactions
from group_chat.chat.services import ChatCoordinator
from group_chat.realtime.broadcast import BroadcastHub
from group_chat.realtime.sessions import SessionRegistry


class RecordingTransport:
    """Stands in for ``sio.emit`` and remembers every delivery."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, Any]] = []
        self.broken: set[str] = set()

    async def emit(self, event: str, data: Any = None, to: str | None = None) -> None:
        await asyncio.sleep(0)
        if to in self.broken:
            msg = f"socket {to} is gone"
            raise ConnectionError(msg)
        self.sent.append((to, event, data))

    def events_for(self, sid: str) -> list[tuple[str, Any]]:
        return [(event, data) for to, event, data in self.sent if to == sid]

    def event_names_for(self, sid: str) -> list[str]:
        return [event for event, _ in self.events_for(sid)]


class InMemoryMessageStore:
    """Async store with the same contract as DjangoMessageStore.

    Messages are unsaved model instances. Every call yields to the event loop
    once so concurrent handlers interleave the way they would against a
    real database.
    """

    def __init__(self) -> None:
        self.messages: dict[int, Message] = {}
        self._ids = itertools.count(1)
        self._clock = timezone.now()
        self.fail_writes = False
        self.fail_reads = False

    def add(self, text: str, sender: str, reactions: dict | None = None) -> Message:
        pk = next(self._ids)
        self._clock += timedelta(seconds=1)
        message = Message(
            id=pk,
            text=text,
            sender=sender,
            timestamp=self._clock,
            reactions=reactions or {},
        )
        self.messages[pk] = message
        return message

    async def append(self, text: str, sender: str) -> Message:
        await asyncio.sleep(0)
        if self.fail_writes:
            msg = "Failed to save message"
            raise StorageError(msg)
        return self.add(text, sender)

    async def list_recent(self, limit: int) -> list[Message]:
        await asyncio.sleep(0)
        if self.fail_reads:
            msg = "Failed to fetch messages"
            raise StorageError(msg)
        if limit <= 0:
            return []
        rows = sorted(self.messages.values(), key=lambda m: (m.timestamp, m.pk))
        return rows[-limit:]

    async def find_by_id(self, message_id: Any) -> Message:
        await asyncio.sleep(0)
        if self.fail_reads:
            msg = "Failed to load message"
            raise StorageError(msg)
        try:
            pk = int(message_id)
        except (TypeError, ValueError) as exc:
            raise NotFound(str(message_id)) from exc
        if pk not in self.messages:
            raise NotFound(str(message_id))
        stored = self.messages[pk]
        # Hand out a copy, like a fresh row from the database.
        return Message(
            id=stored.pk,
            text=stored.text,
            sender=stored.sender,
            timestamp=stored.timestamp,
            reactions={k: list(v) for k, v in stored.reactions.items()},
        )

    async def replace_reactions(self, message_id: Any, reactions: dict) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            msg = "Failed to update reactions"
            raise StorageError(msg)
        check_reactions(reactions)
        pk = int(message_id)
        if pk not in self.messages:
            raise NotFound(str(message_id))
        self.messages[pk].reactions = {k: list(v) for k, v in reactions.items()}


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def hub(registry: SessionRegistry, transport: RecordingTransport) -> BroadcastHub:
    return BroadcastHub(registry, transport.emit)


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def coordinator(
    store: InMemoryMessageStore,
    registry: SessionRegistry,
    hub: BroadcastHub,
) -> ChatCoordinator:
    return ChatCoordinator(store=store, registry=registry, hub=hub, history_limit=100)
