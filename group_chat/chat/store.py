"""Message persistence on top of the Django ORM.

The module-level functions are synchronous and safe to call from views.
``DjangoMessageStore`` wraps them for the realtime path: every call runs on a
worker thread through ``database_sync_to_async`` so a slow query never blocks
the event loop that serves other connections.

Database failures surface as ``StorageError``; unknown or malformed ids as
``NotFound``. Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from channels.db import database_sync_to_async
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.db import transaction
from django.utils import timezone

from .exceptions import NotFound
from .exceptions import StorageError
from .models import Message
from .reactions import check_reactions

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Mapping
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_BAD_ID_ERRORS = (
    Message.DoesNotExist,
    ValueError,
    TypeError,
    OverflowError,
    DjangoValidationError,
)


def create_message(text: str, sender: str) -> Message:
    """Persist a new message with empty reactions.

    The timestamp is never earlier than the latest stored message, so
    insertion order and timestamp order agree even if the clock steps back.
    """

    try:
        with transaction.atomic():
            latest = (
                Message.objects.select_for_update()
                .order_by("-id")
                .values_list("timestamp", flat=True)
                .first()
            )
            now = timezone.now()
            if latest is not None and latest > now:
                now = latest
            return Message.objects.create(
                text=text,
                sender=sender,
                timestamp=now,
                reactions={},
            )
    except DatabaseError as exc:
        msg = "Failed to save message"
        raise StorageError(msg) from exc


def fetch_recent(limit: int) -> list[Message]:
    """Return up to ``limit`` most recent messages, oldest first."""

    if limit <= 0:
        return []
    try:
        rows = list(Message.objects.order_by("-timestamp", "-id")[:limit])
    except DatabaseError as exc:
        msg = "Failed to fetch messages"
        raise StorageError(msg) from exc
    rows.reverse()
    return rows


def get_message(message_id: Any) -> Message:
    try:
        return Message.objects.get(pk=message_id)
    except _BAD_ID_ERRORS as exc:
        msg = f"Message {message_id!r} not found"
        raise NotFound(msg) from exc
    except DatabaseError as exc:
        msg = f"Failed to load message {message_id!r}"
        raise StorageError(msg) from exc


def update_reactions(message_id: Any, reactions: Mapping[str, Sequence[str]]) -> None:
    """Overwrite the reactions column of one message.

    Text, sender and timestamp are left untouched.
    """

    check_reactions(reactions)
    payload = {emoji: list(users) for emoji, users in reactions.items()}
    try:
        updated = Message.objects.filter(pk=message_id).update(reactions=payload)
    except _BAD_ID_ERRORS as exc:
        msg = f"Message {message_id!r} not found"
        raise NotFound(msg) from exc
    except DatabaseError as exc:
        msg = f"Failed to update reactions on message {message_id!r}"
        raise StorageError(msg) from exc
    if not updated:
        msg = f"Message {message_id!r} not found"
        raise NotFound(msg)


class DjangoMessageStore:
    """Async store adapter used by the chat coordinator."""

    async def append(self, text: str, sender: str) -> Message:
        message = await database_sync_to_async(create_message)(text, sender)
        logger.debug("Stored message %s from %s", message.pk, sender)
        return message

    async def list_recent(self, limit: int) -> list[Message]:
        return await database_sync_to_async(fetch_recent)(limit)

    async def find_by_id(self, message_id: Any) -> Message:
        return await database_sync_to_async(get_message)(message_id)

    async def replace_reactions(
        self,
        message_id: Any,
        reactions: Mapping[str, Sequence[str]],
    ) -> None:
        await database_sync_to_async(update_reactions)(message_id, reactions)
