from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from group_chat.chat.api.serializers import MessageSerializer

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable
    from collections.abc import Mapping
    from collections.abc import Sequence

    from group_chat.chat.models import Message
    from group_chat.realtime.broadcast import BroadcastHub
    from group_chat.realtime.sessions import SessionId

# Client -> server
SEND_MESSAGE = "send-message"
ADD_REACTION = "add-reaction"

# Server -> client
LOAD_MESSAGES = "load-messages"
NEW_MESSAGE = "new-message"
REACTION_UPDATED = "reaction-updated"
ERROR = "error"


def build_message_payload(message: Message) -> dict[str, Any]:
    return dict(MessageSerializer(message).data)


def build_reaction_payload(
    message_id: Any,
    reactions: Mapping[str, Sequence[str]],
) -> dict[str, Any]:
    return {
        "messageId": message_id,
        "reactions": {emoji: list(users) for emoji, users in reactions.items()},
    }


async def send_history(hub: BroadcastHub, sid: SessionId, messages: Iterable[Message]) -> bool:
    """Replay recent history to a newly connected session only."""

    payload = [build_message_payload(message) for message in messages]
    return await hub.unicast(sid, LOAD_MESSAGES, payload)


async def send_error(hub: BroadcastHub, sid: SessionId, message: str, detail: str = "") -> bool:
    payload = {"message": message}
    if detail:
        payload["detail"] = detail
    return await hub.unicast(sid, ERROR, payload)


async def publish_new_message(hub: BroadcastHub, message: Message) -> int:
    """Publish a newly stored message to every connected session."""

    return await hub.publish(NEW_MESSAGE, build_message_payload(message))


async def publish_reaction_updated(
    hub: BroadcastHub,
    message_id: Any,
    reactions: Mapping[str, Sequence[str]],
) -> int:
    return await hub.publish(REACTION_UPDATED, build_reaction_payload(message_id, reactions))
