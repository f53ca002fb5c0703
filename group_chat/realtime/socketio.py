"""Global Socket.IO server for the chat frontend.

Every connected browser shares one broadcast domain: each message and
reaction update goes to all live sessions.

Current frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: settings.SOCKETIO_PATH (``socket.io`` by default)
- Optional display name: ``auth.username`` or ``query.username``

Inbound events: ``send-message``, ``add-reaction``.
Outbound events: ``load-messages``, ``new-message``, ``reaction-updated``,
``error``.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs

import socketio
from django.conf import settings

from group_chat.chat.services import ChatCoordinator
from group_chat.chat.store import DjangoMessageStore
from group_chat.realtime.broadcast import BroadcastHub
from group_chat.realtime.events.messages import ADD_REACTION
from group_chat.realtime.events.messages import SEND_MESSAGE
from group_chat.realtime.sessions import SessionRegistry

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ALLOWED_ORIGINS,
    logger=settings.SOCKETIO_DEBUG,
    engineio_logger=settings.SOCKETIO_DEBUG,
)

registry = SessionRegistry()
hub = BroadcastHub(registry, sio.emit)
coordinator = ChatCoordinator(
    store=DjangoMessageStore(),
    registry=registry,
    hub=hub,
    history_limit=settings.CHAT_HISTORY_LIMIT,
)


def _extract_display_name(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract an optional display name from Socket.IO auth/environ.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        username = auth.get("username")
        if isinstance(username, str) and username.strip():
            return username.strip()

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    username = parse_qs(str(query_string)).get("username", [None])[0]
    if isinstance(username, str) and username.strip():
        return username.strip()

    return None


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    await coordinator.connect(sid, _extract_display_name(environ, auth))


@sio.event
async def disconnect(sid: str, reason: Any = None):
    logger.debug("Socket %s closed: %s", sid, reason)
    coordinator.disconnect(sid)


@sio.on(SEND_MESSAGE)
async def send_message(sid: str, data: Any = None):
    await coordinator.send_message(sid, data)


@sio.on(ADD_REACTION)
async def add_reaction(sid: str, data: Any = None):
    await coordinator.toggle_reaction(sid, data)
