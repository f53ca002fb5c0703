"""Realtime infrastructure (Socket.IO, session registry, broadcast hub).

This package holds the transport-facing primitives. Chat semantics live in
``group_chat.chat``; the publish helpers in ``events`` bridge the two.
"""
