"""Chat error hierarchy.

All chat errors inherit from ChatError so callers on the realtime path can
absorb them with a single ``except`` clause.
"""


class ChatError(Exception):
    """Base error for chat operations."""


class ValidationError(ChatError):
    """Inbound payload rejected before it reaches the store."""


class NotFound(ChatError):
    """No message exists for the given id."""


class StorageError(ChatError):
    """The backing database is unreachable or refused a write."""


class ReactionInvariantError(ChatError, ValueError):
    """A reaction set holds an empty entry or a duplicated name."""
