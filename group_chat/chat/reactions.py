"""Reaction toggle logic.

A reaction set maps an emoji to the display names that applied it. Entries
are never empty and a name appears at most once per emoji. Everything here is
pure: functions return new mappings and never touch their input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from .exceptions import ReactionInvariantError
from .exceptions import ValidationError

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Mapping
    from collections.abc import Sequence

Reactions = dict[str, list[str]]


@dataclass(frozen=True, slots=True)
class ReactionToggle:
    message_id: int
    emoji: str
    username: str

    @classmethod
    def from_payload(cls, data: Any) -> ReactionToggle:
        """Build a toggle from an ``add-reaction`` payload.

        Expects ``messageId``, ``emoji`` and ``username``. The message id may
        arrive as a number or a numeric string (``7``, ``"7"``, ``"07"``); all
        of them resolve to the same integer id.
        """

        if not isinstance(data, dict):
            msg = "Reaction payload must be an object."
            raise ValidationError(msg)

        message_id = _message_id(data.get("messageId"))
        emoji = _required_text(data, "emoji")
        username = _required_text(data, "username")
        return cls(message_id=message_id, emoji=emoji, username=username)


def _message_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        msg = "messageId is required."
        raise ValidationError(msg)
    if isinstance(value, int):
        return value
    try:
        return int(value.strip())
    except ValueError:
        msg = f"messageId is not a valid id: {value!r}"
        raise ValidationError(msg) from None


def _required_text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        msg = f"{key} is required."
        raise ValidationError(msg)
    return value.strip()


def apply_toggle(current: Mapping[str, Sequence[str]], emoji: str, username: str) -> Reactions:
    """Return the reaction set after ``username`` toggles ``emoji``.

    - emoji not present: a new entry ``[username]`` is added
    - username already present: it is removed, and the entry is dropped once
      nobody is left in it
    - otherwise: username is appended to the entry
    """

    reactions: Reactions = {key: list(users) for key, users in current.items()}
    users = reactions.get(emoji)

    if users is None:
        reactions[emoji] = [username]
    elif username in users:
        remaining = [u for u in users if u != username]
        if remaining:
            reactions[emoji] = remaining
        else:
            del reactions[emoji]
    else:
        users.append(username)

    check_reactions(reactions)
    return reactions


def check_reactions(reactions: Mapping[str, Sequence[str]]) -> None:
    """Raise ReactionInvariantError unless ``reactions`` is a valid set."""

    for emoji, users in reactions.items():
        if not isinstance(emoji, str) or not emoji:
            msg = f"Invalid emoji key: {emoji!r}"
            raise ReactionInvariantError(msg)
        if isinstance(users, str) or not isinstance(users, (list, tuple)):
            msg = f"Users for {emoji!r} must be a list, got {type(users).__name__}"
            raise ReactionInvariantError(msg)
        if not users:
            msg = f"Empty user list for {emoji!r}"
            raise ReactionInvariantError(msg)
        for user in users:
            if not isinstance(user, str) or not user:
                msg = f"Invalid user {user!r} in {emoji!r}"
                raise ReactionInvariantError(msg)
        if len(set(users)) != len(users):
            msg = f"Duplicate user in {emoji!r}"
            raise ReactionInvariantError(msg)


def normalize_reactions(raw: Any) -> Reactions:
    """Coerce stored reaction data into a valid reaction set.

    Drops empty entries and repeated names (first occurrence wins). Rows
    written before the invariant was enforced may still carry either.
    """

    if not raw or not isinstance(raw, dict):
        return {}

    reactions: Reactions = {}
    for emoji, users in raw.items():
        if not isinstance(emoji, str) or not emoji:
            continue
        if isinstance(users, str):
            users = [users]
        if not isinstance(users, (list, tuple)):
            continue
        unique: list[str] = []
        for user in users:
            if isinstance(user, str) and user and user not in unique:
                unique.append(user)
        if unique:
            reactions[emoji] = unique
    return reactions
