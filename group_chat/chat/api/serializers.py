from __future__ import annotations

from rest_framework import serializers

from group_chat.chat.models import Message
from group_chat.chat.reactions import normalize_reactions


class MessageSerializer(serializers.ModelSerializer):
    """Read serializer shared by the HTTP API and the realtime payloads."""

    reactions = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = (
            "id",
            "text",
            "sender",
            "timestamp",
            "reactions",
        )
        read_only_fields = fields

    def get_reactions(self, obj: Message) -> dict[str, list[str]]:
        return normalize_reactions(obj.reactions)


class SendMessageSerializer(serializers.Serializer):
    """Validates the ``send-message`` payload."""

    text = serializers.CharField(trim_whitespace=False)
    sender = serializers.CharField(max_length=255)

    def validate_text(self, value: str) -> str:
        if not value.strip():
            msg = "Message text is required."
            raise serializers.ValidationError(msg)
        return value
