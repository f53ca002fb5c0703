from __future__ import annotations

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from group_chat.chat.exceptions import StorageError
from group_chat.chat.store import fetch_recent

from .serializers import MessageSerializer

logger = logging.getLogger(__name__)


class MessageListView(APIView):
    """Recent chat history, oldest first.

    Same list a socket receives as ``load-messages`` on connect.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        parameters=[
            OpenApiParameter(
                "limit",
                int,
                description="How many recent messages to return (1-100).",
            ),
        ],
        responses=MessageSerializer(many=True),
    )
    def get(self, request):
        max_limit = settings.CHAT_HISTORY_LIMIT
        try:
            limit = int(request.query_params.get("limit", max_limit))
        except (TypeError, ValueError):
            limit = max_limit
        limit = max(1, min(limit, max_limit))

        try:
            rows = fetch_recent(limit)
        except StorageError:
            logger.exception("Failed to fetch messages")
            return Response(
                {"error": "Failed to fetch messages"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(MessageSerializer(rows, many=True).data)
