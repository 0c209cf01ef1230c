from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from bulletin_board.chat.api.serializers import ChatMessageSerializer

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable

    from bulletin_board.chat.models import ChatMessage


def build_message_payload(message: ChatMessage) -> dict[str, Any]:
    """Payload of the live ``message`` event, sent to sender and receiver."""

    payload = dict(ChatMessageSerializer(message).data)
    # Field names read by the browser chat client.
    payload["senderId"] = payload["sender_id"]
    payload["receiverId"] = payload["receiver_id"]
    payload["senderUsername"] = payload["sender_username"]
    payload["timestamp"] = payload["created_at"]
    return payload


def build_history_payload(messages: Iterable[ChatMessage]) -> list[dict[str, Any]]:
    return [dict(item) for item in ChatMessageSerializer(messages, many=True).data]


def build_principal_payload(user_id: int, username: str) -> dict[str, Any]:
    return {"id": user_id, "username": username}
