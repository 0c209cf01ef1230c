from rest_framework import serializers

from bulletin_board.chat.models import MAX_ID
from bulletin_board.chat.models import ChatMessage


class ChatMessageSerializer(serializers.ModelSerializer):
    """Read serializer shared by the REST history endpoint and socket events.

    Expects ``sender`` and ``receiver`` to be loaded with ``select_related``.
    """

    sender_id = serializers.IntegerField(read_only=True)
    receiver_id = serializers.IntegerField(read_only=True)
    sender_username = serializers.CharField(source="sender.username", read_only=True)
    receiver_username = serializers.CharField(
        source="receiver.username",
        read_only=True,
    )

    class Meta:
        model = ChatMessage
        fields = (
            "id",
            "sender_id",
            "receiver_id",
            "sender_username",
            "receiver_username",
            "message",
            "created_at",
        )
        read_only_fields = fields


class ChatHistoryQuerySerializer(serializers.Serializer):
    other_user_id = serializers.IntegerField(min_value=1, max_value=MAX_ID)
