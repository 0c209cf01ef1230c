from django.conf import settings
from django.db import models

# Largest primary key a BigAutoField can hold.
MAX_ID = 2**63 - 1


class ChatMessage(models.Model):
    """A private message between two users.

    Rows are append-only: the messaging core never updates or deletes them.
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_chat_messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_chat_messages",
    )
    message = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "chat_messages"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["sender", "receiver", "created_at"],
                name="chat_msg_pair_created_idx",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"[{self.created_at}] {self.sender_id} -> {self.receiver_id}"
