"""Persistence of private chat messages.

Messages are appended one row at a time; the database assigns ``id`` and
``created_at`` on insert. A conversation is read back as a single ordered
snapshot covering both directions between two users.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import DatabaseError
from django.db import transaction
from django.db.models import Q

from .db import run_with_timeout
from .exceptions import InvalidMessage
from .exceptions import NotFound
from .exceptions import PersistenceError
from .models import ChatMessage

logger = logging.getLogger(__name__)


class MessageStore:
    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = settings.CHAT_STORE_TIMEOUT if timeout is None else timeout

    def append(self, sender_id: int, receiver_id: int, body: str) -> ChatMessage:
        if not isinstance(body, str) or not body.strip():
            raise InvalidMessage

        try:
            with transaction.atomic():
                created = ChatMessage.objects.create(
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    message=body,
                )
                # Re-read through the user join; a dangling id aborts the insert.
                message = ChatMessage.objects.select_related(
                    "sender",
                    "receiver",
                ).get(pk=created.pk)
        except ChatMessage.DoesNotExist as exc:
            msg = "Unknown sender or receiver"
            raise NotFound(msg) from exc
        except DatabaseError as exc:
            logger.warning(
                "Could not store chat message %s -> %s: %s",
                sender_id,
                receiver_id,
                exc,
            )
            raise PersistenceError from exc
        return message

    def history(self, user_a: int, user_b: int) -> list[ChatMessage]:
        """All messages exchanged between two users, oldest first.

        Ties on ``created_at`` fall back to insertion order (``id``), so
        ``history(a, b) == history(b, a)``.
        """

        pair = Q(sender_id=user_a, receiver_id=user_b) | Q(
            sender_id=user_b,
            receiver_id=user_a,
        )
        try:
            return list(
                ChatMessage.objects.filter(pair)
                .select_related("sender", "receiver")
                .order_by("created_at", "id"),
            )
        except DatabaseError as exc:
            logger.warning(
                "Could not read chat history %s <-> %s: %s",
                user_a,
                user_b,
                exc,
            )
            raise PersistenceError from exc

    async def aappend(self, sender_id: int, receiver_id: int, body: str) -> ChatMessage:
        return await run_with_timeout(
            self.append,
            sender_id,
            receiver_id,
            body,
            timeout=self.timeout,
        )

    async def ahistory(self, user_a: int, user_b: int) -> list[ChatMessage]:
        return await run_with_timeout(
            self.history,
            user_a,
            user_b,
            timeout=self.timeout,
        )
