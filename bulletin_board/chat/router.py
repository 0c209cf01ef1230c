from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from .presence import PresenceTable
    from .transport import Transport

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    # Persisted but not pushed; the receiver gets it with the next history fetch.
    BUFFERED = "buffered"


class Router:
    def __init__(self, presence: PresenceTable, transport: Transport) -> None:
        self.presence = presence
        self.transport = transport

    async def deliver(
        self,
        payload: Any,
        receiver_id: int,
        event: str = "message",
    ) -> DeliveryStatus:
        """Forward ``payload`` to the receiver's live connection, if any.

        Fire-and-forget: a ``DELIVERED`` result means the event was handed to
        the transport, not that the client received it.
        """

        connection = self.presence.lookup(receiver_id)
        if connection is None:
            logger.debug("User %s is offline; %s kept for history", receiver_id, event)
            return DeliveryStatus.BUFFERED

        await self.transport.emit(connection, event, payload)
        return DeliveryStatus.DELIVERED
