from __future__ import annotations

from typing import Any
from typing import Protocol


class Transport(Protocol):
    """What the messaging core needs from the socket layer.

    ``connection`` is the transport's own handle for one live client
    (a Socket.IO ``sid``); the core never inspects it.
    """

    async def emit(self, connection: Any, event: str, data: Any) -> None: ...

    async def close(self, connection: Any) -> None: ...
