"""Socket.IO server for the chat client.

The browser client uses `socket.io-client` with:
- server URL: http(s)://<host>:<port>
- Socket.IO path: the library default, ``/socket.io/``
- Auth: after ``connect`` it emits ``authenticate`` with the JWT access token

Every connection is handed to its own ``SessionHandler``. The gateway owns the
presence table, store, router and verifier shared by all sessions.
"""

from __future__ import annotations

import logging
from typing import Any

import socketio
from django.conf import settings

from bulletin_board.chat.directory import UserDirectory
from bulletin_board.chat.identity import IdentityVerifier
from bulletin_board.chat.presence import PresenceTable
from bulletin_board.chat.router import Router
from bulletin_board.chat.session import RequestKind
from bulletin_board.chat.session import SessionHandler
from bulletin_board.chat.store import MessageStore

logger = logging.getLogger(__name__)


def _cors_allowed_origins() -> str | list[str]:
    origins = list(settings.SOCKETIO_CORS_ALLOWED_ORIGINS)
    return "*" if origins == ["*"] else origins


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=_cors_allowed_origins(),
    logger=False,
    engineio_logger=False,
)


class SocketIOTransport:
    """Adapt a Socket.IO server to the chat core's transport protocol."""

    def __init__(self, server: socketio.AsyncServer) -> None:
        self.server = server

    async def emit(self, connection: str, event: str, data: Any) -> None:
        await self.server.emit(event, data, to=connection)

    async def close(self, connection: str) -> None:
        await self.server.disconnect(connection)


class ChatGateway:
    def __init__(  # noqa: PLR0913
        self,
        server: socketio.AsyncServer,
        *,
        presence: PresenceTable | None = None,
        store: MessageStore | None = None,
        verifier: IdentityVerifier | None = None,
        directory: UserDirectory | None = None,
    ) -> None:
        self.server = server
        self.transport = SocketIOTransport(server)
        self.presence = presence if presence is not None else PresenceTable()
        self.store = store if store is not None else MessageStore()
        self.verifier = verifier if verifier is not None else IdentityVerifier()
        self.directory = directory if directory is not None else UserDirectory()
        self.router = Router(self.presence, self.transport)
        self.sessions: dict[str, SessionHandler] = {}

    def attach(self) -> None:
        self.server.on("connect", self.connect)
        self.server.on("disconnect", self.disconnect)
        for kind in (
            RequestKind.AUTHENTICATE,
            RequestKind.PRIVATE_MESSAGE,
            RequestKind.FETCH_MESSAGES,
        ):
            self.server.on(kind.value, self._forward(kind))

    def _forward(self, kind: RequestKind):
        async def handler(sid: str, data: Any = None) -> None:
            await self.dispatch(sid, kind, data)

        handler.__name__ = kind.value
        return handler

    async def connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None):
        self.sessions[sid] = SessionHandler(
            sid,
            transport=self.transport,
            presence=self.presence,
            store=self.store,
            router=self.router,
            verifier=self.verifier,
            directory=self.directory,
        )
        logger.debug("Socket %s connected", sid)

    async def dispatch(self, sid: str, kind: RequestKind, data: Any = None) -> None:
        session = self.sessions.get(sid)
        if session is None:
            logger.warning("Event %s from unknown socket %s", kind.value, sid)
            return
        await session.handle(kind, data)

    async def disconnect(self, sid: str, reason: Any = None) -> None:
        session = self.sessions.pop(sid, None)
        if session is None:
            return
        await session.handle(RequestKind.DISCONNECT)
        logger.debug("Socket %s disconnected (%s)", sid, reason)


gateway = ChatGateway(sio)
gateway.attach()
