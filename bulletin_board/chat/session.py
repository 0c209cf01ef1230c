"""Per-connection chat session.

Each live connection gets one ``SessionHandler``. It starts unauthenticated,
becomes authenticated once a bearer token verifies, and ends closed. The legal
moves are spelled out by :func:`transition`; the handler only performs the
side effects (presence, store, routing, emitting) around them.

Events emitted back to the connection:

- ``authenticated`` / ``auth_error`` answer ``authenticate``
- ``message`` echoes a stored private message (also routed to the receiver)
- ``previous_messages`` answers ``fetch_messages``
- ``chat_error`` rejects one request; the session stays open
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any

from bulletin_board.realtime.events.chat import build_history_payload
from bulletin_board.realtime.events.chat import build_message_payload
from bulletin_board.realtime.events.chat import build_principal_payload

from .exceptions import AlreadyAuthenticated
from .exceptions import AuthFailure
from .exceptions import ChatError
from .exceptions import InvalidMessage
from .exceptions import InvalidRequest
from .exceptions import SessionClosed
from .exceptions import Unauthorized
from .models import MAX_ID

if TYPE_CHECKING:  # import for type checking only
    from .directory import UserDirectory
    from .identity import IdentityVerifier
    from .identity import Principal
    from .presence import PresenceTable
    from .router import Router
    from .store import MessageStore
    from .transport import Transport

logger = logging.getLogger(__name__)

AUTH_ERROR_PAYLOAD = {"reason": "AuthFailure", "message": "Authentication failed"}


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class RequestKind(str, Enum):
    AUTHENTICATE = "authenticate"
    PRIVATE_MESSAGE = "private_message"
    FETCH_MESSAGES = "fetch_messages"
    DISCONNECT = "disconnect"


def transition(
    state: SessionState,
    kind: RequestKind,
    *,
    succeeded: bool = True,
) -> SessionState:
    """Return the state a session moves to when handling ``kind`` in ``state``.

    ``succeeded`` only matters for ``authenticate``: a rejected token closes
    the session.

    Raises:
        SessionClosed: any request after the session closed.
        Unauthorized: send/fetch before authenticating.
        AlreadyAuthenticated: a second ``authenticate`` on the same session.
    """

    if state is SessionState.CLOSED:
        raise SessionClosed
    if kind is RequestKind.DISCONNECT:
        return SessionState.CLOSED
    if state is SessionState.UNAUTHENTICATED:
        if kind is RequestKind.AUTHENTICATE:
            return SessionState.AUTHENTICATED if succeeded else SessionState.CLOSED
        raise Unauthorized
    if kind is RequestKind.AUTHENTICATE:
        raise AlreadyAuthenticated
    return state


def parse_token(data: Any) -> Any:
    # The browser client sends the bare token; `{ token }` is accepted too.
    if isinstance(data, dict):
        return data.get("token")
    return data


def parse_private_message(data: Any) -> tuple[str, str]:
    if not isinstance(data, dict):
        msg = "Expected an object with receiverUsername and message"
        raise InvalidRequest(msg)

    receiver_username = data.get("receiverUsername")
    if not isinstance(receiver_username, str) or not receiver_username.strip():
        msg = "receiverUsername is required"
        raise InvalidRequest(msg)

    body = data.get("message")
    if not isinstance(body, str) or not body.strip():
        raise InvalidMessage
    return receiver_username.strip(), body


def parse_fetch_messages(data: Any) -> int:
    value = data.get("otherUserId") if isinstance(data, dict) else None
    other_user_id = None
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, int) and not isinstance(value, bool):
        other_user_id = value
    elif isinstance(value, str) and value.strip().isdigit():
        other_user_id = int(value.strip())

    if other_user_id is None or not 1 <= other_user_id <= MAX_ID:
        msg = f"otherUserId must be an integer between 1 and {MAX_ID}"
        raise InvalidRequest(msg)
    return other_user_id


class SessionHandler:
    def __init__(  # noqa: PLR0913
        self,
        connection: Any,
        *,
        transport: Transport,
        presence: PresenceTable,
        store: MessageStore,
        router: Router,
        verifier: IdentityVerifier,
        directory: UserDirectory,
    ) -> None:
        self.connection = connection
        self.transport = transport
        self.presence = presence
        self.store = store
        self.router = router
        self.verifier = verifier
        self.directory = directory
        self.state = SessionState.UNAUTHENTICATED
        self.principal: Principal | None = None

    def __repr__(self) -> str:
        who = self.principal.username if self.principal else "anonymous"
        return f"<SessionHandler {self.connection} {who} {self.state.value}>"

    async def handle(self, kind: RequestKind, data: Any = None) -> None:
        try:
            transition(self.state, kind)
        except SessionClosed:
            logger.debug("Dropping %s on closed %r", kind.value, self)
            return
        except ChatError as exc:
            await self._reject(kind, exc)
            return

        if kind is RequestKind.DISCONNECT:
            self.close()
            return

        handlers = {
            RequestKind.AUTHENTICATE: self._authenticate,
            RequestKind.PRIVATE_MESSAGE: self._private_message,
            RequestKind.FETCH_MESSAGES: self._fetch_messages,
        }
        try:
            await handlers[kind](data)
        except ChatError as exc:
            await self._reject(kind, exc)

    def close(self) -> None:
        """Close the session and drop its presence entry.

        Must not await: no other task may observe the presence entry once the
        transport has reported the disconnect.
        """

        if self.state is SessionState.CLOSED:
            return
        self.state = transition(self.state, RequestKind.DISCONNECT)
        if self.principal is not None:
            self.presence.deregister(self.principal.id, self.connection)
            logger.info("User %s disconnected from %s", self.principal.username, self.connection)

    async def _authenticate(self, data: Any) -> None:
        try:
            principal = self.verifier.verify(parse_token(data))
        except AuthFailure as exc:
            logger.info(
                "Authentication failed on %s: %s %s",
                self.connection,
                exc.kind.value,
                exc.detail,
            )
            self.state = transition(
                self.state,
                RequestKind.AUTHENTICATE,
                succeeded=False,
            )
            await self.transport.emit(self.connection, "auth_error", AUTH_ERROR_PAYLOAD)
            await self.transport.close(self.connection)
            return

        self.principal = principal
        self.state = transition(self.state, RequestKind.AUTHENTICATE)
        self.presence.register(principal.id, self.connection)
        logger.info("User %s authenticated on %s", principal.username, self.connection)
        await self._emit(
            "authenticated",
            build_principal_payload(principal.id, principal.username),
        )

    async def _private_message(self, data: Any) -> None:
        receiver_username, body = parse_private_message(data)
        sender = self.principal

        receiver_id = await self.directory.aresolve_username(receiver_username)
        # Stored before anything is emitted: an echo implies a durable row.
        message = await self.store.aappend(sender.id, receiver_id, body)
        payload = build_message_payload(message)

        await self._emit("message", payload)
        if receiver_id == sender.id:
            # The echo already reached the only connection of this user.
            return
        status = await self.router.deliver(payload, receiver_id)
        logger.debug("Message %s from %s: %s", message.id, sender.username, status.value)

    async def _fetch_messages(self, data: Any) -> None:
        other_user_id = parse_fetch_messages(data)
        messages = await self.store.ahistory(self.principal.id, other_user_id)
        await self._emit("previous_messages", build_history_payload(messages))

    async def _emit(self, event: str, data: Any) -> None:
        if self.state is SessionState.CLOSED:
            # Results of requests still in flight when the client left.
            logger.debug("Discarding %s for closed %r", event, self)
            return
        await self.transport.emit(self.connection, event, data)

    async def _reject(self, kind: RequestKind, exc: ChatError) -> None:
        logger.info("Rejected %s on %r: %s", kind.value, self, exc.reason)
        await self._emit("chat_error", exc.as_payload())
