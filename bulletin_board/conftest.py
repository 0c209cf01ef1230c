from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any

import pytest

from bulletin_board.chat.directory import UserDirectory
from bulletin_board.chat.identity import IdentityVerifier
from bulletin_board.chat.presence import PresenceTable
from bulletin_board.chat.router import Router
from bulletin_board.chat.session import SessionHandler
from bulletin_board.chat.store import MessageStore
from bulletin_board.users.models import User
from bulletin_board.users.tokens import access_token_for_user

TEST_PASSWORD = "Bulletin-Pass!123"  # noqa: S105


@pytest.fixture
def user(db) -> User:
    return User.objects.create_user(username="user", password=TEST_PASSWORD)


@pytest.fixture
def alice(db) -> User:
    return User.objects.create_user(username="alice", password=TEST_PASSWORD)


@pytest.fixture
def bob(db) -> User:
    return User.objects.create_user(username="bob", password=TEST_PASSWORD)


@pytest.fixture
def alice_token(alice) -> str:
    return access_token_for_user(alice)


@pytest.fixture
def bob_token(bob) -> str:
    return access_token_for_user(bob)


@dataclass
class RecordingTransport:
    """In-memory transport that records every emit and close."""

    sent: list[tuple[Any, str, Any]] = field(default_factory=list)
    closed: list[Any] = field(default_factory=list)

    async def emit(self, connection: Any, event: str, data: Any) -> None:
        self.sent.append((connection, event, data))

    async def close(self, connection: Any) -> None:
        self.closed.append(connection)

    def events_for(self, connection: Any) -> list[tuple[str, Any]]:
        return [(event, data) for conn, event, data in self.sent if conn == connection]

    def event_names_for(self, connection: Any) -> list[str]:
        return [event for event, _ in self.events_for(connection)]


@dataclass
class ChatHarness:
    """Collaborators shared by every session, as the Socket.IO gateway wires them."""

    transport: RecordingTransport
    presence: PresenceTable
    store: MessageStore
    verifier: IdentityVerifier
    directory: UserDirectory
    router: Router

    def session(self, connection: Any) -> SessionHandler:
        return SessionHandler(
            connection,
            transport=self.transport,
            presence=self.presence,
            store=self.store,
            router=self.router,
            verifier=self.verifier,
            directory=self.directory,
        )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def harness(transport) -> ChatHarness:
    presence = PresenceTable()
    return ChatHarness(
        transport=transport,
        presence=presence,
        store=MessageStore(),
        verifier=IdentityVerifier(),
        directory=UserDirectory(),
        router=Router(presence, transport),
    )
