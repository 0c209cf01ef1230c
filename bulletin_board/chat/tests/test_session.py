from datetime import timedelta
from unittest import mock

import pytest
from asgiref.sync import async_to_sync

from bulletin_board.chat.exceptions import AlreadyAuthenticated
from bulletin_board.chat.exceptions import PersistenceError
from bulletin_board.chat.exceptions import SessionClosed
from bulletin_board.chat.exceptions import Unauthorized
from bulletin_board.chat.models import ChatMessage
from bulletin_board.chat.router import DeliveryStatus
from bulletin_board.chat.session import AUTH_ERROR_PAYLOAD
from bulletin_board.chat.session import RequestKind
from bulletin_board.chat.session import SessionState
from bulletin_board.chat.session import transition
from bulletin_board.users.tokens import token_for_user

# Sessions reach the ORM through database_sync_to_async.
pytestmark = pytest.mark.django_db(transaction=True)

A = SessionState.AUTHENTICATED
U = SessionState.UNAUTHENTICATED
C = SessionState.CLOSED


def handle(session, kind, data=None):
    async_to_sync(session.handle)(kind, data)


def authenticated_session(harness, connection, token):
    session = harness.session(connection)
    handle(session, RequestKind.AUTHENTICATE, token)
    assert session.state is SessionState.AUTHENTICATED
    return session


class TestTransition:
    @pytest.mark.parametrize(
        ("state", "kind", "expected"),
        [
            (U, RequestKind.AUTHENTICATE, A),
            (U, RequestKind.DISCONNECT, C),
            (A, RequestKind.PRIVATE_MESSAGE, A),
            (A, RequestKind.FETCH_MESSAGES, A),
            (A, RequestKind.DISCONNECT, C),
        ],
    )
    def test_legal_moves(self, state, kind, expected):
        assert transition(state, kind) is expected

    def test_failed_authentication_closes(self):
        assert transition(U, RequestKind.AUTHENTICATE, succeeded=False) is C

    @pytest.mark.parametrize(
        "kind",
        [RequestKind.PRIVATE_MESSAGE, RequestKind.FETCH_MESSAGES],
    )
    def test_requests_before_authentication(self, kind):
        with pytest.raises(Unauthorized):
            transition(U, kind)

    def test_authenticate_twice(self):
        with pytest.raises(AlreadyAuthenticated):
            transition(A, RequestKind.AUTHENTICATE)

    @pytest.mark.parametrize("kind", list(RequestKind))
    def test_closed_is_terminal(self, kind):
        with pytest.raises(SessionClosed):
            transition(C, kind)


class TestAuthenticate:
    def test_success_registers_presence(self, harness, transport, alice, alice_token):
        session = harness.session("c1")

        handle(session, RequestKind.AUTHENTICATE, alice_token)

        assert session.state is SessionState.AUTHENTICATED
        assert session.principal.id == alice.id
        assert harness.presence.lookup(alice.id) == "c1"
        assert transport.events_for("c1") == [
            ("authenticated", {"id": alice.id, "username": "alice"}),
        ]

    def test_accepts_token_object(self, harness, alice, alice_token):
        session = harness.session("c1")
        handle(session, RequestKind.AUTHENTICATE, {"token": alice_token})
        assert harness.presence.lookup(alice.id) == "c1"

    def test_expired_token_closes_connection(self, harness, transport, alice):
        access = token_for_user(alice).access_token
        access.set_exp(lifetime=timedelta(seconds=-30))
        session = harness.session("c1")

        handle(session, RequestKind.AUTHENTICATE, str(access))

        assert transport.events_for("c1") == [("auth_error", AUTH_ERROR_PAYLOAD)]
        assert transport.closed == ["c1"]
        assert session.state is SessionState.CLOSED
        assert session.principal is None
        assert len(harness.presence) == 0

    def test_garbage_token(self, harness, transport):
        session = harness.session("c1")
        handle(session, RequestKind.AUTHENTICATE, "not-a-token")
        assert transport.event_names_for("c1") == ["auth_error"]
        assert transport.closed == ["c1"]

    def test_second_authenticate_is_rejected(self, harness, transport, alice_token, bob_token):
        session = authenticated_session(harness, "c1", alice_token)

        handle(session, RequestKind.AUTHENTICATE, bob_token)

        assert transport.events_for("c1")[-1] == (
            "chat_error",
            {"reason": "AlreadyAuthenticated", "message": "Connection is already authenticated"},
        )
        assert session.principal.username == "alice"
        assert session.state is SessionState.AUTHENTICATED


class TestUnauthenticatedRequests:
    def test_private_message_rejected_without_storing(self, harness, transport, bob):
        session = harness.session("c1")

        handle(
            session,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "bob", "message": "hi"},
        )

        assert transport.events_for("c1") == [
            ("chat_error", {"reason": "Unauthorized", "message": "Unauthorized"}),
        ]
        assert ChatMessage.objects.count() == 0
        assert session.state is SessionState.UNAUTHENTICATED

    def test_fetch_rejected(self, harness, transport):
        session = harness.session("c1")
        handle(session, RequestKind.FETCH_MESSAGES, {"otherUserId": 1})
        assert transport.events_for("c1")[0][1]["reason"] == "Unauthorized"
        assert session.state is SessionState.UNAUTHENTICATED


class TestPrivateMessage:
    def test_online_receiver_gets_message_and_sender_gets_echo(
        self,
        harness,
        transport,
        alice,
        bob,
        alice_token,
        bob_token,
    ):
        sender = authenticated_session(harness, "alice-c", alice_token)
        authenticated_session(harness, "bob-c", bob_token)

        handle(
            sender,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "bob", "message": "hi"},
        )

        echo = transport.events_for("alice-c")[-1]
        delivered = transport.events_for("bob-c")[-1]
        assert echo[0] == delivered[0] == "message"
        assert echo[1] == delivered[1]
        payload = delivered[1]
        assert payload["message"] == "hi"
        assert payload["sender_id"] == alice.id
        assert payload["receiver_id"] == bob.id
        assert payload["senderId"] == alice.id
        assert payload["senderUsername"] == "alice"
        assert payload["id"] == ChatMessage.objects.get().id

    def test_offline_receiver_fetches_later(self, harness, transport, alice, bob, alice_token, bob_token):
        sender = authenticated_session(harness, "alice-c", alice_token)

        handle(
            sender,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "bob", "message": "are you there?"},
        )

        assert transport.event_names_for("alice-c") == ["authenticated", "message"]
        assert ChatMessage.objects.filter(receiver=bob).count() == 1

        receiver = authenticated_session(harness, "bob-c", bob_token)
        handle(receiver, RequestKind.FETCH_MESSAGES, {"otherUserId": alice.id})

        event, history = transport.events_for("bob-c")[-1]
        assert event == "previous_messages"
        assert [m["message"] for m in history] == ["are you there?"]
        assert history[0]["sender_username"] == "alice"

    def test_unknown_receiver(self, harness, transport, alice_token):
        session = authenticated_session(harness, "c1", alice_token)

        handle(
            session,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "nobody", "message": "hi"},
        )

        assert transport.events_for("c1")[-1] == (
            "chat_error",
            {"reason": "NotFound", "message": "Receiver not found"},
        )
        assert ChatMessage.objects.count() == 0
        assert session.state is SessionState.AUTHENTICATED

    @pytest.mark.parametrize("body", ["", "   ", None, 42])
    def test_blank_message(self, harness, transport, bob, alice_token, body):
        session = authenticated_session(harness, "c1", alice_token)

        handle(
            session,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "bob", "message": body},
        )

        assert transport.events_for("c1")[-1][1]["reason"] == "InvalidMessage"
        assert ChatMessage.objects.count() == 0

    @pytest.mark.parametrize("data", [None, "bob", {"message": "hi"}])
    def test_malformed_payload(self, harness, transport, alice_token, data):
        session = authenticated_session(harness, "c1", alice_token)
        handle(session, RequestKind.PRIVATE_MESSAGE, data)
        assert transport.events_for("c1")[-1][1]["reason"] == "InvalidRequest"

    def test_store_failure_sends_no_echo(self, harness, transport, bob, alice_token, bob_token):
        session = authenticated_session(harness, "c1", alice_token)
        authenticated_session(harness, "bob-c", bob_token)

        with mock.patch.object(
            harness.store,
            "aappend",
            side_effect=PersistenceError,
        ):
            handle(
                session,
                RequestKind.PRIVATE_MESSAGE,
                {"receiverUsername": "bob", "message": "hi"},
            )

        assert transport.events_for("c1")[-1] == (
            "chat_error",
            {"reason": "PersistenceError", "message": "Message store unavailable"},
        )
        assert "message" not in transport.event_names_for("bob-c")
        assert session.state is SessionState.AUTHENTICATED

    def test_message_to_self_is_echoed_once(self, harness, transport, alice_token):
        session = authenticated_session(harness, "c1", alice_token)

        handle(
            session,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "alice", "message": "note to self"},
        )

        assert transport.event_names_for("c1") == ["authenticated", "message"]

    @pytest.mark.parametrize("receiver_token", [None, "not-a-token"])
    def test_unauthenticated_receiver_connection_gets_nothing(
        self,
        harness,
        transport,
        bob,
        alice_token,
        receiver_token,
    ):
        receiver = harness.session("bob-c")
        if receiver_token is not None:
            handle(receiver, RequestKind.AUTHENTICATE, receiver_token)
        sender = authenticated_session(harness, "alice-c", alice_token)

        statuses = []
        deliver = harness.router.deliver

        async def recording_deliver(*args, **kwargs):
            statuses.append(await deliver(*args, **kwargs))
            return statuses[-1]

        with mock.patch.object(harness.router, "deliver", side_effect=recording_deliver):
            handle(
                sender,
                RequestKind.PRIVATE_MESSAGE,
                {"receiverUsername": "bob", "message": "hi bob"},
            )

        assert statuses == [DeliveryStatus.BUFFERED]
        assert "message" not in transport.event_names_for("bob-c")
        assert ChatMessage.objects.get().receiver_id == bob.id


class TestFetchMessages:
    def test_returns_ordered_conversation(self, harness, transport, alice, bob, alice_token):
        harness.store.append(alice.id, bob.id, "one")
        harness.store.append(bob.id, alice.id, "two")
        harness.store.append(alice.id, bob.id, "three")
        session = authenticated_session(harness, "c1", alice_token)

        handle(session, RequestKind.FETCH_MESSAGES, {"otherUserId": str(bob.id)})

        event, history = transport.events_for("c1")[-1]
        assert event == "previous_messages"
        assert [m["message"] for m in history] == ["one", "two", "three"]

    @pytest.mark.parametrize("data", [None, {}, {"otherUserId": "bob"}, {"otherUserId": True}])
    def test_invalid_other_user(self, harness, transport, alice_token, data):
        session = authenticated_session(harness, "c1", alice_token)
        handle(session, RequestKind.FETCH_MESSAGES, data)
        assert transport.events_for("c1")[-1][1]["reason"] == "InvalidRequest"

    @pytest.mark.parametrize(
        "other_user_id",
        [0, -1, "0", 10**20, str(2**63), 2**63],
    )
    def test_other_user_id_out_of_range(self, harness, transport, alice_token, other_user_id):
        session = authenticated_session(harness, "c1", alice_token)

        handle(session, RequestKind.FETCH_MESSAGES, {"otherUserId": other_user_id})

        assert transport.events_for("c1")[-1][0] == "chat_error"
        assert transport.events_for("c1")[-1][1]["reason"] == "InvalidRequest"
        assert session.state is SessionState.AUTHENTICATED

    def test_largest_id_is_accepted(self, harness, transport, alice_token):
        session = authenticated_session(harness, "c1", alice_token)

        handle(session, RequestKind.FETCH_MESSAGES, {"otherUserId": 2**63 - 1})

        assert transport.events_for("c1")[-1] == ("previous_messages", [])


class TestDisconnect:
    def test_deregisters_presence(self, harness, alice, alice_token):
        session = authenticated_session(harness, "c1", alice_token)

        handle(session, RequestKind.DISCONNECT)

        assert session.state is SessionState.CLOSED
        assert harness.presence.lookup(alice.id) is None

    def test_unauthenticated_disconnect(self, harness, transport):
        session = harness.session("c1")
        handle(session, RequestKind.DISCONNECT)
        assert session.state is SessionState.CLOSED
        assert transport.sent == []

    def test_events_after_close_are_dropped(self, harness, transport, alice_token):
        session = authenticated_session(harness, "c1", alice_token)
        handle(session, RequestKind.DISCONNECT)
        sent_before = list(transport.sent)

        handle(session, RequestKind.FETCH_MESSAGES, {"otherUserId": 1})
        handle(session, RequestKind.AUTHENTICATE, alice_token)

        assert transport.sent == sent_before

    def test_stale_connection_teardown_keeps_reconnected_session(
        self,
        harness,
        transport,
        alice,
        bob,
        alice_token,
        bob_token,
    ):
        old = authenticated_session(harness, "alice-old", alice_token)
        authenticated_session(harness, "alice-new", alice_token)

        # The old socket's disconnect arrives after the reconnect.
        handle(old, RequestKind.DISCONNECT)
        assert harness.presence.lookup(alice.id) == "alice-new"

        sender = authenticated_session(harness, "bob-c", bob_token)
        handle(
            sender,
            RequestKind.PRIVATE_MESSAGE,
            {"receiverUsername": "alice", "message": "still there?"},
        )

        assert transport.event_names_for("alice-new")[-1] == "message"
        assert "message" not in transport.event_names_for("alice-old")

    def test_in_flight_result_discarded_after_close(self, harness, transport, alice_token):
        session = authenticated_session(harness, "c1", alice_token)

        async def close_mid_fetch(user_a, user_b):
            session.close()
            return []

        with mock.patch.object(harness.store, "ahistory", side_effect=close_mid_fetch):
            handle(session, RequestKind.FETCH_MESSAGES, {"otherUserId": 2})

        assert transport.event_names_for("c1") == ["authenticated"]
