from asgiref.sync import async_to_sync

from bulletin_board.chat.presence import PresenceTable
from bulletin_board.chat.router import DeliveryStatus
from bulletin_board.chat.router import Router


class TestRouter:
    def setup_method(self):
        self.presence = PresenceTable()

    def test_delivers_to_online_user(self, transport):
        self.presence.register(2, "bob-c")
        router = Router(self.presence, transport)

        status = async_to_sync(router.deliver)({"message": "hi"}, 2)

        assert status is DeliveryStatus.DELIVERED
        assert transport.sent == [("bob-c", "message", {"message": "hi"})]

    def test_buffers_for_offline_user(self, transport):
        router = Router(self.presence, transport)

        status = async_to_sync(router.deliver)({"message": "hi"}, 2)

        assert status is DeliveryStatus.BUFFERED
        assert transport.sent == []

    def test_follows_latest_connection(self, transport):
        self.presence.register(2, "bob-old")
        self.presence.register(2, "bob-new")
        router = Router(self.presence, transport)

        async_to_sync(router.deliver)({"message": "hi"}, 2, event="notice")

        assert transport.sent == [("bob-new", "notice", {"message": "hi"})]
