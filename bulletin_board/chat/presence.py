"""Which user is reachable on which live connection.

The last authenticated connection of a user wins. Deregistration is a
compare-and-delete so that the teardown of an old connection cannot evict the
entry a reconnect has already replaced it with.
"""

from __future__ import annotations

import threading
from typing import Generic
from typing import TypeVar

ConnectionT = TypeVar("ConnectionT")


class PresenceTable(Generic[ConnectionT]):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[int, ConnectionT] = {}

    def register(self, user_id: int, connection: ConnectionT) -> None:
        with self._lock:
            self._entries[user_id] = connection

    def lookup(self, user_id: int) -> ConnectionT | None:
        with self._lock:
            return self._entries.get(user_id)

    def deregister(self, user_id: int, connection: ConnectionT) -> None:
        with self._lock:
            if self._entries.get(user_id) == connection:
                del self._entries[user_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
