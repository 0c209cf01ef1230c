from __future__ import annotations

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError

from .db import run_with_timeout
from .exceptions import NotFound
from .exceptions import PersistenceError

User = get_user_model()


class UserDirectory:
    """Resolve receiver usernames to user ids."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = settings.CHAT_STORE_TIMEOUT if timeout is None else timeout

    def resolve_username(self, username: str) -> int:
        try:
            return User.objects.values_list("id", flat=True).get(username=username)
        except User.DoesNotExist as exc:
            raise NotFound from exc
        except DatabaseError as exc:
            raise PersistenceError from exc

    async def aresolve_username(self, username: str) -> int:
        return await run_with_timeout(
            self.resolve_username,
            username,
            timeout=self.timeout,
        )
