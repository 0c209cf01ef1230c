"""Bounded ORM access from async socket handlers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from typing import Any
from typing import TypeVar

from channels.db import database_sync_to_async

from .exceptions import PersistenceError

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable

T = TypeVar("T")


async def run_with_timeout(
    func: Callable[..., T],
    *args: Any,
    timeout: float | None,
) -> T:
    """Run blocking ORM code off the event loop, failing after ``timeout``.

    The worker thread is not interrupted on timeout; only the caller stops
    waiting for it.
    """

    try:
        return await asyncio.wait_for(
            database_sync_to_async(func)(*args),
            timeout=timeout,
        )
    except TimeoutError as exc:
        msg = f"Store did not answer within {timeout}s"
        raise PersistenceError(msg) from exc
