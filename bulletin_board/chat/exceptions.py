"""Error taxonomy of the private-messaging core.

``AuthFailure`` ends a session. Every ``ChatError`` rejects a single request
and is reported back to the requesting connection only, as a ``chat_error``
event carrying the error's ``reason``.
"""

from __future__ import annotations

from enum import Enum


class AuthFailureKind(str, Enum):
    MALFORMED = "Malformed"
    EXPIRED = "Expired"
    SIGNATURE_INVALID = "SignatureInvalid"


class AuthFailure(Exception):  # noqa: N818
    def __init__(self, kind: AuthFailureKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(detail or kind.value)


class ChatError(Exception):
    reason = "ChatError"
    default_message = "Chat request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict[str, str]:
        return {"reason": self.reason, "message": self.message}


class Unauthorized(ChatError):  # noqa: N818
    reason = "Unauthorized"
    default_message = "Unauthorized"


class AlreadyAuthenticated(ChatError):  # noqa: N818
    reason = "AlreadyAuthenticated"
    default_message = "Connection is already authenticated"


class NotFound(ChatError):  # noqa: N818
    reason = "NotFound"
    default_message = "Receiver not found"


class InvalidRequest(ChatError):  # noqa: N818
    reason = "InvalidRequest"
    default_message = "Malformed request payload"


class InvalidMessage(ChatError):  # noqa: N818
    reason = "InvalidMessage"
    default_message = "Message must not be empty"


class PersistenceError(ChatError):
    reason = "PersistenceError"
    default_message = "Message store unavailable"


class SessionClosed(Exception):  # noqa: N818
    """Raised for any request on a session that already reached ``Closed``."""
