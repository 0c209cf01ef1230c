"""JWT issuance for the bulletin board.

Tokens carry a ``username`` claim next to simplejwt's ``user_id`` claim so the
chat socket can build a principal without a database round-trip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework_simplejwt.tokens import RefreshToken

if TYPE_CHECKING:  # import for type checking only
    from bulletin_board.users.models import User

USERNAME_CLAIM = "username"


def token_for_user(user: User) -> RefreshToken:
    token = RefreshToken.for_user(user)
    # Custom claims on the refresh token are copied onto derived access tokens.
    token[USERNAME_CLAIM] = user.username
    return token


def access_token_for_user(user: User) -> str:
    return str(token_for_user(user).access_token)
