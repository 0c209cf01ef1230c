"""Bearer token verification for chat sessions.

Tokens are simplejwt access tokens issued by ``/api/v1/auth/jwt/create/``.
Verification is purely cryptographic: the principal is read from the token
claims, the database is never consulted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from bulletin_board.users.tokens import USERNAME_CLAIM

from .exceptions import AuthFailure
from .exceptions import AuthFailureKind


@dataclass(frozen=True)
class Principal:
    id: int
    username: str


def classify_rejected_token(token: str) -> AuthFailureKind:
    """Tell apart why simplejwt rejected ``token``.

    simplejwt collapses most failures into one ``TokenError`` whose message
    differs between releases, so the claims are re-read without verification.
    """

    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return AuthFailureKind.MALFORMED

    exp = claims.get("exp")
    if isinstance(exp, (int, float)) and exp <= timezone.now().timestamp():
        return AuthFailureKind.EXPIRED
    return AuthFailureKind.SIGNATURE_INVALID


class IdentityVerifier:
    def verify(self, token: Any) -> Principal:
        if not isinstance(token, str) or not token.strip():
            msg = "Token missing"
            raise AuthFailure(AuthFailureKind.MALFORMED, msg)

        try:
            validated = AccessToken(token)
        except TokenError as exc:
            raise AuthFailure(classify_rejected_token(token), str(exc)) from exc

        user_id = validated.get(api_settings.USER_ID_CLAIM)
        username = validated.get(USERNAME_CLAIM)
        if user_id is None or not isinstance(username, str) or not username:
            msg = "Token lacks identity claims"
            raise AuthFailure(AuthFailureKind.MALFORMED, msg)

        try:
            principal_id = int(user_id)
        except (TypeError, ValueError) as exc:
            msg = f"Invalid {api_settings.USER_ID_CLAIM} claim"
            raise AuthFailure(AuthFailureKind.MALFORMED, msg) from exc

        return Principal(id=principal_id, username=username)
