from __future__ import annotations

import hmac
from typing import Protocol

from roster_sync.models.session_state import Role

"""Authenticator capability.

The orchestrator only knows ``authenticate(username, password) -> Role``; the
fixed shared credential pair is one implementation and can be swapped without
touching the orchestrator.
"""

__all__ = [
    "AuthError",
    "Authenticator",
    "FixedCredentialAuthenticator",
    "INVALID_CREDENTIALS_MESSAGE",
]

INVALID_CREDENTIALS_MESSAGE = "Tài khoản hoặc mật khẩu không chính xác."


class AuthError(Exception):
    """Credential mismatch. Local to the login attempt."""


class Authenticator(Protocol):
    def authenticate(self, username: str, password: str) -> Role: ...


class FixedCredentialAuthenticator:
    """Case-sensitive exact match against one configured username/password pair."""

    def __init__(self, username: str, password: str) -> None:
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")

    def authenticate(self, username: str, password: str) -> Role:
        user_ok = hmac.compare_digest(username.encode("utf-8"), self._username)
        pass_ok = hmac.compare_digest(password.encode("utf-8"), self._password)
        if not (user_ok and pass_ok):
            raise AuthError(INVALID_CREDENTIALS_MESSAGE)
        return Role.ADMIN
