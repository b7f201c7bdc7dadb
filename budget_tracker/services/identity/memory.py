"""
In-Memory Identity Provider

Accounts live in a dictionary. Observers are notified synchronously when the
signed-in user changes, which keeps session tests deterministic.
"""

import hashlib
import hmac
import os
from typing import Callable, Optional
from uuid import uuid4

from budget_tracker.models.ledger import AuthResult, UserIdentity
from budget_tracker.services.identity.interface import AuthStateCallback, IdentityProvider

MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 100_000


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)


class InMemoryIdentityProvider(IdentityProvider):
    """Identity provider for tests and local runs."""

    def __init__(self):
        self._accounts: dict[str, tuple[UserIdentity, bytes, bytes]] = {}
        self._current: Optional[UserIdentity] = None
        self._observers: list[AuthStateCallback] = []

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self._current

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._observers.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> AuthResult:
        key = (email or "").strip().lower()
        if not key or "@" not in key:
            return AuthResult(success=False, error="Invalid email address")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return AuthResult(
                success=False,
                error=f"Password should be at least {MIN_PASSWORD_LENGTH} characters",
            )
        if key in self._accounts:
            return AuthResult(success=False, error="Email already in use")

        user = UserIdentity(uid=uuid4().hex, email=key, display_name=display_name)
        salt = os.urandom(16)
        self._accounts[key] = (user, salt, _hash_password(password, salt))
        self.set_user(user)
        return AuthResult(success=True, user=user)

    async def login(self, email: str, password: str) -> AuthResult:
        account = self._accounts.get((email or "").strip().lower())
        if account is None:
            return AuthResult(success=False, error="Invalid email or password")
        user, salt, password_hash = account
        if not hmac.compare_digest(password_hash, _hash_password(password or "", salt)):
            return AuthResult(success=False, error="Invalid email or password")
        self.set_user(user)
        return AuthResult(success=True, user=user)

    async def logout(self) -> AuthResult:
        self.set_user(None)
        return AuthResult(success=True)

    def set_user(self, user: Optional[UserIdentity]) -> None:
        """Switch the signed-in user and notify observers."""
        self._current = user
        for callback in list(self._observers):
            callback(user)
