"""
Abstract Identity Provider Interface

The ledger core does not authenticate anyone. It only needs to know who the
current user is, and to be told when that changes. Login, registration and
logout are passed through for the presentation layer's convenience.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from budget_tracker.models.ledger import AuthResult, UserIdentity

AuthStateCallback = Callable[[Optional[UserIdentity]], None]


class IdentityProvider(ABC):
    """Contract for the external authentication service."""

    @abstractmethod
    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Observe the current identity.

        ``callback`` is invoked with the current user (or None) when the
        observer is registered and again on every change.

        Returns:
            A function that stops the observation
        """
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> AuthResult:
        pass

    @abstractmethod
    async def logout(self) -> AuthResult:
        pass
