"""Identity provider package."""

from budget_tracker.services.identity.interface import AuthStateCallback, IdentityProvider
from budget_tracker.services.identity.memory import InMemoryIdentityProvider

__all__ = [
    "AuthStateCallback",
    "IdentityProvider",
    "InMemoryIdentityProvider",
]
