"""
Session Binding

Follows the identity provider and keeps exactly one pair of live
subscriptions (transactions + categories) open for the signed-in user.

State machine:
    ANONYMOUS --user--> BINDING --both feeds delivered--> BOUND
    BINDING/BOUND --no user--> ANONYMOUS (mirror cleared synchronously)
    BINDING/BOUND --other user--> old pair closed, BINDING for the new user

Every subscription callback carries the binding it was opened for. Once that
binding is torn down its callbacks are ignored, so a snapshot already in
flight from a closed subscription never reaches the mirror.
"""

from enum import Enum
from typing import Callable, Optional

from budget_tracker.events import LedgerEventLogger
from budget_tracker.ledger.adapter import RemoteStoreAdapter
from budget_tracker.ledger.store import LedgerStore
from budget_tracker.models.ledger import AuthResult, LedgerKind, UserIdentity
from budget_tracker.services.identity import IdentityProvider


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    BINDING = "binding"
    BOUND = "bound"


class _Binding:
    """Subscriptions opened for one owner; inactive once torn down."""

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        self.active = True
        self.delivered: set[LedgerKind] = set()
        self.unsubscribers: list[Callable[[], None]] = []


class SessionBinding:
    """
    Binds the ledger store to the current identity.

    Args:
        identity: Identity provider to follow
        adapter: Adapter used to open the live queries
        store: Ledger store receiving the snapshots
        event_logger: Structured event logger
    """

    def __init__(
        self,
        identity: IdentityProvider,
        adapter: RemoteStoreAdapter,
        store: LedgerStore,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._identity = identity
        self._adapter = adapter
        self._store = store
        self._events = event_logger or LedgerEventLogger()

        self._state = SessionState.ANONYMOUS
        self._binding: Optional[_Binding] = None
        self._user: Optional[UserIdentity] = None
        self._stop_observing: Optional[Callable[[], None]] = None
        self._auth_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def owner_id(self) -> Optional[str]:
        return self._binding.owner_id if self._binding else None

    @property
    def current_user(self) -> Optional[UserIdentity]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def error(self) -> Optional[str]:
        """Last login/register/logout failure."""
        return self._auth_error

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Begin following the identity provider."""
        if self._stop_observing is None:
            self._stop_observing = self._identity.on_auth_state_change(self._on_identity)

    def stop(self) -> None:
        """Stop following identity changes and drop the current binding."""
        if self._stop_observing is not None:
            self._stop_observing()
            self._stop_observing = None
        self._user = None
        self.unbind()

    def bind(self, owner_id: str) -> None:
        """Open both feeds for ``owner_id``, closing any previous pair first."""
        if self._binding is not None:
            if self._binding.owner_id == owner_id:
                return
            self.unbind()

        binding = _Binding(owner_id)
        self._binding = binding
        self._state = SessionState.BINDING
        self._events.log_session_binding(owner_id)
        self._store.begin_session(owner_id)

        for kind in (LedgerKind.TRANSACTIONS, LedgerKind.CATEGORIES):
            unsubscribe = self._adapter.subscribe(
                kind,
                owner_id,
                on_change=self._snapshot_handler(binding, kind),
                on_error=self._error_handler(binding, kind),
            )
            binding.unsubscribers.append(unsubscribe)

    def unbind(self) -> None:
        """Close both feeds and clear the mirror."""
        binding = self._binding
        self._binding = None
        self._state = SessionState.ANONYMOUS
        if binding is None:
            return

        binding.active = False
        for unsubscribe in binding.unsubscribers:
            unsubscribe()
        self._store.end_session()
        self._events.log_session_cleared(binding.owner_id)

    # -------------------------------------------------------------------------
    # Authentication pass-throughs
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResult:
        self._auth_error = None
        return self._auth_outcome("login", await self._identity.login(email, password))

    async def register(self, email: str, password: str, display_name: Optional[str] = None) -> AuthResult:
        self._auth_error = None
        return self._auth_outcome("register", await self._identity.register(email, password, display_name))

    async def logout(self) -> AuthResult:
        self._auth_error = None
        return self._auth_outcome("logout", await self._identity.logout())

    def clear_error(self) -> None:
        self._auth_error = None

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def _on_identity(self, user: Optional[UserIdentity]) -> None:
        self._user = user
        if user is None:
            self.unbind()
        else:
            self.bind(user.uid)

    def _snapshot_handler(self, binding: _Binding, kind: LedgerKind):
        def handle(records: list) -> None:
            if not binding.active:
                self._events.log_stale_snapshot_dropped(binding.owner_id, kind.value)
                return
            self._store.apply_snapshot(kind, records)
            binding.delivered.add(kind)
            if self._state == SessionState.BINDING and len(binding.delivered) == len(LedgerKind):
                self._state = SessionState.BOUND
                self._events.log_session_bound(binding.owner_id)

        return handle

    def _error_handler(self, binding: _Binding, kind: LedgerKind):
        def handle(message: str) -> None:
            if not binding.active:
                self._events.log_stale_snapshot_dropped(binding.owner_id, kind.value)
                return
            self._store.record_subscription_error(kind, message)

        return handle

    def _auth_outcome(self, operation: str, result: AuthResult) -> AuthResult:
        if not result.success:
            self._auth_error = result.error
            self._events.log_auth_failed(operation, result.error or "unknown error")
        return result
