"""Explicit connect/disconnect lifecycle around a signer provider."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from tablesync.errors import InvalidTransition, NotConnected
from tablesync.models import Identity
from tablesync.network.base import SignerProvider

LOGGER = logging.getLogger(__name__)

DisconnectHook = Callable[[], Awaitable[None] | None]


class SessionState(enum.Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


@dataclass
class SessionTracker:
    """In-memory session state with validated transitions."""

    state: SessionState = SessionState.DISCONNECTED
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: SessionState) -> None:
        if not self._is_valid_transition(self.state, next_state):
            raise InvalidTransition(
                f"Invalid session transition {self.state.value} → {next_state.value}",
                code="session_transition",
            )
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    @staticmethod
    def _is_valid_transition(current: SessionState, nxt: SessionState) -> bool:
        allowed = {
            SessionState.DISCONNECTED: {SessionState.CONNECTING},
            SessionState.CONNECTING: {SessionState.CONNECTED, SessionState.DISCONNECTED},
            SessionState.CONNECTED: {SessionState.DISCONNECTED},
        }
        return nxt in allowed.get(current, set())


@dataclass
class Session:
    """Holds the identity for one user session.

    Every coordinator call receives the identity from here instead of reading
    ambient state; ``disconnect`` drops it and releases dependent slots.
    """

    signer: SignerProvider
    tracker: SessionTracker = field(default_factory=SessionTracker)

    _identity: Optional[Identity] = field(default=None, init=False, repr=False)
    _context_id: Optional[int] = field(default=None, init=False, repr=False)
    _disconnect_hooks: List[DisconnectHook] = field(default_factory=list, init=False, repr=False)

    @property
    def state(self) -> SessionState:
        return self.tracker.state

    @property
    def connected(self) -> bool:
        return self.tracker.state is SessionState.CONNECTED

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    async def connect(self) -> Identity:
        if self.connected and self._identity is not None:
            return self._identity
        self.tracker.transition(SessionState.CONNECTING)
        try:
            identity = await asyncio.to_thread(self.signer.get_identity)
            context_id = await asyncio.to_thread(self.signer.get_context_id)
        except BaseException:
            self.tracker.transition(SessionState.DISCONNECTED)
            raise
        self._identity = identity
        self._context_id = context_id
        self.tracker.transition(SessionState.CONNECTED)
        LOGGER.info("Session connected address=%s context=%s", identity.short_address, context_id)
        return identity

    async def disconnect(self) -> None:
        if not self.connected:
            return
        for hook in list(self._disconnect_hooks):
            try:
                result = hook()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                LOGGER.exception("Disconnect hook failed")
        self._identity = None
        self._context_id = None
        self.tracker.transition(SessionState.DISCONNECTED)
        LOGGER.info("Session disconnected")

    def require_identity(self) -> Identity:
        if not self.connected or self._identity is None:
            raise NotConnected("Connect a signer before submitting operations.", code="not_connected")
        return self._identity

    def require_context_id(self) -> int:
        self.require_identity()
        assert self._context_id is not None
        return self._context_id

    def add_disconnect_hook(self, hook: DisconnectHook) -> None:
        self._disconnect_hooks.append(hook)

    def remove_disconnect_hook(self, hook: DisconnectHook) -> None:
        try:
            self._disconnect_hooks.remove(hook)
        except ValueError:
            pass
