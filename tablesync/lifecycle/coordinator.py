"""Write-slot lifecycle: submit, track pending, confirm, refresh.

One coordinator owns one slot bound to one table. At most one operation is
pending per slot and at most one cancellation token is live; starting a new
write always cancels the previous poll before the new one begins, so a
superseded confirmation can never trigger a refresh.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from tablesync.errors import (
    InvalidTransition,
    PollTransientError,
    SlotBusyError,
    TableSyncError,
)
from tablesync.lifecycle.poller import CancellationToken, ConfirmationPoller, ErrorPolicy, PollTask
from tablesync.lifecycle.submitter import OperationSubmitter
from tablesync.models import (
    Identity,
    OperationKind,
    PendingOperation,
    PollOutcome,
    PollStatus,
    ResourceDescriptor,
    Row,
)
from tablesync.network.base import ReadAccessor
from tablesync.statements import Parameter, insert_row_statement, select_all_statement

LOGGER = logging.getLogger(__name__)


def default_error_policy(exc: BaseException) -> bool:
    """Return True when a failed status query should be retried next tick."""

    return isinstance(exc, (PollTransientError, OSError, TimeoutError))


class SlotState(enum.Enum):
    IDLE = "IDLE"
    SUBMITTING = "SUBMITTING"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    SUPERSEDED = "SUPERSEDED"


@dataclass
class SlotTracker:
    state: SlotState = SlotState.IDLE
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: SlotState) -> None:
        if not self._is_valid_transition(self.state, next_state):
            raise InvalidTransition(
                f"Invalid slot transition {self.state.value} → {next_state.value}",
                code="slot_transition",
            )
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    @staticmethod
    def _is_valid_transition(current: SlotState, nxt: SlotState) -> bool:
        allowed = {
            SlotState.IDLE: {SlotState.SUBMITTING},
            SlotState.SUBMITTING: {SlotState.PENDING, SlotState.IDLE},
            SlotState.PENDING: {SlotState.CONFIRMED, SlotState.FAILED, SlotState.SUPERSEDED},
            SlotState.CONFIRMED: {SlotState.IDLE},
            SlotState.FAILED: {SlotState.IDLE},
            SlotState.SUPERSEDED: {SlotState.IDLE, SlotState.SUBMITTING},
        }
        return nxt in allowed.get(current, set())


Listener = Callable[[SlotState, "LifecycleCoordinator"], None]


@dataclass
class LifecycleCoordinator:
    resource: ResourceDescriptor
    submitter: OperationSubmitter
    poller: ConfirmationPoller
    reader: ReadAccessor
    interval_ms: int = 1500
    is_transient: ErrorPolicy = default_error_policy
    tracker: SlotTracker = field(default_factory=SlotTracker)

    last_outcome: Optional[PollOutcome] = field(default=None, init=False)
    last_error: Optional[BaseException] = field(default=None, init=False)
    refresh_count: int = field(default=0, init=False)

    _pending: Optional[PendingOperation] = field(default=None, init=False, repr=False)
    _token: Optional[CancellationToken] = field(default=None, init=False, repr=False)
    _poll: Optional[PollTask] = field(default=None, init=False, repr=False)
    _watcher: Optional[asyncio.Task[None]] = field(default=None, init=False, repr=False)
    _release_requested: bool = field(default=False, init=False, repr=False)
    _rows: List[Row] = field(default_factory=list, init=False, repr=False)
    _listeners: List[Listener] = field(default_factory=list, init=False, repr=False)
    _refresh_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def state(self) -> SlotState:
        return self.tracker.state

    @property
    def pending(self) -> Optional[PendingOperation]:
        return self._pending

    @property
    def rows(self) -> tuple[Row, ...]:
        return tuple(self._rows)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def write_row(self, identity: Identity, name: str) -> PendingOperation:
        return await self.submit_write(identity, insert_row_statement(self.resource.name), [name])

    async def submit_write(
        self,
        identity: Identity,
        statement: str,
        parameters: Sequence[Parameter] = (),
    ) -> PendingOperation:
        """Submit a write for this slot and start watching it.

        Returns as soon as the network accepted the write; confirmation and
        the follow-up refresh happen in the background (see ``join``).
        """

        # another write may claim the slot while this one waits on the refresh
        while True:
            if self.state is SlotState.SUBMITTING:
                raise SlotBusyError("A write is already being submitted for this slot.", code="slot_busy")
            if self.state not in {SlotState.CONFIRMED, SlotState.FAILED}:
                break
            watcher = self._watcher
            if watcher is None or watcher.done():
                self._transition(SlotState.IDLE)
            else:
                await self.join()
        if self.state is SlotState.PENDING:
            self._supersede("new write requested")

        self._release_requested = False
        self.last_error = None
        self._transition(SlotState.SUBMITTING)
        try:
            receipt = await self.submitter.submit(
                identity,
                self.resource.context_id,
                statement,
                parameters,
                kind=OperationKind.WRITE,
            )
        except BaseException as exc:
            if not isinstance(exc, asyncio.CancelledError):
                self.last_error = exc
            self._transition(SlotState.IDLE)
            raise

        pending = PendingOperation.from_receipt(receipt)
        self._pending = pending
        token = self._new_token(pending.handle)
        self._transition(SlotState.PENDING)
        if self._release_requested:
            self._supersede("slot relinquished during submission")
            self._transition(SlotState.IDLE)
            return pending

        poll = self.poller.poll(
            pending.handle,
            pending.context_id,
            self.interval_ms,
            is_transient=self.is_transient,
            token=token,
        )
        self._poll = poll
        self._watcher = asyncio.create_task(self._watch(poll, token), name=f"watch-{pending.handle}")
        return pending

    def relinquish(self) -> None:
        """Give up the slot (navigation away, disconnect) without refreshing."""

        state = self.state
        if state is SlotState.SUBMITTING:
            self._release_requested = True
        elif state is SlotState.PENDING:
            self._supersede("slot relinquished")
            self._transition(SlotState.IDLE)
        elif state is SlotState.CONFIRMED:
            LOGGER.info("Discarding in-flight refresh for %s", self.resource.name)
            self._cancel_active()
            self._transition(SlotState.IDLE)

    async def join(self) -> None:
        """Wait for the current watcher (poll plus refresh) to finish."""

        watcher = self._watcher
        if watcher is None or watcher.done():
            return
        await asyncio.wait({watcher})

    async def aclose(self) -> None:
        watcher = self._watcher
        self.relinquish()
        if watcher is not None and not watcher.done():
            await asyncio.wait({watcher})

    async def refresh(self) -> list[Row]:
        """Read the bound table and replace the local rows.

        Refreshes run one at a time, so a read started earlier never
        overwrites the rows of a read started after it.
        """

        async with self._refresh_lock:
            rows = await asyncio.to_thread(
                self.reader.query,
                self.resource.context_id,
                self.resource.name,
                select_all_statement(self.resource.name),
            )
            self._rows = list(rows)
            self.refresh_count += 1
        LOGGER.debug("Refreshed %s rows for %s", len(self._rows), self.resource.name)
        return list(self._rows)

    async def _watch(self, poll: PollTask, token: CancellationToken) -> None:
        try:
            outcome = await poll.result()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Poll for %s crashed", poll.handle)
            outcome = PollOutcome(status=PollStatus.ABANDONED, handle=poll.handle, error=exc)
        if not self._is_current(token):
            LOGGER.debug("Ignoring stale outcome for %s", poll.handle)
            return
        self.last_outcome = outcome
        self._pending = None
        if outcome.completed:
            self._transition(SlotState.CONFIRMED)
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("Refresh after confirmation of %s failed", poll.handle)
                self.last_error = exc
            if not self._is_current(token):
                return
        else:
            self.last_error = outcome.error or TableSyncError(
                (outcome.report.error if outcome.report else None) or f"Operation {poll.handle} failed",
                code=f"poll_{outcome.status.value}",
            )
            LOGGER.warning("Write %s did not confirm: %s", poll.handle, outcome.status.value)
            self._transition(SlotState.FAILED)
        self._token = None
        self._poll = None
        self._transition(SlotState.IDLE)

    def _new_token(self, label: str) -> CancellationToken:
        self._cancel_active()
        token = CancellationToken(label=label)
        self._token = token
        return token

    def _cancel_active(self) -> None:
        if self._token is not None:
            self._token.cancel()
        if self._poll is not None:
            self._poll.cancel()
        if self._watcher is not None and not self._watcher.done():
            self._watcher.cancel()
        self._token = None
        self._poll = None
        self._watcher = None

    def _supersede(self, reason: str) -> None:
        pending = self._pending
        self._cancel_active()
        self._pending = None
        self._transition(SlotState.SUPERSEDED)
        LOGGER.info(
            "Superseded pending write %s on %s: %s",
            pending.handle if pending else None,
            self.resource.name,
            reason,
        )

    def _is_current(self, token: CancellationToken) -> bool:
        return self._token is token and not token.cancelled

    def _transition(self, next_state: SlotState) -> None:
        self.tracker.transition(next_state)
        LOGGER.debug("Slot %s -> %s", self.resource.name, next_state.value)
        for listener in list(self._listeners):
            try:
                listener(next_state, self)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Slot listener failed")
