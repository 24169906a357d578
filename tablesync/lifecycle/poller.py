"""Confirmation polling against the verifier.

Polling runs at a fixed wall-clock interval with no backoff. This is a
demonstration-grade policy: the delay is not adjusted for response latency
and a slow verifier simply stretches each cycle.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count
from typing import Optional

from pydantic import ValidationError

from tablesync.errors import PollTransientError, VerifierError
from tablesync.models import OperationHandle, PollOutcome, PollStatus, StatusReport
from tablesync.network.base import Verifier

LOGGER = logging.getLogger(__name__)

ErrorPolicy = Callable[[BaseException], bool]

_token_ids = count(1)


@dataclass
class CancellationToken:
    """One-shot cancellation signal scoped to a single poll."""

    label: str = ""
    token_id: int = field(default_factory=lambda: next(_token_ids))
    _cancelled: bool = field(default=False, init=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            LOGGER.debug("Cancellation raised for token=%s label=%s", self.token_id, self.label)
        self._cancelled = True


class PollTask:
    """Handle to a running poll.

    Once cancelled the result never resolves nor rejects, so callers use
    ``cancel`` only to stop resource use and must not await a cancelled poll.
    A request already in flight is not aborted; its answer is discarded.
    """

    def __init__(
        self,
        handle: OperationHandle,
        token: CancellationToken,
        future: asyncio.Future[PollOutcome],
    ) -> None:
        self.handle = handle
        self.token = token
        self._future = future
        self._task: Optional[asyncio.Task[None]] = None

    def _attach(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        self.token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def done(self) -> bool:
        return self._future.done()

    async def result(self) -> PollOutcome:
        return await asyncio.shield(self._future)

    def __await__(self):
        return self.result().__await__()


@dataclass
class ConfirmationPoller:
    verifier: Verifier
    max_attempts: Optional[int] = None

    def poll(
        self,
        handle: OperationHandle,
        context_id: int,
        interval_ms: int,
        *,
        is_transient: ErrorPolicy,
        token: Optional[CancellationToken] = None,
    ) -> PollTask:
        """Start polling ``handle`` and return immediately.

        ``is_transient`` decides for every failed query whether to keep
        polling (True) or give up with an ``ABANDONED`` outcome (False).
        """

        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        token = token or CancellationToken(label=handle)
        loop = asyncio.get_running_loop()
        future: asyncio.Future[PollOutcome] = loop.create_future()
        poll_task = PollTask(handle, token, future)
        task = asyncio.create_task(
            self._run(handle, context_id, interval_ms / 1000.0, token, is_transient, future),
            name=f"poll-{handle}",
        )

        def _finalise(completed: asyncio.Task[None]) -> None:
            with contextlib.suppress(asyncio.CancelledError):
                exc = completed.exception()
                if exc is not None and not future.done() and not token.cancelled:
                    future.set_exception(exc)

        task.add_done_callback(_finalise)
        poll_task._attach(task)
        return poll_task

    async def _run(
        self,
        handle: OperationHandle,
        context_id: int,
        interval: float,
        token: CancellationToken,
        is_transient: ErrorPolicy,
        future: asyncio.Future[PollOutcome],
    ) -> None:
        attempts = 0
        while not token.cancelled:
            attempts += 1
            try:
                raw = await asyncio.to_thread(self.verifier.get_status, context_id, handle)
                report = self._coerce_report(raw)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                if token.cancelled:
                    return
                if self._classify(is_transient, exc):
                    LOGGER.debug("Transient poll error handle=%s attempt=%s: %s", handle, attempts, exc)
                else:
                    LOGGER.warning("Abandoning poll handle=%s after terminal error: %s", handle, exc)
                    self._resolve(future, token, PollOutcome(
                        status=PollStatus.ABANDONED, handle=handle, error=exc, attempts=attempts,
                    ))
                    return
            else:
                if token.cancelled:
                    return
                if report.seen:
                    status = PollStatus.CONFIRMED if report.success else PollStatus.FAILED
                    LOGGER.info("Operation %s %s after %s attempt(s)", handle, status.value, attempts)
                    self._resolve(future, token, PollOutcome(
                        status=status, handle=handle, report=report, attempts=attempts,
                    ))
                    return
                LOGGER.debug("Operation %s not yet seen (attempt %s)", handle, attempts)
            if self.max_attempts and attempts >= self.max_attempts:
                exhausted = PollTransientError(
                    f"Operation {handle} not confirmed after {attempts} attempt(s).",
                    code="poll_exhausted",
                )
                self._resolve(future, token, PollOutcome(
                    status=PollStatus.ABANDONED, handle=handle, error=exhausted, attempts=attempts,
                ))
                return
            await asyncio.sleep(interval)

    @staticmethod
    def _coerce_report(raw: object) -> StatusReport:
        if isinstance(raw, StatusReport):
            return raw
        try:
            return StatusReport.model_validate(raw)
        except ValidationError as exc:
            raise VerifierError(f"Unreadable status report: {exc}", code="bad_payload") from exc

    @staticmethod
    def _classify(is_transient: ErrorPolicy, exc: BaseException) -> bool:
        try:
            return bool(is_transient(exc))
        except Exception:  # noqa: BLE001
            LOGGER.exception("Poll error policy failed; treating error as terminal")
            return False

    @staticmethod
    def _resolve(
        future: asyncio.Future[PollOutcome],
        token: CancellationToken,
        outcome: PollOutcome,
    ) -> None:
        if token.cancelled or future.done():
            return
        future.set_result(outcome)
