from __future__ import annotations

import asyncio
import re
import threading
from collections import deque
from itertools import count

from tablesync.models import (
    ColumnSpec,
    Identity,
    OperationKind,
    Row,
    StatusReport,
    SubmissionReceipt,
)
from tablesync.network.base import ReadAccessor, SignerProvider, SubmissionTransport, Verifier

_NAME_RE = re.compile(r"VALUES \('((?:[^']|'')*)'")

DEMO_SCHEMA = (
    ColumnSpec(name="id", type="integer", constraints="PRIMARY KEY"),
    ColumnSpec(name="name", type="text"),
    ColumnSpec(name="block", type="text"),
    ColumnSpec(name="tx", type="text"),
)


def confirmed(*resource_ids: str, block: int = 42) -> StatusReport:
    return StatusReport(seen=True, success=True, block_number=block, resource_ids=resource_ids)


def rejected(error: str = "db query execution failed") -> StatusReport:
    return StatusReport(seen=True, success=False, error=error)


UNSEEN = StatusReport.unseen()


class FakeNetwork(SubmissionTransport, Verifier, ReadAccessor):
    """In-memory relay + verifier + read API.

    Status responses are scripted per handle; the last scripted response
    repeats. A write's row appears the first time its handle reports success.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tx_ids = count(1)
        self._row_ids = count(1)
        self.planned: deque[list] = deque()
        self.scripts: dict[str, list] = {}
        self.submissions: list[tuple[Identity, str, OperationKind]] = []
        self.status_calls: list[str] = []
        self.queries: list[tuple[int, str, str]] = []
        self.schemas: dict[str, tuple[ColumnSpec, ...]] = {}
        self.rows: list[Row] = []
        self.submit_error: Exception | None = None
        self._writes: dict[str, str] = {}
        self._applied: set[str] = set()

    def plan(self, *responses) -> None:
        """Script the status responses of the next submitted operation."""

        self.planned.append(list(responses))

    def script(self, handle: str, *responses) -> None:
        with self._lock:
            self.scripts[handle] = list(responses)

    def calls_for(self, handle: str) -> int:
        with self._lock:
            return self.status_calls.count(handle)

    def submit(self, identity, statement, kind):
        with self._lock:
            if self.submit_error is not None:
                raise self.submit_error
            handle = f"0x{next(self._tx_ids):064x}"
            self.submissions.append((identity, statement, kind))
            if self.planned:
                self.scripts[handle] = self.planned.popleft()
            if kind is OperationKind.WRITE:
                match = _NAME_RE.search(statement)
                self._writes[handle] = match.group(1).replace("''", "'") if match else ""
            return SubmissionReceipt(handle=handle, context_id=identity.context_id, kind=kind)

    def get_status(self, context_id, handle):
        with self._lock:
            self.status_calls.append(handle)
            script = self.scripts.get(handle) or [UNSEEN]
            item = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(item, BaseException):
                raise item
            if item.seen and item.success and handle in self._writes and handle not in self._applied:
                self._applied.add(handle)
                self.rows.append(
                    Row(id=next(self._row_ids), name=self._writes[handle], block=str(item.block_number), tx=handle)
                )
            return item

    def get_resource_schema(self, context_id, resource_id):
        with self._lock:
            return self.schemas.get(resource_id, DEMO_SCHEMA)

    def query(self, context_id, resource_name, statement):
        with self._lock:
            self.queries.append((context_id, resource_name, statement))
            return list(self.rows)


class FakeSigner(SignerProvider):
    def __init__(self, identity: Identity | None, error: Exception | None = None) -> None:
        self.identity = identity
        self.error = error

    def get_identity(self) -> Identity:
        if self.error is not None:
            raise self.error
        assert self.identity is not None
        return self.identity

    def get_context_id(self) -> int:
        assert self.identity is not None
        return self.identity.context_id




class GatedReader(ReadAccessor):
    """Read accessor over a FakeNetwork whose first ``hold`` queries stall.

    A stalled query snapshots the rows when it starts and returns that
    snapshot once ``release`` is called, like a slow response.
    """

    def __init__(self, network: FakeNetwork, *, hold: int = 1, error: Exception | None = None) -> None:
        self.network = network
        self.hold = hold
        self.error = error
        self.calls = 0
        self._gate = threading.Event()
        self._lock = threading.Lock()

    def release(self) -> None:
        self._gate.set()

    def query(self, context_id, resource_name, statement):
        rows = self.network.query(context_id, resource_name, statement)
        with self._lock:
            self.calls += 1
            call = self.calls
        if call <= self.hold:
            self._gate.wait(timeout=2)
        if self.error is not None:
            raise self.error
        return rows


async def wait_until(predicate, *, timeout: float = 0.5, interval: float = 0.005) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()
