"""Narrow interfaces to the external signer, relay, verifier and read services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from tablesync.models import (
    ColumnSpec,
    Identity,
    OperationHandle,
    OperationKind,
    Row,
    StatusReport,
    SubmissionReceipt,
)


class SignerProvider(ABC):
    """Supplies an authenticated identity; raises NotConnected or AuthRejected."""

    @abstractmethod
    def get_identity(self) -> Identity:
        ...

    @abstractmethod
    def get_context_id(self) -> int:
        ...


class SubmissionTransport(ABC):
    """Delivers a fully bound statement to the network on behalf of an identity."""

    @abstractmethod
    def submit(self, identity: Identity, statement: str, kind: OperationKind) -> SubmissionReceipt:
        ...


class Verifier(ABC):
    @abstractmethod
    def get_status(self, context_id: int, handle: OperationHandle) -> StatusReport:
        ...

    @abstractmethod
    def get_resource_schema(self, context_id: int, resource_id: str) -> Sequence[ColumnSpec]:
        ...


class ReadAccessor(ABC):
    @abstractmethod
    def query(self, context_id: int, resource_name: str, statement: str) -> list[Row]:
        ...
