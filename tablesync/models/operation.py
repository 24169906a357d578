"""Operation, receipt and poll-result models."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

OperationHandle = str


class OperationKind(str, enum.Enum):
    CREATE = "create"
    WRITE = "write"


class SubmissionReceipt(BaseModel):
    """Returned once the network accepted (not confirmed) an operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handle: OperationHandle
    context_id: int = Field(alias="contextId")
    kind: OperationKind
    provisional_name: Optional[str] = Field(default=None, alias="provisionalName")


class PendingOperation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handle: OperationHandle
    context_id: int = Field(alias="contextId")
    kind: OperationKind
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @classmethod
    def from_receipt(cls, receipt: SubmissionReceipt) -> PendingOperation:
        return cls(handle=receipt.handle, contextId=receipt.context_id, kind=receipt.kind)


class StatusReport(BaseModel):
    """Verifier view of one operation handle."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    seen: bool = False
    success: bool = False
    error: Optional[str] = None
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    resource_ids: tuple[str, ...] = Field(default=(), alias="resourceIds")

    @classmethod
    def unseen(cls) -> StatusReport:
        return cls(seen=False, success=False)


class PollStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class PollOutcome(BaseModel):
    """Terminal result of a confirmation poll.

    ``completed`` is true only when the network confirmed the operation;
    ``FAILED`` means the network rejected it and ``ABANDONED`` means polling
    stopped on a terminal error without learning the outcome.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    status: PollStatus
    handle: OperationHandle
    report: Optional[StatusReport] = None
    error: Optional[BaseException] = Field(default=None, repr=False)
    attempts: int = 0

    @property
    def completed(self) -> bool:
        return self.status is PollStatus.CONFIRMED
