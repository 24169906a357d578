"""Data model for identities, resources and operations."""

from .identity import Identity
from .operation import (
    OperationHandle,
    OperationKind,
    PendingOperation,
    PollOutcome,
    PollStatus,
    StatusReport,
    SubmissionReceipt,
)
from .resource import ColumnSpec, ResourceDescriptor, Row

__all__ = [
    "ColumnSpec",
    "Identity",
    "OperationHandle",
    "OperationKind",
    "PendingOperation",
    "PollOutcome",
    "PollStatus",
    "ResourceDescriptor",
    "Row",
    "StatusReport",
    "SubmissionReceipt",
]
