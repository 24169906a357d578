"""Client-side lifecycle for table create/write operations on an eventually-consistent network."""

from tablesync.config import ClientSettings, get_settings
from tablesync.errors import (
    AuthRejected,
    NotConnected,
    PollTransientError,
    ProvisioningError,
    ProvisioningTimeout,
    RejectedBySigner,
    SubmissionError,
    TableSyncError,
)
from tablesync.lifecycle import (
    CancellationToken,
    ConfirmationPoller,
    LifecycleCoordinator,
    OperationSubmitter,
    SlotState,
    TableProvisioner,
)
from tablesync.session import Session, SessionState
from tablesync.workflow import TableWorkflow

__all__ = [
    "AuthRejected",
    "CancellationToken",
    "ClientSettings",
    "ConfirmationPoller",
    "LifecycleCoordinator",
    "NotConnected",
    "OperationSubmitter",
    "PollTransientError",
    "ProvisioningError",
    "ProvisioningTimeout",
    "RejectedBySigner",
    "Session",
    "SessionState",
    "SlotState",
    "SubmissionError",
    "TableProvisioner",
    "TableSyncError",
    "TableWorkflow",
    "get_settings",
]
