"""Error taxonomy shared by the network, session and lifecycle layers."""

from __future__ import annotations

from typing import Optional


class TableSyncError(RuntimeError):
    """Base error for tablesync operations."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class NotConnected(TableSyncError):
    """Raised when an identity is required but no session is connected."""


class AuthRejected(TableSyncError):
    """Raised when the signer or network declines to authorize an operation."""


RejectedBySigner = AuthRejected


class SubmissionError(TableSyncError):
    """Raised when an operation could not be delivered to the network."""


class PollTransientError(TableSyncError):
    """Raised by verifier reads that are expected to succeed on a later attempt."""


class VerifierError(TableSyncError):
    """Raised when the verifier answers with a non-retryable failure."""


class ProvisioningError(TableSyncError):
    """Raised when a table could not be provisioned."""


class ProvisioningTimeout(ProvisioningError):
    """Raised when table confirmation does not arrive within the caller's bound."""


class SlotBusyError(TableSyncError):
    """Raised when a write is requested while another submission is in flight."""


class InvalidTransition(TableSyncError):
    """Raised on a state machine transition that is not allowed."""


class StatementBindingError(TableSyncError):
    """Raised when statement parameters do not match its placeholders."""


class InvalidPrefixError(TableSyncError):
    """Raised when a table prefix violates the network's naming rules."""


__all__ = [
    "TableSyncError",
    "NotConnected",
    "AuthRejected",
    "RejectedBySigner",
    "SubmissionError",
    "PollTransientError",
    "VerifierError",
    "ProvisioningError",
    "ProvisioningTimeout",
    "SlotBusyError",
    "InvalidTransition",
    "StatementBindingError",
    "InvalidPrefixError",
]
