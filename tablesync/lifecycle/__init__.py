"""Transaction lifecycle: submission, confirmation polling and slot coordination."""

from .coordinator import LifecycleCoordinator, SlotState, SlotTracker, default_error_policy
from .poller import CancellationToken, ConfirmationPoller, PollTask
from .provisioning import TableProvisioner
from .submitter import OperationSubmitter

__all__ = [
    "CancellationToken",
    "ConfirmationPoller",
    "LifecycleCoordinator",
    "OperationSubmitter",
    "PollTask",
    "SlotState",
    "SlotTracker",
    "TableProvisioner",
    "default_error_policy",
]
