"""Table creation: submit, wait for confirmation, fetch the authoritative schema."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from tablesync.errors import ProvisioningError, ProvisioningTimeout, TableSyncError
from tablesync.lifecycle.coordinator import default_error_policy
from tablesync.lifecycle.poller import CancellationToken, ConfirmationPoller, ErrorPolicy
from tablesync.lifecycle.submitter import OperationSubmitter
from tablesync.models import Identity, OperationKind, PollStatus, ResourceDescriptor
from tablesync.network.base import Verifier
from tablesync.statements import create_table_statement, validate_prefix

LOGGER = logging.getLogger(__name__)


@dataclass
class TableProvisioner:
    submitter: OperationSubmitter
    poller: ConfirmationPoller
    verifier: Verifier
    interval_ms: int = 1500
    default_timeout: Optional[float] = None
    is_transient: ErrorPolicy = default_error_policy

    async def create_table(
        self,
        identity: Identity,
        context_id: int,
        prefix: str,
        *,
        timeout: Optional[float] = None,
    ) -> ResourceDescriptor:
        """Create ``prefix`` and block until its name and schema are known.

        ``timeout`` falls back to ``default_timeout``; when both are None the
        wait is unbounded.
        """

        prefix = validate_prefix(prefix)
        bound = timeout if timeout is not None else self.default_timeout
        receipt = await self.submitter.submit(
            identity,
            context_id,
            create_table_statement(prefix),
            kind=OperationKind.CREATE,
        )
        token = CancellationToken(label=f"create-{receipt.handle}")
        poll = self.poller.poll(
            receipt.handle,
            context_id,
            self.interval_ms,
            is_transient=self.is_transient,
            token=token,
        )
        try:
            if bound is None:
                outcome = await poll.result()
            else:
                outcome = await asyncio.wait_for(poll.result(), timeout=bound)
        except asyncio.TimeoutError as exc:
            poll.cancel()
            raise ProvisioningTimeout(
                f"Table create {receipt.handle} not confirmed within {bound} seconds.",
                code="provisioning_timeout",
            ) from exc
        except BaseException:
            poll.cancel()
            raise

        if outcome.status is PollStatus.FAILED:
            reason = outcome.report.error if outcome.report else None
            raise ProvisioningError(
                f"Network rejected table create {receipt.handle}: {reason or 'unknown error'}",
                code="provisioning_rejected",
            )
        if outcome.status is PollStatus.ABANDONED:
            raise ProvisioningError(
                f"Stopped polling table create {receipt.handle}: {outcome.error}",
                code="provisioning_abandoned",
            ) from outcome.error

        report = outcome.report
        resource_id = report.resource_ids[0] if report and report.resource_ids else None
        if resource_id is None and receipt.provisional_name:
            # names are "<prefix>_<context>_<id>"
            resource_id = receipt.provisional_name.rsplit("_", 1)[-1]
        if resource_id is None:
            raise ProvisioningError(
                f"Confirmed create {receipt.handle} did not report a table id.",
                code="provisioning_no_table",
            )
        name = f"{prefix}_{context_id}_{resource_id}"
        if receipt.provisional_name and receipt.provisional_name != name:
            LOGGER.warning(
                "Provisional name %s differs from confirmed name %s",
                receipt.provisional_name,
                name,
            )

        try:
            schema = await asyncio.to_thread(self.verifier.get_resource_schema, context_id, resource_id)
        except TableSyncError as exc:
            raise ProvisioningError(
                f"Could not fetch schema for {name}: {exc}",
                code="provisioning_schema",
            ) from exc
        descriptor = ResourceDescriptor(
            name=name,
            context_id=context_id,
            resource_id=resource_id,
            schema=tuple(schema),
        )
        LOGGER.info("Provisioned table %s with columns %s", name, descriptor.column_names)
        return descriptor
