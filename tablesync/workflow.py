"""Create/write/read workflow wiring session, provisioner and write slot."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from tablesync.config import ClientSettings, get_settings
from tablesync.errors import TableSyncError
from tablesync.lifecycle import (
    ConfirmationPoller,
    LifecycleCoordinator,
    OperationSubmitter,
    SlotState,
    TableProvisioner,
)
from tablesync.models import PendingOperation, ResourceDescriptor, Row, StatusReport
from tablesync.network.base import ReadAccessor, SignerProvider, SubmissionTransport, Verifier
from tablesync.network.signer import StaticSignerProvider
from tablesync.network.validator import ValidatorClient
from tablesync.session import Session

LOGGER = logging.getLogger(__name__)


@dataclass
class TableWorkflow:
    """The connect -> create -> write -> read flow with one write slot."""

    settings: ClientSettings
    session: Session
    transport: SubmissionTransport
    verifier: Verifier
    reader: ReadAccessor

    submitter: OperationSubmitter = field(init=False)
    poller: ConfirmationPoller = field(init=False)
    provisioner: TableProvisioner = field(init=False)
    coordinator: Optional[LifecycleCoordinator] = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.submitter = OperationSubmitter(self.transport)
        self.poller = ConfirmationPoller(self.verifier, max_attempts=self.settings.poll_max_attempts)
        self.provisioner = TableProvisioner(
            submitter=self.submitter,
            poller=self.poller,
            verifier=self.verifier,
            interval_ms=self.settings.poll_interval_ms,
            default_timeout=self.settings.provisioning_timeout_seconds,
        )
        self.session.add_disconnect_hook(self._release_slot)

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings | None = None,
        *,
        signer: SignerProvider | None = None,
    ) -> TableWorkflow:
        settings = settings or get_settings()
        client = ValidatorClient.from_settings(settings)
        return cls(
            settings=settings,
            session=Session(signer or StaticSignerProvider.from_settings(settings)),
            transport=client,
            verifier=client,
            reader=client,
        )

    @property
    def table(self) -> Optional[ResourceDescriptor]:
        return self.coordinator.resource if self.coordinator else None

    @property
    def rows(self) -> tuple[Row, ...]:
        return self.coordinator.rows if self.coordinator else ()

    @property
    def state(self) -> SlotState:
        return self.coordinator.state if self.coordinator else SlotState.IDLE

    async def connect(self) -> None:
        await self.session.connect()

    async def disconnect(self) -> None:
        await self.session.disconnect()

    async def create_table(self, prefix: str, *, timeout: Optional[float] = None) -> ResourceDescriptor:
        identity = self.session.require_identity()
        context_id = self.session.require_context_id()
        descriptor = await self.provisioner.create_table(identity, context_id, prefix, timeout=timeout)
        self.attach(descriptor)
        return descriptor

    def attach(self, descriptor: ResourceDescriptor) -> LifecycleCoordinator:
        """Bind a fresh write slot to an existing table."""

        self._release_slot()
        self.coordinator = LifecycleCoordinator(
            resource=descriptor,
            submitter=self.submitter,
            poller=self.poller,
            reader=self.reader,
            interval_ms=self.settings.poll_interval_ms,
        )
        return self.coordinator

    async def open_table(self, name: str) -> ResourceDescriptor:
        """Attach to an already created ``<prefix>_<context>_<id>`` table."""

        context_id = self.session.require_context_id()
        prefix, _, resource_id = name.rpartition("_")
        if not prefix or not resource_id.isdigit() or not prefix.endswith(f"_{context_id}"):
            raise TableSyncError(
                f"{name!r} is not a table name on context {context_id}.",
                code="bad_table_name",
            )
        schema = await asyncio.to_thread(self.verifier.get_resource_schema, context_id, resource_id)
        descriptor = ResourceDescriptor(
            name=name,
            context_id=context_id,
            resource_id=resource_id,
            schema=tuple(schema),
        )
        self.attach(descriptor)
        return descriptor

    async def status(self, handle: str) -> StatusReport:
        context_id = self.session.require_context_id()
        return await asyncio.to_thread(self.verifier.get_status, context_id, handle)

    async def write(self, name: str) -> PendingOperation:
        identity = self.session.require_identity()
        return await self._require_coordinator().write_row(identity, name)

    async def wait(self) -> None:
        await self._require_coordinator().join()

    async def read(self) -> list[Row]:
        return await self._require_coordinator().refresh()

    def _require_coordinator(self) -> LifecycleCoordinator:
        if self.coordinator is None:
            raise TableSyncError("Create or attach a table before writing.", code="no_table")
        return self.coordinator

    def _release_slot(self) -> None:
        if self.coordinator is not None and self.coordinator.state is not SlotState.IDLE:
            LOGGER.debug("Releasing write slot for %s", self.coordinator.resource.name)
            self.coordinator.relinquish()
