"""Operation submission through the network relay."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from tablesync.errors import AuthRejected, SubmissionError, TableSyncError
from tablesync.models import Identity, OperationKind, SubmissionReceipt
from tablesync.network.base import SubmissionTransport
from tablesync.statements import Parameter, bind_statement

LOGGER = logging.getLogger(__name__)


@dataclass
class OperationSubmitter:
    transport: SubmissionTransport

    async def submit(
        self,
        identity: Identity,
        context_id: int,
        statement: str,
        parameters: Sequence[Parameter] = (),
        *,
        kind: OperationKind = OperationKind.WRITE,
    ) -> SubmissionReceipt:
        """Bind and send ``statement``; returns once the network accepted it.

        Errors are raised to the caller and never retried here.
        """

        if identity.context_id != context_id:
            LOGGER.warning(
                "Identity context %s differs from requested context %s; using %s",
                identity.context_id,
                context_id,
                context_id,
            )
            identity = identity.model_copy(update={"context_id": context_id})
        bound = bind_statement(statement, parameters)
        LOGGER.debug("Submitting %s statement on context %s: %s", kind.value, context_id, bound)
        try:
            receipt = await asyncio.to_thread(self.transport.submit, identity, bound, kind)
        except (AuthRejected, SubmissionError):
            raise
        except TableSyncError as exc:
            raise SubmissionError(str(exc), code=exc.code or "submission_failed") from exc
        except OSError as exc:
            raise SubmissionError(str(exc), code="transport") from exc
        LOGGER.info("Submitted %s operation handle=%s", kind.value, receipt.handle)
        return receipt
