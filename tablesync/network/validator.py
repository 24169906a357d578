"""HTTP client for a Tableland-style validator (REST reads + JSON-RPC relay)."""

from __future__ import annotations

import json
import logging
from itertools import count
from typing import Any, Iterator, Optional
from urllib.parse import quote, urlencode, urljoin

import requests
from requests import Response

from tablesync.config import ClientSettings
from tablesync.errors import AuthRejected, PollTransientError, SubmissionError, VerifierError
from tablesync.models import (
    ColumnSpec,
    Identity,
    OperationHandle,
    OperationKind,
    Row,
    StatusReport,
    SubmissionReceipt,
)
from tablesync.network.base import ReadAccessor, SubmissionTransport, Verifier

LOGGER = logging.getLogger(__name__)

RELAY_METHODS: dict[OperationKind, str] = {
    OperationKind.CREATE: "tableland_createTable",
    OperationKind.WRITE: "tableland_relayWriteQuery",
}


class ValidatorClient(SubmissionTransport, Verifier, ReadAccessor):
    """Blocking client; the lifecycle layer runs its calls off the event loop."""

    def __init__(
        self,
        *,
        base_url: str,
        relay_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._relay_url = relay_url
        self._timeout_seconds = timeout_seconds
        self._rpc_ids: Iterator[int] = count(1)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> ValidatorClient:
        return cls(
            base_url=settings.validator_url,
            relay_url=settings.relay_url,
            timeout_seconds=settings.request_timeout_seconds,
        )

    # Verifier

    def get_status(self, context_id: int, handle: OperationHandle) -> StatusReport:
        response = self._request("GET", f"/receipt/{context_id}/{quote(handle, safe='')}")
        if response.status_code == 404:
            return StatusReport.unseen()
        self._raise_for_read_status(response)
        payload = self._decode(response)
        error = payload.get("error") or None
        resource_ids = payload.get("tableIds") or ([payload["tableId"]] if payload.get("tableId") else [])
        return StatusReport(
            seen=True,
            success=error is None,
            error=error,
            block_number=payload.get("blockNumber"),
            resource_ids=tuple(str(item) for item in resource_ids),
        )

    def get_resource_schema(self, context_id: int, resource_id: str) -> tuple[ColumnSpec, ...]:
        response = self._request("GET", f"/tables/{context_id}/{quote(str(resource_id), safe='')}")
        self._raise_for_read_status(response)
        payload = self._decode(response)
        columns = (payload.get("schema") or {}).get("columns") or []
        return tuple(ColumnSpec.model_validate(column) for column in columns)

    # ReadAccessor

    def query(self, context_id: int, resource_name: str, statement: str) -> list[Row]:
        LOGGER.debug("Querying %s on context %s: %s", resource_name, context_id, statement)
        response = self._request("GET", "/query", params={"statement": statement, "format": "objects"})
        if response.status_code == 404:
            # the validator answers 404 for an empty result set
            return []
        self._raise_for_read_status(response)
        payload = self._decode(response)
        if not isinstance(payload, list):
            raise VerifierError("Query response must be a list of rows.", code="bad_payload")
        return [Row.model_validate(item) for item in payload]

    # SubmissionTransport

    def submit(self, identity: Identity, statement: str, kind: OperationKind) -> SubmissionReceipt:
        if not self._relay_url:
            raise SubmissionError("No relay endpoint configured.", code="relay_missing")
        if not identity.auth_token:
            raise AuthRejected(f"Signer {identity.address} has not authorised the relay.", code="no_token")
        body = {
            "jsonrpc": "2.0",
            "id": next(self._rpc_ids),
            "method": RELAY_METHODS[kind],
            "params": [{"statement": statement, "chainId": identity.context_id}],
        }
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {identity.auth_token}",
        }
        try:
            response = requests.request(
                "POST",
                self._relay_url,
                headers=headers,
                json=body,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SubmissionError(str(exc), code="transport") from exc
        if response.status_code in {401, 403}:
            raise AuthRejected("Relay declined the signer's credentials.", code="unauthorized")
        if response.status_code >= 400:
            raise SubmissionError(f"Relay failed with status {response.status_code}.", code="relay_status")
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise SubmissionError("Relay returned invalid JSON.", code="bad_payload") from exc
        if payload.get("error"):
            error = payload["error"]
            raise SubmissionError(str(error.get("message") or error), code=str(error.get("code", "rpc_error")))
        result = payload.get("result") or {}
        tx = result.get("tx") or {}
        handle = tx.get("hash")
        if not handle:
            raise SubmissionError("Relay response is missing a transaction hash.", code="bad_payload")
        LOGGER.info("Relay accepted %s statement tx=%s", kind.value, handle)
        return SubmissionReceipt(
            handle=handle,
            context_id=identity.context_id,
            kind=kind,
            provisional_name=result.get("name"),
        )

    def _request(self, method: str, path: str, *, params: dict[str, object] | None = None) -> Response:
        url = self._build_url(path, params=params)
        try:
            return requests.request(
                method,
                url,
                headers={"Accept": "application/json"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise PollTransientError(str(exc), code="transport") from exc

    def _build_url(self, path: str, *, params: dict[str, object] | None = None) -> str:
        url = urljoin(f"{self._base_url}/", path.lstrip("/"))
        if params:
            query = urlencode({key: value for key, value in params.items() if value is not None})
            if query:
                return f"{url}?{query}"
        return url

    @staticmethod
    def _decode(response: Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise VerifierError("Validator returned invalid JSON.", code="bad_payload") from exc

    @staticmethod
    def _raise_for_read_status(response: Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in {401, 403}:
            raise AuthRejected("Validator access denied.", code="unauthorized")
        if status == 429 or status >= 500:
            raise PollTransientError(f"Validator unavailable (status {status}).", code="unavailable")
        if status == 404:
            raise VerifierError("Validator resource not found.", code="not_found")
        raise VerifierError(f"Validator request failed with status {status}.", code="bad_status")


__all__ = ["ValidatorClient", "RELAY_METHODS"]
