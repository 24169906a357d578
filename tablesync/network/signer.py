"""Signer providers.

Wallet cryptography lives outside this package; a provider only hands out an
identity that some external signer already authorised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from tablesync.config import ClientSettings
from tablesync.errors import NotConnected
from tablesync.models import Identity
from tablesync.network.base import SignerProvider

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticSignerProvider(SignerProvider):
    """Provider backed by a pre-authorised address and relay token."""

    address: Optional[str]
    context_id: int
    auth_token: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> StaticSignerProvider:
        return cls(
            address=settings.signer_address,
            context_id=settings.chain_id,
            auth_token=settings.auth_token,
        )

    def get_identity(self) -> Identity:
        if not self.address:
            raise NotConnected("No signer address configured.", code="signer_missing")
        LOGGER.debug("Issuing identity for %s on context %s", self.address, self.context_id)
        return Identity(address=self.address, context_id=self.context_id, auth_token=self.auth_token)

    def get_context_id(self) -> int:
        return self.context_id
