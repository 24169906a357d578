from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Authenticated signing capability handed out by a signer provider."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str
    context_id: int = Field(alias="contextId")
    auth_token: Optional[str] = Field(default=None, alias="authToken", repr=False)

    @property
    def short_address(self) -> str:
        return f"{self.address[:6]}..." if self.address else ""
