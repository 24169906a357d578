from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ColumnSpec(BaseModel):
    """Column definition as reported by the verifier."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: str
    constraints: Optional[str] = None

    @field_validator("constraints", mode="before")
    @classmethod
    def _join_constraints(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            joined = " ".join(str(item) for item in value if item)
            return joined or None
        return value


class ResourceDescriptor(BaseModel):
    """A confirmed table: its full name, network context and fetched schema."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    context_id: int = Field(alias="contextId")
    resource_id: str = Field(alias="resourceId")
    schema_: tuple[ColumnSpec, ...] = Field(default=(), alias="schema")

    @property
    def columns(self) -> tuple[ColumnSpec, ...]:
        return self.schema_

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.schema_]


class Row(BaseModel):
    """One row of the demonstration table; block and tx are computed by the network."""

    id: int
    name: str
    block: str
    tx: str

    @field_validator("block", "tx", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value
