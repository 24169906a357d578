"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/tablesync.yaml"),
    Path("./config/tablesync.yml"),
    Path("./config/tablesync.json"),
)


class ClientSettings(BaseSettings):
    """Validated settings for the table lifecycle client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="TABLESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Network endpoints
    validator_base_url: AnyUrl = Field(
        default="https://testnets.tableland.network/api/v1",
        description="Validator REST base URL used for receipts, schemas and reads.",
    )
    relay_rpc_url: AnyUrl | None = Field(
        default="https://testnets.tableland.network/rpc",
        description="Validator JSON-RPC endpoint that relays create/write statements.",
    )
    request_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Timeout applied to every HTTP request.",
    )

    # Identity
    chain_id: PositiveInt = Field(
        default=31337,
        description="Network/chain identifier operations are submitted to.",
    )
    signer_address: str | None = Field(
        default=None,
        description="Address of the pre-authorised signer.",
    )
    auth_token: str | None = Field(
        default=None,
        description="Bearer token issued to the signer by the relay.",
        repr=False,
    )

    # Confirmation polling
    poll_interval_ms: PositiveInt = Field(
        default=1500,
        description="Fixed delay between receipt queries; no backoff is applied.",
    )
    poll_max_attempts: PositiveInt | None = Field(
        default=None,
        description="Give up polling after this many attempts; unbounded when unset.",
    )
    provisioning_timeout_seconds: PositiveFloat | None = Field(
        default=120.0,
        description="Upper bound on waiting for a table create to confirm; unbounded when unset.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the client process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @property
    def validator_url(self) -> str:
        return str(self.validator_base_url).rstrip("/")

    @property
    def relay_url(self) -> str | None:
        return str(self.relay_rpc_url) if self.relay_rpc_url else None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._file_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _file_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = ClientSettings._resolve_candidate_paths()

        for path in candidates:
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("TABLESYNC_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read tablesync config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid tablesync config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Tablesync config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()
