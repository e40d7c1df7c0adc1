import json
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from commerce_gateway import log


class StateBackend(str, Enum):
    MEMORY = "memory"
    FILE = "file"


class RemoteSchemaConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: str
    order: int = 1000


class HttpInvokerConfig(BaseModel):
    """Connection settings of an OpenWhisk-compatible action runtime."""

    model_config = ConfigDict(extra="forbid")

    api_host: str
    namespace: str = "_"
    auth: str
    timeout: float = 60.0

    @field_validator("auth")
    @classmethod
    def validate_auth(cls, value: str) -> str:
        if ":" not in value:
            raise ValueError("'auth' must have the form '<user>:<key>'")
        return value

    @property
    def credentials(self) -> tuple[str, str]:
        user, _, key = self.auth.partition(":")
        return user, key


class StateConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: StateBackend = StateBackend.MEMORY
    directory: Path | None = None

    @model_validator(mode="after")
    def validate_directory(self) -> "StateConfig":
        if self.backend == StateBackend.FILE and self.directory is None:
            raise ValueError("The 'file' state backend requires a 'directory'")
        return self


class GatewayConfig(BaseModel):
    """Settings of one gateway deployment, as read from a YAML file."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    remote_schemas: dict[str, RemoteSchemaConfig] = Field(default_factory=dict, alias="remoteSchemas")
    use_cache: int | None = Field(None, alias="use-aio-cache")
    url: str | None = None
    spreadsheet: Path | None = None
    invoker: HttpInvokerConfig | None = None
    state: StateConfig = Field(default_factory=StateConfig)

    def to_action_parameters(self) -> dict[str, Any]:
        """Render the settings that travel with every request as action parameters."""
        params: dict[str, Any] = {}
        if self.remote_schemas:
            params["remoteSchemas"] = {
                name: remote.model_dump() for name, remote in self.remote_schemas.items()
            }
        if self.use_cache is not None:
            params["use-aio-cache"] = self.use_cache
        if self.url is not None:
            params["url"] = self.url
        if self.spreadsheet is not None:
            params["spreadsheet"] = str(self.spreadsheet)
        return params


class GatewayRequest(BaseModel):
    """
    A validated top-level request.

    Every key that is not part of the GraphQL request itself is kept as an extra field:
    those are the action parameters handed to the backends (url, spreadsheet, headers, ...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    query: str
    variables: dict[str, Any] | None = None
    operation_name: str | None = Field(None, alias="operationName")
    remote_schemas: dict[str, RemoteSchemaConfig] | None = Field(None, alias="remoteSchemas")
    use_cache: int | None = Field(None, alias="use-aio-cache")

    @field_validator("variables", mode="before")
    @classmethod
    def decode_variables(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value) if value.strip() else None
        return value

    @field_validator("use_cache", mode="before")
    @classmethod
    def reject_boolean_ttl(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("'use-aio-cache' must be an integer TTL")
        return value


def load_gateway_config(config_path: Path | None) -> GatewayConfig:
    """
    Load and validate a gateway configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None for the defaults.

    Returns:
        A validated GatewayConfig.

    Raises:
        OSError: If the file cannot be read.
        yaml.YAMLError: If the file is not valid YAML.
        TypeError: If the YAML root is not a mapping.
        ValidationError: If validation against GatewayConfig fails.
    """
    if config_path is None:
        log.debug("No gateway config provided")
        return GatewayConfig()

    raw: Any
    with config_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    log.debug(f"Loaded gateway config from {config_path}")

    # Empty file or explicit YAML null means "defaults"
    if raw is None or raw == {}:
        return GatewayConfig()

    if not isinstance(raw, dict):
        raise TypeError(f"Gateway config root must be a mapping (YAML object), got {type(raw).__name__}")

    return GatewayConfig.model_validate(raw)
