"""Relay configuration, loaded from flowrelay.yaml, .env and the environment."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.langflow.astra.datastax.com"
DEFAULT_FLOW_ID = "9510d492-a745-4be6-bc78-e8a9b24f0b69"
DEFAULT_GROUP_ID = "0e9b6352-6f2b-41af-a799-34d5f8ee1c7a"


def _load_yaml_config() -> dict[str, Any]:
    """Load flowrelay.yaml from FLOWRELAY_CONFIG_PATH or the working directory."""
    config_path = os.getenv("FLOWRELAY_CONFIG_PATH")
    search_paths = [Path(config_path)] if config_path else [Path("flowrelay.yaml")]
    for path in search_paths:
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}
    return {}


class FlowConfig(BaseSettings):
    """Target flow and credentials for the hosted flow API."""

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Flow API origin")
    flow_id: str = Field(default=DEFAULT_FLOW_ID, description="Flow ID or name to run")
    group_id: str = Field(default=DEFAULT_GROUP_ID, description="Langflow workspace ID")
    token: str = Field(
        default="",
        validation_alias=AliasChoices("FLOWRELAY_FLOW_TOKEN", "LANGFLOW_APPLICATION_TOKEN"),
        description="Bearer token sent on every run request",
    )
    request_timeout_s: float = Field(default=120.0, gt=0, description="Bound on one run request")
    stream_read_timeout_s: float = Field(
        default=300.0,
        gt=0,
        description="Max idle time between two stream events",
    )

    model_config = SettingsConfigDict(
        env_prefix="FLOWRELAY_FLOW_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class RelayConfig(BaseSettings):
    """Root relay configuration, fixed for the life of the process."""

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=3000, ge=1, le=65535, description="Server bind port")
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    flow: FlowConfig = Field(default_factory=FlowConfig)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    model_config = SettingsConfigDict(
        env_prefix="FLOWRELAY_",
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
        frozen=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                parsed = json.loads(text)
                return [str(item).strip() for item in parsed if str(item).strip()]
            return [item.strip() for item in text.split(",") if item.strip()]
        return [str(item).strip() for item in value if str(item).strip()]

    @classmethod
    def load(cls) -> RelayConfig:
        """Load config from YAML + env vars (env takes precedence)."""
        yaml_cfg = _load_yaml_config()

        flow_data = _without_env_keys(
            yaml_cfg.pop("flow", None) or {},
            ("FLOWRELAY_FLOW_",),
            aliases={"token": ("FLOWRELAY_FLOW_TOKEN", "LANGFLOW_APPLICATION_TOKEN")},
        )

        # Only pass the flow section when YAML has one, so env still applies
        kwargs: dict[str, Any] = _without_env_keys(yaml_cfg, ("FLOWRELAY_",))
        if flow_data:
            # RelayConfig ignores FLOWRELAY_FLOW__* once flow is passed explicitly
            flow_data.update(_nested_env("FLOWRELAY_FLOW__"))
            kwargs["flow"] = FlowConfig(**flow_data)

        return cls(**kwargs)


def _without_env_keys(
    data: dict[str, Any],
    prefixes: tuple[str, ...],
    aliases: dict[str, tuple[str, ...]] | None = None,
) -> dict[str, Any]:
    """Drop YAML keys that an environment variable already sets."""
    env_names = {name.upper() for name in os.environ}
    kept: dict[str, Any] = {}
    for key, value in data.items():
        names = {f"{prefix}{key}".upper() for prefix in prefixes}
        names.update(alias.upper() for alias in (aliases or {}).get(key, ()))
        if names & env_names:
            continue
        kept[key] = value
    return kept


def _nested_env(prefix: str) -> dict[str, str]:
    return {
        name[len(prefix):].lower(): value
        for name, value in os.environ.items()
        if name.upper().startswith(prefix) and len(name) > len(prefix)
    }


# Singleton
_config: RelayConfig | None = None


def get_config() -> RelayConfig:
    """Get or create the process-wide config."""
    global _config
    if _config is None:
        _config = RelayConfig.load()
    return _config
