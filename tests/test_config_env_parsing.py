from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from flowrelay.config import DEFAULT_BASE_URL, FlowConfig, RelayConfig


def test_defaults_target_hosted_flow(monkeypatch) -> None:
    monkeypatch.delenv("LANGFLOW_APPLICATION_TOKEN", raising=False)
    monkeypatch.delenv("FLOWRELAY_FLOW_TOKEN", raising=False)

    config = FlowConfig()

    assert config.base_url == DEFAULT_BASE_URL
    assert config.token == ""
    assert config.request_timeout_s > 0


def test_token_accepts_langflow_variable(monkeypatch) -> None:
    monkeypatch.delenv("FLOWRELAY_FLOW_TOKEN", raising=False)
    monkeypatch.setenv("LANGFLOW_APPLICATION_TOKEN", "AstraCS:abc")

    assert FlowConfig().token == "AstraCS:abc"


def test_flow_env_prefix(monkeypatch) -> None:
    monkeypatch.setenv("FLOWRELAY_FLOW_FLOW_ID", "my-flow")
    monkeypatch.setenv("FLOWRELAY_FLOW_BASE_URL", "http://localhost:7860/")

    config = FlowConfig()

    assert config.flow_id == "my-flow"
    assert config.base_url == "http://localhost:7860"


def test_cors_origins_accept_plain_strings(monkeypatch) -> None:
    monkeypatch.setenv("FLOWRELAY_CORS_ORIGINS", "http://localhost:5173, https://dash.example.test")

    config = RelayConfig.load()

    assert config.cors_origins == ["http://localhost:5173", "https://dash.example.test"]


def test_yaml_file_is_loaded(monkeypatch, tmp_path: Path) -> None:
    for name in ("FLOWRELAY_PORT", "FLOWRELAY_FLOW_FLOW_ID", "FLOWRELAY_FLOW_TOKEN", "LANGFLOW_APPLICATION_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "flowrelay.yaml"
    path.write_text("port: 8080\nflow:\n  flow_id: yaml-flow\n  token: from-yaml\n", encoding="utf-8")
    monkeypatch.setenv("FLOWRELAY_CONFIG_PATH", str(path))

    config = RelayConfig.load()

    assert config.port == 8080
    assert config.flow.flow_id == "yaml-flow"
    assert config.flow.token == "from-yaml"


def test_config_is_frozen() -> None:
    config = RelayConfig()

    with pytest.raises(ValidationError):
        config.port = 9999


def test_env_wins_over_yaml(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("FLOWRELAY_LOG_LEVEL", raising=False)
    monkeypatch.delenv("FLOWRELAY_FLOW_GROUP_ID", raising=False)
    monkeypatch.delenv("FLOWRELAY_FLOW_TOKEN", raising=False)
    path = tmp_path / "flowrelay.yaml"
    path.write_text(
        "port: 8080\nlog_level: DEBUG\nflow:\n  flow_id: yaml-flow\n  group_id: yaml-group\n  token: from-yaml\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("FLOWRELAY_CONFIG_PATH", str(path))
    monkeypatch.setenv("FLOWRELAY_PORT", "9000")
    monkeypatch.setenv("FLOWRELAY_FLOW_FLOW_ID", "env-flow")
    monkeypatch.setenv("LANGFLOW_APPLICATION_TOKEN", "from-env")

    config = RelayConfig.load()

    assert (config.port, config.flow.flow_id) == (9000, "env-flow")
    assert config.flow.token == "from-env"
    # Keys the environment leaves unset still come from YAML
    assert config.log_level == "DEBUG"
    assert config.flow.group_id == "yaml-group"


def test_nested_env_wins_over_yaml_flow_section(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "flowrelay.yaml"
    path.write_text("flow:\n  flow_id: yaml-flow\n", encoding="utf-8")
    monkeypatch.setenv("FLOWRELAY_CONFIG_PATH", str(path))
    monkeypatch.setenv("FLOWRELAY_FLOW__FLOW_ID", "nested-flow")

    config = RelayConfig.load()

    assert config.flow.flow_id == "nested-flow"
