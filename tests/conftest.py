from __future__ import annotations

import pytest

from flow_fakes import BASE_URL
from flowrelay.config import FlowConfig, RelayConfig


@pytest.fixture
def flow_config() -> FlowConfig:
    return FlowConfig(
        base_url=BASE_URL,
        flow_id="flow-123",
        group_id="group-456",
        token="secret-token",
        request_timeout_s=5.0,
        stream_read_timeout_s=5.0,
    )


@pytest.fixture
def relay_config(flow_config: FlowConfig) -> RelayConfig:
    return RelayConfig(flow=flow_config, log_format="console")
