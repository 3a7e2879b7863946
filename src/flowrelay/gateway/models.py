"""Gateway request models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FlowRunRequest:
    """Normalized inbound run request accepted by the gateway."""

    input_value: str | None
    input_type: str = "chat"
    output_type: str = "chat"
    stream: bool = False
    tweaks: dict[str, Any] = field(default_factory=dict)
