"""Single-endpoint gateway in front of the flow client."""

from flowrelay.gateway.models import FlowRunRequest
from flowrelay.gateway.service import FlowGateway

__all__ = [
    "FlowGateway",
    "FlowRunRequest",
]
