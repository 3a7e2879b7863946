"""Client side of the hosted flow run API."""

from flowrelay.flow.client import FlowClient, StreamHandle
from flowrelay.flow.models import (
    ComponentOutput,
    RunRequest,
    RunResponse,
    StreamClosed,
    StreamEvent,
    StreamFailed,
    StreamUpdate,
)

__all__ = [
    "ComponentOutput",
    "FlowClient",
    "RunRequest",
    "RunResponse",
    "StreamClosed",
    "StreamEvent",
    "StreamFailed",
    "StreamHandle",
    "StreamUpdate",
]
