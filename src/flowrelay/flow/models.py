"""Run request, run response and stream event models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union
from urllib.parse import quote

from flowrelay.errors import ShapeError, StreamError

IOType = Literal["chat", "text"]


@dataclass(frozen=True)
class RunRequest:
    """One run of a hosted flow."""

    flow_id: str
    group_id: str
    input_value: str | None
    input_type: IOType = "chat"
    output_type: IOType = "chat"
    stream: bool = False
    tweaks: dict[str, Any] = field(default_factory=dict)

    @property
    def endpoint(self) -> str:
        stream = "true" if self.stream else "false"
        return (
            f"/lf/{quote(self.group_id, safe='')}/api/v1/run/"
            f"{quote(self.flow_id, safe='')}?stream={stream}"
        )

    def body(self) -> dict[str, Any]:
        return {
            "input_value": self.input_value,
            "input_type": self.input_type,
            "output_type": self.output_type,
            "tweaks": dict(self.tweaks),
        }


@dataclass(frozen=True)
class ComponentOutput:
    """The first component output of the first flow output."""

    stream_url: str | None = None
    message_text: str | None = None


@dataclass(frozen=True)
class RunResponse:
    """Upstream run payload plus its decoded first component output."""

    raw: dict[str, Any]
    output: ComponentOutput

    @classmethod
    def decode(cls, payload: Any) -> RunResponse:
        """Decode ``outputs[0].outputs[0]`` once; raise ShapeError if it is absent."""
        component = _index(_index(payload, "outputs"), "outputs")

        artifacts = component.get("artifacts")
        stream_url = artifacts.get("stream_url") if isinstance(artifacts, dict) else None

        message_text = None
        outputs = component.get("outputs")
        message = outputs.get("message") if isinstance(outputs, dict) else None
        inner = message.get("message") if isinstance(message, dict) else None
        if isinstance(inner, dict) and isinstance(inner.get("text"), str):
            message_text = inner["text"]

        return cls(
            raw=payload,
            output=ComponentOutput(
                stream_url=stream_url if isinstance(stream_url, str) and stream_url else None,
                message_text=message_text,
            ),
        )

    def require_message_text(self) -> str:
        if self.output.message_text is None:
            raise ShapeError("Flow response has no outputs[0].outputs[0].outputs.message.message.text")
        return self.output.message_text


def _index(container: Any, key: str) -> dict[str, Any]:
    items = container.get(key) if isinstance(container, dict) else None
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        raise ShapeError(f"Flow response has no {key}[0]")
    return items[0]


@dataclass(frozen=True)
class StreamUpdate:
    """A decoded ``message`` event from the flow stream."""

    data: Any


@dataclass(frozen=True)
class StreamClosed:
    """The flow sent its terminal ``close`` event."""

    reason: str = "Stream closed"


@dataclass(frozen=True)
class StreamFailed:
    """The stream transport failed; the connection is already released."""

    error: StreamError


StreamEvent = Union[StreamUpdate, StreamClosed, StreamFailed]
