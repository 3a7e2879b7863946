"""Minimal text/event-stream decoder over an httpx line iterator."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass


@dataclass(frozen=True)
class ServerSentEvent:
    event: str = "message"
    data: str = ""
    id: str | None = None


async def aiter_sse(lines: AsyncIterable[str]) -> AsyncIterator[ServerSentEvent]:
    """Group raw stream lines into events; a blank line dispatches one event.

    An event still open when the lines run out is discarded, as in EventSource.
    """
    event = ""
    data: list[str] = []
    last_id: str | None = None

    async for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            # A named event with no data still dispatches: the flow's close may carry none
            if data or event:
                yield ServerSentEvent(event=event or "message", data="\n".join(data), id=last_id)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
        elif name == "id" and "\0" not in value:
            last_id = value
        # "retry" and unknown fields are ignored
