"""Async client for the hosted flow run API, with event-stream relay."""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Any

import httpx
import structlog

from flowrelay.config import FlowConfig
from flowrelay.errors import FlowRelayError, FlowTimeoutError, ShapeError, StreamError, UpstreamError
from flowrelay.flow.models import (
    RunRequest,
    RunResponse,
    StreamClosed,
    StreamEvent,
    StreamFailed,
    StreamUpdate,
)
from flowrelay.flow.sse import aiter_sse

logger = structlog.get_logger()

Callback = Callable[[Any], Any]

INITIATE_FAILED = "Error initiating session"


async def _invoke(callback: Callback | None, value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class StreamHandle:
    """Reference to one running stream relay."""

    def __init__(self, url: str, task: asyncio.Task[None]) -> None:
        self.url = url
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> None:
        """Block until the relay has delivered its terminal event."""
        await asyncio.wait({self._task})

    def cancel(self) -> None:
        self._task.cancel()


class FlowClient:
    """Runs a hosted flow and relays its event stream to caller callbacks."""

    def __init__(
        self,
        config: FlowConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._streams: set[StreamHandle] = set()
        self.request_count = 0

    @property
    def streams(self) -> frozenset[StreamHandle]:
        """Stream relays that have not finished yet."""
        return frozenset(handle for handle in self._streams if not handle.done)

    def _client(self, timeout: httpx.Timeout) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=timeout,
            transport=self._transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.token}"}

    async def initiate(self, request: RunRequest) -> RunResponse:
        """POST the run request and decode the first component output."""
        self.request_count += 1
        request_id = self.request_count
        start = time.monotonic()

        logger.info(
            "flow.request",
            request_id=request_id,
            flow_id=request.flow_id,
            stream=request.stream,
            input_type=request.input_type,
            input_length=len(request.input_value or ""),
        )

        headers = {**self._auth_headers(), "Content-Type": "application/json"}
        try:
            async with self._client(httpx.Timeout(self.config.request_timeout_s)) as client:
                response = await client.post(request.endpoint, json=request.body(), headers=headers)
        except httpx.TimeoutException as exc:
            logger.error("flow.timeout", request_id=request_id, timeout_s=self.config.request_timeout_s)
            raise FlowTimeoutError(
                f"Flow API did not answer within {self.config.request_timeout_s:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("flow.unreachable", request_id=request_id, error=str(exc))
            raise FlowRelayError(f"Flow API unreachable: {exc}") from exc

        if not response.is_success:
            logger.error(
                "flow.error",
                request_id=request_id,
                status_code=response.status_code,
                body=response.text[:300],
            )
            raise UpstreamError(response.status_code, response.reason_phrase, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ShapeError("Flow response is not JSON") from exc

        logger.info(
            "flow.response",
            request_id=request_id,
            status_code=response.status_code,
            duration=f"{time.monotonic() - start:.2f}s",
        )
        return RunResponse.decode(payload)

    async def stream_events(self, stream_url: str) -> AsyncIterator[StreamEvent]:
        """Yield decoded stream events; the last one is StreamClosed or StreamFailed.

        The terminal event is only yielded after the connection is released.
        """
        url = httpx.URL(self.config.base_url).join(stream_url)
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        # Never hand the token to a host it was not issued for
        if url.host == httpx.URL(self.config.base_url).host:
            headers.update(self._auth_headers())

        timeout = httpx.Timeout(
            connect=10.0,
            read=self.config.stream_read_timeout_s,
            write=10.0,
            pool=10.0,
        )
        terminal: StreamEvent | None = None
        try:
            async with self._client(timeout) as client:
                async with client.stream("GET", url, headers=headers) as response:
                    if not response.is_success:
                        await response.aread()
                        terminal = StreamFailed(
                            StreamError(f"Stream rejected: {response.status_code} {response.text[:300]}")
                        )
                    else:
                        async with aclosing(aiter_sse(self._bounded_lines(response))) as events:
                            async for sse in events:
                                if sse.event == "close":
                                    terminal = StreamClosed()
                                    break
                                if sse.event != "message":
                                    continue
                                try:
                                    data = json.loads(sse.data)
                                except ValueError as exc:
                                    terminal = StreamFailed(StreamError(f"Undecodable stream event: {exc}"))
                                    break
                                yield StreamUpdate(data)
        except httpx.HTTPError as exc:
            terminal = StreamFailed(StreamError(str(exc) or type(exc).__name__))
        except TimeoutError:
            terminal = StreamFailed(
                StreamError(f"No stream event within {self.config.stream_read_timeout_s:g}s")
            )

        yield terminal or StreamFailed(StreamError("Stream ended without a close event"))

    async def _bounded_lines(self, response: httpx.Response) -> AsyncIterator[str]:
        """Yield stream lines, raising TimeoutError when the stream goes idle."""
        lines = response.aiter_lines()
        while True:
            try:
                async with asyncio.timeout(self.config.stream_read_timeout_s):
                    line = await anext(lines)
            except StopAsyncIteration:
                return
            yield line

    def open_stream(
        self,
        stream_url: str,
        on_update: Callback | None = None,
        on_close: Callback | None = None,
        on_error: Callback | None = None,
    ) -> StreamHandle:
        """Start relaying a stream in the background and return its handle."""
        task = asyncio.create_task(
            self._relay(stream_url, on_update, on_close, on_error),
            name="flow-stream-relay",
        )
        handle = StreamHandle(stream_url, task)
        self._streams.add(handle)
        task.add_done_callback(lambda _task: self._streams.discard(handle))
        return handle

    async def _relay(
        self,
        stream_url: str,
        on_update: Callback | None,
        on_close: Callback | None,
        on_error: Callback | None,
    ) -> None:
        async with aclosing(self.stream_events(stream_url)) as events:
            async for event in events:
                try:
                    if isinstance(event, StreamUpdate):
                        await _invoke(on_update, event.data)
                    elif isinstance(event, StreamClosed):
                        logger.info("flow.stream.closed", stream_url=stream_url)
                        await _invoke(on_close, event.reason)
                    else:
                        logger.warning("flow.stream.failed", stream_url=stream_url, error=str(event.error))
                        await _invoke(on_error, event.error)
                except Exception:
                    logger.exception("flow.stream.callback_error", stream_url=stream_url)
                    return

    async def run_flow(
        self,
        request: RunRequest,
        *,
        on_update: Callback | None = None,
        on_close: Callback | None = None,
        on_error: Callback | None = None,
    ) -> RunResponse | None:
        """Run the flow and, for streaming runs, start relaying its stream.

        Non-streaming failures raise. Streaming failures are reported to
        ``on_error`` as a StreamError and ``None`` is returned.
        """
        try:
            response = await self.initiate(request)
        except FlowRelayError as exc:
            if not request.stream:
                raise
            logger.error("flow.run.failed", flow_id=request.flow_id, error=str(exc))
            error = StreamError(INITIATE_FAILED)
            error.__cause__ = exc
            await _invoke(on_error, error)
            return None

        if request.stream and response.output.stream_url:
            logger.info("flow.stream.opening", stream_url=response.output.stream_url)
            self.open_stream(response.output.stream_url, on_update, on_close, on_error)
        return response

    async def aclose(self) -> None:
        """Cancel stream relays that are still running."""
        pending = list(self.streams)
        for handle in pending:
            handle.cancel()
        for handle in pending:
            await handle.wait()
