"""Gateway between inbound run requests and the flow client."""

from __future__ import annotations

from typing import Any

import structlog

from flowrelay import __version__
from flowrelay.config import RelayConfig
from flowrelay.errors import FlowRelayError
from flowrelay.flow.client import INITIATE_FAILED, FlowClient
from flowrelay.flow.models import RunRequest
from flowrelay.gateway.models import FlowRunRequest

logger = structlog.get_logger()

HEALTH_MESSAGE = "Server is UP and running"


class FlowGateway:
    """Runs the configured flow for each inbound request."""

    def __init__(self, *, config: RelayConfig, flow_client: FlowClient) -> None:
        self.config = config
        self.flow_client = flow_client

    def build_run_request(self, request: FlowRunRequest) -> RunRequest:
        return RunRequest(
            flow_id=self.config.flow.flow_id,
            group_id=self.config.flow.group_id,
            input_value=request.input_value,
            input_type=request.input_type,  # type: ignore[arg-type]
            output_type=request.output_type,  # type: ignore[arg-type]
            stream=request.stream,
            tweaks=dict(request.tweaks or {}),
        )

    async def run_flow(self, request: FlowRunRequest) -> dict[str, Any]:
        """Return ``{"message": text}``, or the raw run payload for streaming runs.

        Stream events are written to the log, not relayed to the caller.
        """
        logger.info("gateway.run_flow", input_value=request.input_value, stream=request.stream)
        failures: list[Exception] = []

        def on_error(error: Exception) -> None:
            failures.append(error)
            logger.error("flow.stream.error", error=str(error))

        response = await self.flow_client.run_flow(
            self.build_run_request(request),
            on_update=_log_update,
            on_close=_log_close,
            on_error=on_error,
        )

        if response is None:
            # Streaming initiate failed before anything was sent to the caller
            raise FlowRelayError(str(failures[0]) if failures else INITIATE_FAILED)

        if not request.stream:
            return {"message": response.require_message_text()}
        return response.raw

    def health(self) -> dict[str, str]:
        """Liveness only; the flow API is not contacted."""
        return {
            "status": "ok",
            "message": HEALTH_MESSAGE,
            "version": __version__,
        }


def _log_update(data: Any) -> None:
    chunk = data.get("chunk") if isinstance(data, dict) else data
    logger.info("flow.stream.update", chunk=chunk)


def _log_close(message: str) -> None:
    logger.info("flow.stream.relay_closed", message=message)
