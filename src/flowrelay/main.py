"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowrelay import __version__
from flowrelay.config import RelayConfig, get_config
from flowrelay.errors import FlowRelayError
from flowrelay.flow import FlowClient
from flowrelay.gateway import FlowGateway
from flowrelay.logging import setup_logging

logger = structlog.get_logger()


async def relay_error_handler(request: Request, exc: FlowRelayError) -> JSONResponse:
    """Render relay failures as ``{"error": ...}``."""
    logger.error(
        "gateway.request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


def create_app(
    config: RelayConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    ``transport`` replaces the network transport of the flow client.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application startup/shutdown lifecycle."""
        setup_logging(level=config.log_level, fmt=config.log_format)

        logger.info(
            "relay.starting",
            version=__version__,
            base_url=config.flow.base_url,
            flow_id=config.flow.flow_id,
        )
        if not config.flow.token:
            logger.warning("relay.token_missing", hint="set LANGFLOW_APPLICATION_TOKEN")

        flow_client = FlowClient(config.flow, transport=transport)
        gateway = FlowGateway(config=config, flow_client=flow_client)

        app.state.config = config
        app.state.flow_client = flow_client
        app.state.gateway = gateway

        logger.info("relay.ready", port=config.port)

        yield

        # Shutdown
        logger.info("relay.shutting_down", open_streams=len(flow_client.streams))
        await flow_client.aclose()
        logger.info("relay.stopped")

    app = FastAPI(
        title="flowrelay",
        version=__version__,
        description="Relay between the insights dashboard and a hosted Langflow flow.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(FlowRelayError, relay_error_handler)  # type: ignore[arg-type]

    # Register routes
    from flowrelay.api.routes.health import router as health_router
    from flowrelay.api.routes.run_flow import router as run_flow_router

    app.include_router(health_router, tags=["health"])
    app.include_router(run_flow_router, tags=["flow"])

    return app


app = create_app()


def main() -> None:
    """Run the server directly."""
    config = get_config()
    setup_logging(level=config.log_level, fmt=config.log_format)
    uvicorn.run(
        "flowrelay.main:app",
        host=config.host,
        port=config.port,
        log_level="warning",
    )


if __name__ == "__main__":
    main()
