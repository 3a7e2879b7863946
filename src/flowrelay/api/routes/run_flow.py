"""Run-flow endpoint used by the dashboard."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from flowrelay.gateway import FlowRunRequest

router = APIRouter()


class RunFlowBody(BaseModel):
    input_value: str | None = Field(default=None, alias="inputValue")
    input_type: str = Field(default="chat", alias="inputType")
    output_type: str = Field(default="chat", alias="outputType")
    stream: bool = False
    tweaks: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


@router.post("/runFlow")
async def run_flow(request: Request, body: RunFlowBody) -> dict[str, Any]:
    """Run the configured flow with the submitted keyword.

    A missing ``inputValue`` is forwarded upstream as null.
    """
    return await request.app.state.gateway.run_flow(
        FlowRunRequest(
            input_value=body.input_value,
            input_type=body.input_type,
            output_type=body.output_type,
            stream=body.stream,
            tweaks=body.tweaks,
        )
    )
