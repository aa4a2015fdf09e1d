"""
OpenAI Compatible Proxy Interface

Chat completions pass-through and the LM Studio style model listing.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from chatbridge.api.deps import ProxyServiceDep
from chatbridge.api.proxy.anthropic import STREAM_HEADERS, read_json_body

router = APIRouter(tags=["OpenAI Proxy"])


@router.post("/v1/chat/completions")
async def chat_completions(request: Request, proxy_service: ProxyServiceDep) -> Any:
    """
    OpenAI Chat Completions pass-through

    Bodies without tools lose tool_choice and tool_calls before forwarding.
    Errors use the OpenAI envelope through the global handler.
    """
    raw = await read_json_body(request)
    requested_model = raw.get("model") if isinstance(raw, dict) else None
    body = proxy_service.prepare_openai_body(raw)
    if body.get("stream"):
        relay = await proxy_service.openai_chat_stream(body, requested_model=requested_model)
        return StreamingResponse(relay.iter_bytes(), media_type="text/event-stream", headers=STREAM_HEADERS)
    return await proxy_service.openai_chat(body)


@router.get("/api/v0/models")
async def list_models_v0(proxy_service: ProxyServiceDep) -> Any:
    """Full model records"""
    models = await proxy_service.list_models()
    return {"object": "list", "data": [model.model_dump(exclude_none=True) for model in models]}
