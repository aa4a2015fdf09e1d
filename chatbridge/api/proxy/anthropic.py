"""
Anthropic Compatible Proxy Interface

Provides the Anthropic Messages API endpoints. Errors are answered in the
Anthropic error envelope.
"""

import json
import time
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from chatbridge.api.deps import BackendConfigDep, ProxyServiceDep
from chatbridge.common.errors import AppError, InvalidRequestError

router = APIRouter(tags=["Anthropic Proxy"])

STREAM_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestError("Request body is not valid JSON")


@router.post("/v1/messages")
@router.post("/v1/tool-response")
async def messages(request: Request, proxy_service: ProxyServiceDep) -> Any:
    """
    Anthropic Messages proxy endpoint

    Converts the request to OpenAI Chat Completions, forwards it to the
    configured backend and converts the answer back. Supports normal and
    streaming requests. /v1/tool-response is an alias clients use when
    posting tool results.
    """
    try:
        body = await read_json_body(request)
        message_request = proxy_service.parse_anthropic_request(body)
        if message_request.stream:
            relay = await proxy_service.anthropic_messages_stream(message_request)
            return StreamingResponse(
                relay.iter_bytes(),
                media_type="text/event-stream",
                headers=STREAM_HEADERS,
            )
        return await proxy_service.anthropic_messages(message_request)
    except AppError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_anthropic_dict())


@router.get("/v1/models")
async def list_models(proxy_service: ProxyServiceDep) -> Any:
    """List the configured alias models"""
    return proxy_service.configured_model_listing(created=int(time.time()))


@router.get("/health", tags=["Health"])
async def health_check(config: BackendConfigDep) -> Any:
    """
    Health Check

    Reports the configured backend without contacting it.
    """
    return {
        "status": "ok",
        "timestamp": int(time.time() * 1000),
        "service_type": config.backend_type.value,
        "base_url": config.base_url,
        "api_key_configured": config.api_key_configured,
    }
