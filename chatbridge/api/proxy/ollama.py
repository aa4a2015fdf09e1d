"""
Ollama Compatible Proxy Interface

Serves the subset of the Ollama API that chat clients rely on, backed by
the configured upstream.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from chatbridge.api.deps import ProxyServiceDep
from chatbridge.api.proxy.anthropic import read_json_body
from chatbridge.common.errors import AppError
from chatbridge.converters.ollama import ollama_timestamp

router = APIRouter(tags=["Ollama Proxy"])

OLLAMA_BANNER = "Ollama is running"


@router.get("/")
async def root() -> PlainTextResponse:
    return PlainTextResponse(OLLAMA_BANNER)


@router.head("/")
async def root_head() -> Response:
    return Response(status_code=200, media_type="text/plain")


@router.get("/api/tags")
async def tags(proxy_service: ProxyServiceDep) -> Any:
    """List backend models in Ollama's /api/tags shape"""
    models = await proxy_service.list_models()
    modified_at = ollama_timestamp()
    return {
        "models": [
            {
                "name": model.id,
                "model": model.id,
                "modified_at": modified_at,
                "size": model.size,
                "digest": model.digest or model.id,
            }
            for model in models
        ]
    }


@router.post("/api/show")
async def show() -> Any:
    """Stub model metadata; clients only check that the model exists"""
    return {
        "license": "STUB License",
        "modelfile": "",
        "parameters": "",
        "template": "",
        "modified_at": ollama_timestamp(),
        "details": {
            "format": "proxy",
            "family": "proxy",
            "families": ["proxy"],
            "parameter_size": "",
            "quantization_level": "",
        },
        "model_info": {},
        "capabilities": ["completion", "tools"],
    }


@router.post("/api/chat")
async def chat(request: Request, proxy_service: ProxyServiceDep) -> Any:
    """
    Ollama chat endpoint

    Streams NDJSON unless the request sets "stream": false.
    """
    try:
        body = await read_json_body(request)
        chat_request = proxy_service.parse_ollama_request(body)
        if proxy_service.ollama_should_stream(chat_request):
            relay = await proxy_service.ollama_chat_stream(chat_request)
            return StreamingResponse(relay.iter_bytes(), media_type="application/x-ndjson")
        return await proxy_service.ollama_chat(chat_request)
    except AppError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_ollama_dict())
