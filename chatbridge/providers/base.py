"""
Upstream Provider Client Base Class

Defines the interface shared by every upstream dialect and the HTTP plumbing
they have in common. Subclasses supply paths, request shaping and response
normalization; callers always see OpenAI Chat Completions shapes.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, Union

import httpx

from chatbridge.common.errors import UpstreamError
from chatbridge.common.framing import NDJSONDecoder, SSEDecoder
from chatbridge.config import BackendConfig

logger = logging.getLogger(__name__)


class StreamSignal(str, Enum):
    """Returned by downstream writes: keep reading upstream or stop"""

    CONTINUE = "continue"
    STOP = "stop"


ChunkCallback = Callable[[str], Awaitable[StreamSignal]]


@dataclass
class ProviderResponse:
    """
    Provider Response Data Class

    Encapsulates response information from the upstream provider.
    """

    # HTTP status code
    status_code: int
    # Response headers
    headers: dict[str, str] = field(default_factory=dict)
    # Response body (parsed JSON when possible)
    body: Any = None
    # Error message
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        """Whether the response is successful"""
        return 200 <= self.status_code < 300

    @property
    def is_server_error(self) -> bool:
        """Whether it is a server error (status code >= 500)"""
        return self.status_code >= 500


def join_url(base_url: str, path: str) -> str:
    """
    Join base URL and path without doubling a shared prefix

    "https://host/v1" + "v1/models" -> "https://host/v1/models"
    """
    cleaned_base = base_url.rstrip("/")
    cleaned_path = path.lstrip("/")
    for prefix in ("api/v1/", "v1/", "api/"):
        if cleaned_path.startswith(prefix) and cleaned_base.endswith("/" + prefix.rstrip("/")):
            cleaned_path = cleaned_path[len(prefix):]
            break
    return f"{cleaned_base}/{cleaned_path}"


def parse_body(content: bytes) -> Any:
    """JSON body when parsable, text otherwise"""
    text = content.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class ProviderClient(ABC):
    """
    Upstream Provider Client Abstract Base Class

    Methods:
    - list_models: GET the backend model listing, never raises
    - chat: unary chat completion, raises UpstreamError on failure
    - iter_chat_stream: async iterator of OpenAI chunk payloads ending with [DONE]
    - chat_stream: callback-driven stream the callback can stop early
    """

    def __init__(
        self,
        config: BackendConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize client

        Args:
            config: Backend configuration
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.config = config
        self._transport = transport

    # ============ dialect hooks ============

    @property
    @abstractmethod
    def chat_path(self) -> str:
        """Chat endpoint path relative to the base URL"""

    @property
    @abstractmethod
    def models_path(self) -> str:
        """Model listing path relative to the base URL"""

    @abstractmethod
    def prepare_chat_body(self, body: dict[str, Any], stream: bool) -> dict[str, Any]:
        """Shape an OpenAI chat body for this upstream"""

    @abstractmethod
    def parse_models(self, body: Any) -> list[dict[str, Any]]:
        """Extract raw model entries (each with an "id") from a listing body"""

    def normalize_response(self, body: Any) -> Any:
        """Normalize a unary chat response to OpenAI shape"""
        return body

    def new_stream_decoder(self) -> Union[SSEDecoder, NDJSONDecoder]:
        return SSEDecoder()

    def new_stream_normalizer(self, body: dict[str, Any]) -> Callable[[str], list[str]]:
        """Per-stream function mapping one upstream payload to OpenAI chunk payloads"""
        return lambda payload: [payload]

    # ============ HTTP ============

    def url(self, path: str) -> str:
        return join_url(self.config.base_url, path)

    def _prepare_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key_configured:
            headers["Authorization"] = f"Bearer {self.config.api_key.strip()}"
        return headers

    def _http_client(self, read_timeout: float) -> httpx.AsyncClient:
        timeout = httpx.Timeout(read_timeout, connect=self.config.connect_timeout)
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def list_models(self) -> ProviderResponse:
        """
        Fetch the upstream model listing

        Transport failures are reported as 504 (timeout) or 502 responses
        so callers can decide on retries from the status alone.
        """
        url = self.url(self.models_path)
        try:
            async with self._http_client(self.config.read_timeout) as client:
                response = await client.get(url, headers=self._prepare_headers())
                return ProviderResponse(
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    body=parse_body(response.content),
                )
        except httpx.TimeoutException as e:
            return ProviderResponse(status_code=504, error=f"Request timeout: {str(e)}")
        except httpx.RequestError as e:
            return ProviderResponse(status_code=502, error=f"Request error: {str(e)}")

    async def chat(self, body: dict[str, Any]) -> Any:
        """
        Send a unary chat request

        Returns:
            The response body normalized to OpenAI shape

        Raises:
            UpstreamError: transport failure or non-2xx status
        """
        prepared = self.prepare_chat_body(body, stream=False)
        url = self.url(self.chat_path)
        logger.debug("Upstream request: url=%s body=%s", url, json.dumps(prepared, ensure_ascii=False))
        try:
            async with self._http_client(self.config.read_timeout) as client:
                response = await client.post(url, headers=self._prepare_headers(), json=prepared)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Request timeout: {str(e)}", code="upstream_timeout", status_code=504)
        except httpx.RequestError as e:
            raise UpstreamError(f"Request error: {str(e)}", code="upstream_unreachable", status_code=502)

        response_body = parse_body(response.content)
        if not response.is_success:
            logger.warning("Upstream returned HTTP %s for %s", response.status_code, url)
            raise UpstreamError.from_response(response.status_code, response_body)
        return self.normalize_response(response_body)

    async def iter_chat_stream(self, body: dict[str, Any]) -> AsyncGenerator[str, None]:
        """
        Stream a chat request

        Yields OpenAI chunk payload strings in arrival order. Closing the
        generator closes the upstream connection.

        Raises:
            UpstreamError: transport failure or non-2xx status
        """
        prepared = self.prepare_chat_body(body, stream=True)
        url = self.url(self.chat_path)
        logger.debug("Upstream stream request: url=%s body=%s", url, json.dumps(prepared, ensure_ascii=False))
        try:
            async with self._http_client(self.config.stream_read_timeout) as client:
                async with client.stream("POST", url, headers=self._prepare_headers(), json=prepared) as response:
                    if not response.is_success:
                        error_body = parse_body(await response.aread())
                        logger.warning("Upstream stream returned HTTP %s for %s", response.status_code, url)
                        raise UpstreamError.from_response(response.status_code, error_body)

                    decoder = self.new_stream_decoder()
                    normalize = self.new_stream_normalizer(prepared)
                    async for chunk in response.aiter_bytes():
                        for payload in decoder.feed(chunk):
                            for normalized in normalize(payload):
                                yield normalized
                    for payload in decoder.flush():
                        for normalized in normalize(payload):
                            yield normalized
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Request timeout: {str(e)}", code="upstream_timeout", status_code=504)
        except httpx.RequestError as e:
            raise UpstreamError(f"Request error: {str(e)}", code="upstream_unreachable", status_code=502)

    async def chat_stream(self, body: dict[str, Any], on_chunk: ChunkCallback) -> bool:
        """
        Stream a chat request into a callback

        Args:
            body: OpenAI chat body
            on_chunk: Awaited once per payload; returning StreamSignal.STOP ends the read loop

        Returns:
            bool: True when the upstream stream was read to the end
        """
        async with aclosing(self.iter_chat_stream(body)) as payloads:
            async for payload in payloads:
                if await on_chunk(payload) is StreamSignal.STOP:
                    logger.info("Downstream stopped reading, closing upstream stream")
                    return False
        return True
