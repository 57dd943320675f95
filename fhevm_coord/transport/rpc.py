# fhevm_coord/transport/rpc.py
"""
fhevm_coord Transport: JSON-RPC Side Channel

Plain JSON-RPC 2.0 over HTTP POST, used for out-of-band calls to the
development node (relayer metadata).

Architecture:
    NetworkParameterResolver → JSONRPCClient → HTTPTransport → Node

    1. Client builds a JSON-RPC request (fixed id, no params by default)
    2. Transport POSTs the JSON body and returns the raw response bytes
    3. Client parses the envelope and returns `result`

Transports:
    AiohttpTransport: real HTTP via aiohttp
    MockHTTPTransport: records requests, replays queued responses (tests)

Usage:
    client = JSONRPCClient("http://localhost:8545")
    result = await client.call("fhevm_relayer_metadata")

Version: 0.1.0
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import aiohttp

from ..config import JSONRPC_VERSION, get_logger
from ..errors import (
    MalformedMetadataError,
    RPCResponseError,
    UnreachableEndpointError,
)


logger = get_logger("rpc")


JSON_HEADERS = {"content-type": "application/json"}


# =============================================================================
# Request/Response Types
# =============================================================================

@dataclass
class RPCRequest:
    """JSON-RPC request."""
    method: str
    params: List[Any] = field(default_factory=list)
    id: Union[int, str] = 1
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-RPC dict."""
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class RPCResponse:
    """JSON-RPC response."""
    id: Union[int, str, None]
    result: Any = None
    error: Optional[Dict[str, Any]] = None
    jsonrpc: str = JSONRPC_VERSION

    @property
    def is_error(self) -> bool:
        """Check if response is an error."""
        return self.error is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RPCResponse:
        """Parse from dict."""
        return cls(
            id=data.get("id"),
            result=data.get("result"),
            error=data.get("error"),
            jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
        )

    @classmethod
    def from_bytes(cls, body: bytes) -> RPCResponse:
        """
        Parse a raw response body.

        Raises:
            MalformedMetadataError: If the body is not a JSON object
        """
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedMetadataError(f"Response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedMetadataError(
                f"Response is not a JSON object: {type(data).__name__}"
            )
        return cls.from_dict(data)


# =============================================================================
# HTTP Transport
# =============================================================================

class HTTPTransport(ABC):
    """Abstract HTTP transport for RPC calls."""

    @abstractmethod
    async def post(self, url: str, data: bytes, headers: Dict[str, str]) -> bytes:
        """
        Send POST request and return the response body.

        Raises:
            UnreachableEndpointError: On connection failure or non-2xx status
        """
        pass


class AiohttpTransport(HTTPTransport):
    """
    aiohttp-backed transport.

    No timeout by default: a hung node keeps the caller suspended until the
    caller imposes its own (e.g. asyncio.wait_for).
    """

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post(self, url: str, data: bytes, headers: Dict[str, str]) -> bytes:
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(url, data=data, headers=headers) as resp:
                    body = await resp.read()
                    if not 200 <= resp.status < 300:
                        raise UnreachableEndpointError(
                            url, f"HTTP {resp.status}", status=resp.status
                        )
                    return body
        except aiohttp.ClientError as e:
            raise UnreachableEndpointError(url, str(e) or type(e).__name__) from e


class MockHTTPTransport(HTTPTransport):
    """Mock HTTP transport for testing."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._response_queue: List[Union[bytes, int, Exception]] = []

    def queue_response(self, response: Union[bytes, Dict[str, Any]]) -> None:
        """Queue a 2xx response body (bytes or JSON-serializable dict)."""
        if isinstance(response, dict):
            response = json.dumps(response).encode()
        self._response_queue.append(response)

    def queue_status(self, status: int) -> None:
        """Queue a non-2xx HTTP status."""
        self._response_queue.append(status)

    def queue_error(self, error: Exception) -> None:
        """Queue a connection-level failure."""
        self._response_queue.append(error)

    async def post(self, url: str, data: bytes, headers: Dict[str, str]) -> bytes:
        """Record request and return queued response."""
        self.requests.append({
            "url": url,
            "data": data,
            "headers": headers,
        })
        if not self._response_queue:
            raise UnreachableEndpointError(url, "no response queued")

        response = self._response_queue.pop(0)
        if isinstance(response, Exception):
            raise UnreachableEndpointError(url, str(response)) from response
        if isinstance(response, int):
            raise UnreachableEndpointError(url, f"HTTP {response}", status=response)
        return response


# =============================================================================
# JSONRPCClient
# =============================================================================

class JSONRPCClient:
    """Minimal JSON-RPC 2.0 client over an HTTPTransport."""

    def __init__(
        self,
        endpoint: str,
        transport: Optional[HTTPTransport] = None,
    ):
        """
        Initialize client.

        Args:
            endpoint: RPC endpoint URL
            transport: HTTP transport (default: AiohttpTransport)
        """
        self._endpoint = endpoint
        self._transport = transport or AiohttpTransport()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def call(
        self,
        method: str,
        params: Optional[List[Any]] = None,
        request_id: Union[int, str] = 1,
    ) -> Any:
        """
        Make a single RPC call.

        Args:
            method: RPC method name
            params: Method parameters (default: [])
            request_id: JSON-RPC id

        Returns:
            `result` member of the response

        Raises:
            UnreachableEndpointError: Transport failure
            MalformedMetadataError: Body is not a JSON object
            RPCResponseError: Endpoint returned a JSON-RPC error
        """
        request = RPCRequest(method=method, params=params or [], id=request_id)

        logger.debug(f"POST {self._endpoint} method={method}")
        body = await self._transport.post(
            self._endpoint,
            request.to_json().encode(),
            dict(JSON_HEADERS),
        )

        response = RPCResponse.from_bytes(body)
        if response.is_error:
            error = response.error if isinstance(response.error, dict) else {}
            raise RPCResponseError(
                message=error.get("message", "Unknown error"),
                code=error.get("code", -32000),
                data=error.get("data"),
            )
        return response.result
