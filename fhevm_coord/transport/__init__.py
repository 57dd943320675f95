# fhevm_coord/transport/__init__.py
"""
fhevm_coord Transport Layer

Out-of-band JSON-RPC calls to the node.

Usage:
    from fhevm_coord.transport import JSONRPCClient, MockHTTPTransport

    transport = MockHTTPTransport()
    transport.queue_response({"jsonrpc": "2.0", "id": 1, "result": {...}})
    client = JSONRPCClient("http://localhost:8545", transport=transport)
"""

from .rpc import (
    AiohttpTransport,
    HTTPTransport,
    JSONRPCClient,
    MockHTTPTransport,
    RPCRequest,
    RPCResponse,
)

__all__ = [
    "AiohttpTransport",
    "HTTPTransport",
    "JSONRPCClient",
    "MockHTTPTransport",
    "RPCRequest",
    "RPCResponse",
]
