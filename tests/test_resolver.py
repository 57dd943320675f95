# tests/test_resolver.py
"""Tests for the JSON-RPC side channel and NetworkParameterResolver."""

import asyncio
import json

import pytest
from web3 import Web3

from fhevm_coord.errors import (
    MalformedMetadataError,
    RPCResponseError,
    TransportError,
    UnreachableEndpointError,
)
from fhevm_coord.registry import NetworkParameterResolver, NetworkParameters
from fhevm_coord.transport import JSONRPCClient, MockHTTPTransport
from fhevm_coord.transport.rpc import RPCRequest, RPCResponse


RPC_URL = "http://localhost:8545"


# =============================================================================
# JSON-RPC
# =============================================================================

class TestRPCTypes:

    def test_request_shape(self):
        assert RPCRequest("fhevm_relayer_metadata").to_dict() == {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "fhevm_relayer_metadata",
            "params": [],
        }

    def test_response_from_bytes(self):
        resp = RPCResponse.from_bytes(b'{"jsonrpc":"2.0","id":1,"result":"0x1"}')
        assert resp.result == "0x1"
        assert not resp.is_error

    @pytest.mark.parametrize("body", [b"<html>", b"[1, 2]", b"\xff\xfe"])
    def test_response_not_object(self, body):
        with pytest.raises(MalformedMetadataError):
            RPCResponse.from_bytes(body)


class TestJSONRPCClient:

    def test_call_posts_json(self):
        transport = MockHTTPTransport()
        transport.queue_response({"jsonrpc": "2.0", "id": 1, "result": 42})
        client = JSONRPCClient(RPC_URL, transport=transport)

        assert asyncio.run(client.call("eth_chainId")) == 42

        sent = transport.requests[0]
        assert sent["url"] == RPC_URL
        assert sent["headers"] == {"content-type": "application/json"}
        assert json.loads(sent["data"]) == {
            "jsonrpc": "2.0", "id": 1, "method": "eth_chainId", "params": [],
        }

    def test_rpc_error(self):
        transport = MockHTTPTransport()
        transport.queue_response({
            "jsonrpc": "2.0", "id": 1,
            "error": {"code": -32601, "message": "Method not found"},
        })
        client = JSONRPCClient(RPC_URL, transport=transport)

        with pytest.raises(RPCResponseError, match="Method not found") as exc:
            asyncio.run(client.call("fhevm_relayer_metadata"))
        assert exc.value.code == -32601

    def test_non_2xx(self):
        transport = MockHTTPTransport()
        transport.queue_status(503)
        client = JSONRPCClient(RPC_URL, transport=transport)

        with pytest.raises(UnreachableEndpointError) as exc:
            asyncio.run(client.call("eth_chainId"))
        assert exc.value.status == 503
        assert exc.value.url == RPC_URL

    def test_connection_failure(self):
        transport = MockHTTPTransport()
        transport.queue_error(ConnectionRefusedError("refused"))
        client = JSONRPCClient(RPC_URL, transport=transport)

        with pytest.raises(TransportError, match="refused"):
            asyncio.run(client.call("eth_chainId"))


# =============================================================================
# NetworkParameters
# =============================================================================

class TestNetworkParameters:

    def test_from_metadata_checksums(self, metadata):
        params = NetworkParameters.from_metadata(metadata)
        assert params.acl_address == Web3.to_checksum_address(metadata["ACLAddress"])
        assert params.input_verifier_address.lower() == metadata["InputVerifierAddress"]
        assert params.kms_verifier_address.lower() == metadata["KMSVerifierAddress"]

    def test_round_trip_field_names(self, metadata):
        wire = NetworkParameters.from_metadata(metadata).to_metadata()
        assert set(wire) == {"ACLAddress", "InputVerifierAddress", "KMSVerifierAddress"}

    @pytest.mark.parametrize("result", [None, {}, "0x", [1, 2, 3]])
    def test_rejects_empty_result(self, result):
        with pytest.raises(MalformedMetadataError):
            NetworkParameters.from_metadata(result)

    def test_names_missing_fields(self, metadata):
        del metadata["KMSVerifierAddress"]
        with pytest.raises(MalformedMetadataError, match="KMSVerifierAddress"):
            NetworkParameters.from_metadata(metadata)

    def test_rejects_malformed_address(self, metadata):
        metadata["ACLAddress"] = "0x1234"
        with pytest.raises(MalformedMetadataError, match="ACLAddress"):
            NetworkParameters.from_metadata(metadata)


# =============================================================================
# Resolver
# =============================================================================

class TestNetworkParameterResolver:

    def test_resolve(self, transport, metadata_response, parameters):
        transport.queue_response(metadata_response)
        resolver = NetworkParameterResolver(transport)

        assert asyncio.run(resolver.resolve(RPC_URL)) == parameters

        assert len(transport.requests) == 1
        assert json.loads(transport.requests[0]["data"]) == {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "fhevm_relayer_metadata",
            "params": [],
        }

    def test_missing_result(self, transport):
        transport.queue_response({"jsonrpc": "2.0", "id": 1})
        resolver = NetworkParameterResolver(transport)

        with pytest.raises(MalformedMetadataError):
            asyncio.run(resolver.resolve(RPC_URL))

    def test_missing_address(self, transport, metadata_response):
        del metadata_response["result"]["InputVerifierAddress"]
        transport.queue_response(metadata_response)
        resolver = NetworkParameterResolver(transport)

        with pytest.raises(MalformedMetadataError, match="InputVerifierAddress"):
            asyncio.run(resolver.resolve(RPC_URL))

    def test_unreachable_no_retry(self, transport, metadata_response):
        transport.queue_status(500)
        transport.queue_response(metadata_response)
        resolver = NetworkParameterResolver(transport)

        with pytest.raises(UnreachableEndpointError):
            asyncio.run(resolver.resolve(RPC_URL))
        assert len(transport.requests) == 1

    def test_custom_method(self, transport, metadata_response):
        transport.queue_response(metadata_response)
        resolver = NetworkParameterResolver(transport, method="custom_metadata")

        asyncio.run(resolver.resolve(RPC_URL))
        assert json.loads(transport.requests[0]["data"])["method"] == "custom_metadata"
