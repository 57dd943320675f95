# fhevm_coord/registry/resolver.py
"""
fhevm_coord Registry: Network Parameter Resolver

Resolves the trust-anchor contract addresses (ACL, input verifier, KMS
verifier) of the connected network with a single out-of-band JSON-RPC call.

Request:
    {"jsonrpc": "2.0", "id": 1, "method": "fhevm_relayer_metadata", "params": []}

Expected response:
    {"result": {"ACLAddress": "0x...",
                "InputVerifierAddress": "0x...",
                "KMSVerifierAddress": "0x..."}}

No retries at this layer; failures surface immediately.

Usage:
    resolver = NetworkParameterResolver()
    params = await resolver.resolve("http://localhost:8545")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..addresses import is_address, normalize_address
from ..config import RELAYER_METADATA_METHOD, get_logger
from ..errors import MalformedMetadataError
from ..transport.rpc import HTTPTransport, JSONRPCClient


logger = get_logger("resolver")


# Response field → NetworkParameters attribute
METADATA_FIELDS: Dict[str, str] = {
    "ACLAddress": "acl_address",
    "InputVerifierAddress": "input_verifier_address",
    "KMSVerifierAddress": "kms_verifier_address",
}


@dataclass(frozen=True)
class NetworkParameters:
    """
    Trust anchors of the encryption scheme on one network.

    Attributes:
        acl_address: Access-control list contract
        input_verifier_address: Verifier for encrypted inputs
        kms_verifier_address: Verifier for decryption results
    """
    acl_address: str
    input_verifier_address: str
    kms_verifier_address: str

    @classmethod
    def from_metadata(cls, result: Any) -> NetworkParameters:
        """
        Parse the `result` member of a relayer metadata response.

        Raises:
            MalformedMetadataError: If any address is missing or malformed
        """
        if not result or not isinstance(result, dict):
            raise MalformedMetadataError("Invalid relayer metadata response")

        missing = [k for k in METADATA_FIELDS if not result.get(k)]
        if missing:
            raise MalformedMetadataError(
                f"Relayer metadata lacks {', '.join(missing)}"
            )

        values = {}
        for key, attr in METADATA_FIELDS.items():
            if not is_address(result[key]):
                raise MalformedMetadataError(f"{key} is not an address: {result[key]!r}")
            values[attr] = normalize_address(result[key])
        return cls(**values)

    def to_metadata(self) -> Dict[str, str]:
        """Inverse of from_metadata (wire field names)."""
        return {key: getattr(self, attr) for key, attr in METADATA_FIELDS.items()}


class NetworkParameterResolver:
    """Fetch NetworkParameters from a node's relayer metadata method."""

    def __init__(
        self,
        transport: Optional[HTTPTransport] = None,
        method: str = RELAYER_METADATA_METHOD,
    ):
        """
        Initialize resolver.

        Args:
            transport: HTTP transport (default: AiohttpTransport)
            method: Reserved metadata method name
        """
        self._transport = transport
        self._method = method

    async def resolve(self, rpc_url: str) -> NetworkParameters:
        """
        Resolve parameters for the network behind rpc_url.

        Args:
            rpc_url: JSON-RPC endpoint

        Returns:
            NetworkParameters

        Raises:
            UnreachableEndpointError: Transport failed or non-2xx status
            MalformedMetadataError: Response lacks the required addresses
            RPCResponseError: Endpoint returned a JSON-RPC error
        """
        client = JSONRPCClient(rpc_url, transport=self._transport)
        result = await client.call(self._method, [], request_id=1)
        params = NetworkParameters.from_metadata(result)
        logger.info(
            f"Resolved relayer metadata from {rpc_url}: "
            f"ACL={params.acl_address} KMS={params.kms_verifier_address}"
        )
        return params
