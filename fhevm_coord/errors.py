# fhevm_coord/errors.py
"""
fhevm_coord: Error Taxonomy

Every failure the coordinator surfaces is a CoordinatorError subclass so
callers can inspect the category without string matching.

    CoordinatorError
    ├── TransportError          RPC endpoint unreachable / non-2xx
    │   └── UnreachableEndpointError
    ├── ProtocolError           malformed data from or for the protocol
    │   ├── MalformedMetadataError
    │   ├── RPCResponseError
    │   ├── InvalidAddressError
    │   ├── ValueOutOfRangeError
    │   └── InputVerificationError
    ├── StateError              operation invoked in the wrong lifecycle state
    │   ├── EngineNotReadyError
    │   └── StaleEngineError
    ├── AuthorizationError      signature / window / contract mismatch
    │   ├── UnauthorizedSignatureError
    │   └── AuthorizationWindowError
    └── UnknownHandleError      handle not decryptable by this requester
"""

from __future__ import annotations

from typing import Any, Optional


class CoordinatorError(Exception):
    """Base coordinator error."""
    pass


# =============================================================================
# Transport
# =============================================================================

class TransportError(CoordinatorError):
    """Side-channel transport failure."""
    pass


class UnreachableEndpointError(TransportError):
    """RPC endpoint could not be reached or answered with a non-2xx status."""
    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Cannot reach {url}: {reason}")


# =============================================================================
# Protocol
# =============================================================================

class ProtocolError(CoordinatorError):
    """Malformed protocol data."""
    pass


class MalformedMetadataError(ProtocolError):
    """Relayer metadata response lacks the required addresses."""
    pass


class RPCResponseError(ProtocolError):
    """JSON-RPC error object returned by the endpoint."""
    def __init__(self, message: str, code: int = -32000, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class InvalidAddressError(ProtocolError, ValueError):
    """Not a 20-byte hex account identifier."""
    def __init__(self, address: Any, role: str = "address"):
        self.address = address
        self.role = role
        super().__init__(f"Invalid {role}: {address!r}")


class ValueOutOfRangeError(ProtocolError, ValueError):
    """Plaintext does not fit the declared bit width."""
    def __init__(self, value: Any, bit_width: int):
        self.value = value
        self.bit_width = bit_width
        super().__init__(f"Value {value!r} does not fit in uint{bit_width}")


class InputVerificationError(ProtocolError):
    """Encrypted input rejected by the chain-side verifier."""
    pass


# =============================================================================
# State
# =============================================================================

class StateError(CoordinatorError):
    """Operation invoked in the wrong lifecycle state."""
    pass


class EngineNotReadyError(StateError):
    """No engine handle (not READY, or unsupported network)."""
    def __init__(self, message: str = "FHEVM instance not ready"):
        super().__init__(message)


class StaleEngineError(StateError):
    """Network identity changed while the operation was in flight."""
    pass


# =============================================================================
# Authorization
# =============================================================================

class AuthorizationError(CoordinatorError):
    """Decryption authorization rejected."""
    pass


class UnauthorizedSignatureError(AuthorizationError):
    """Signature does not verify for the stated window/contract/user."""
    pass


class AuthorizationWindowError(AuthorizationError):
    """Request falls outside the authorization validity window."""
    pass


# =============================================================================
# Handles
# =============================================================================

class UnknownHandleError(CoordinatorError):
    """Handle not decryptable: unknown, not owned, or not allowed."""
    def __init__(self, handle: str, reason: str = "unknown handle"):
        self.handle = handle
        self.reason = reason
        super().__init__(f"Cannot decrypt {handle}: {reason}")
