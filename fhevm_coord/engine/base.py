# fhevm_coord/engine/base.py
"""
fhevm_coord Engine: Capability Interface

The encryption engine is an opaque, network-scoped capability built from
resolved NetworkParameters. The coordinator only ever talks to it through
this fixed operation set:

    encrypt_input       plaintext integers → bound ciphertext handles + proof
    create_eip712       typed message authorizing user decryption
    generate_keypair    client keypair for re-encryption
    user_decrypt        signed request → plaintexts for handles

Any concrete library satisfying EngineHandle is substitutable.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import (
    Any, Awaitable, Callable, Dict, List, Sequence, Tuple, TYPE_CHECKING,
)

from ..errors import ProtocolError

if TYPE_CHECKING:
    from ..registry.resolver import NetworkParameters


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class Keypair:
    """
    Client keypair used only for decryption requests.

    Attributes:
        public_key: 0x-prefixed hex public key
        private_key: 0x-prefixed hex private key
    """
    public_key: str
    private_key: str

    def to_json(self) -> str:
        """Serialize for storage."""
        return json.dumps({"publicKey": self.public_key, "privateKey": self.private_key})

    @classmethod
    def from_json(cls, raw: str) -> Keypair:
        """
        Parse a stored keypair.

        Raises:
            ProtocolError: If the stored value is not a keypair
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"Stored keypair is not JSON: {e}") from e
        if (
            not isinstance(data, dict)
            or not isinstance(data.get("publicKey"), str)
            or not isinstance(data.get("privateKey"), str)
        ):
            raise ProtocolError("Stored keypair lacks publicKey/privateKey")
        return cls(public_key=data["publicKey"], private_key=data["privateKey"])

    def __repr__(self) -> str:
        return f"Keypair(public_key={self.public_key[:10]}..., private_key=<hidden>)"


@dataclass(frozen=True)
class EncryptedInput:
    """
    Ciphertexts bound to one (contract, user) pair.

    Attributes:
        handles: One 32-byte handle per logical field, in insertion order
        input_proof: Proof consumed by the chain-side input verifier
        contract_address: Bound contract
        user_address: Bound user
    """
    handles: Tuple[bytes, ...]
    input_proof: bytes
    contract_address: str
    user_address: str

    @property
    def handle_hexes(self) -> List[str]:
        """Handles as 0x hex strings (transaction arguments)."""
        return ["0x" + h.hex() for h in self.handles]

    @property
    def proof_hex(self) -> str:
        return "0x" + self.input_proof.hex()

    def to_call_args(self) -> List[str]:
        """Argument list for a contract call: handles..., inputProof."""
        return self.handle_hexes + [self.proof_hex]


@dataclass(frozen=True)
class HandleRef:
    """A ciphertext handle paired with the contract that exposed it."""
    handle: str
    contract_address: str


# =============================================================================
# Capability Interface
# =============================================================================

class EngineHandle(ABC):
    """
    Network-scoped encryption capability.

    Scoped to exactly one (chain_id, NetworkParameters) pair, both fixed for
    the handle's lifetime.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        pass

    @property
    @abstractmethod
    def parameters(self) -> NetworkParameters:
        pass

    @abstractmethod
    def encrypt_input(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[int],
        bit_width: int,
    ) -> EncryptedInput:
        """Encrypt values into handles bound to (contract, user)."""
        pass

    @abstractmethod
    def create_eip712(
        self,
        public_key: str,
        contract_addresses: Sequence[str],
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, Any]:
        """Build the user-decryption typed message (unsigned)."""
        pass

    @abstractmethod
    def generate_keypair(self) -> Keypair:
        pass

    @abstractmethod
    async def user_decrypt(
        self,
        handles: Sequence[HandleRef],
        private_key: str,
        public_key: str,
        signature: str,
        contract_addresses: Sequence[str],
        user_address: str,
        start_timestamp: int,
        duration_days: int,
    ) -> Dict[str, int]:
        """
        Decrypt handles the user is authorized for.

        Raises:
            AuthorizationError: Signature / window / contract mismatch
            UnknownHandleError: Handle not decryptable for this user
        """
        pass


# (chain_id, rpc_url, gateway_url, parameters) -> EngineHandle
EngineFactory = Callable[[int, str, str, "NetworkParameters"], Awaitable[EngineHandle]]
