# fhevm_coord/engine/mock.py
"""
fhevm_coord Engine: Mock Engine for the Development Network

An EngineHandle for the local Hardhat node (chain 31337), where the
homomorphic coprocessor is mocked. Ciphertexts are sealed to the mock
coprocessor's public key and carry their (chain, ACL, contract, user)
binding inside the sealed payload, so the chain-side verifier rejects any
substitution.

Architecture:
    Client (MockEngine)                 Chain side (MockCoprocessor)
    ───────────────────                 ───────────────────────────
    encrypt_input ── handles+proof ───→ verify_input (binding check, ACL)
                                        add / allow   (contract logic)
    user_decrypt ── signed request ───→ reencrypt     (ACL check)
                 ←── sealed to client keypair ──

Usage:
    coprocessor = MockCoprocessor()
    controller = LifecycleController(
        config,
        engine_factory=mock_engine_factory(coprocessor),
    )

Version: 0.1.0
"""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set

from eth_account import Account
from nacl.exceptions import CryptoError
from nacl.public import PrivateKey, PublicKey, SealedBox
from web3 import Web3

from ..addresses import handle_to_hex, normalize_address
from ..config import SECONDS_PER_DAY, SUPPORTED_CHAIN_ID, get_logger
from ..errors import (
    AuthorizationWindowError,
    InputVerificationError,
    ProtocolError,
    UnauthorizedSignatureError,
    UnknownHandleError,
)
from ..registry.resolver import NetworkParameters
from .base import EncryptedInput, EngineFactory, EngineHandle, HandleRef, Keypair
from .eip712 import (
    DOMAIN_NAME,
    DOMAIN_VERSION,
    EIP712Domain,
    build_user_decrypt_message,
    signable,
)


logger = get_logger("engine.mock")


# =============================================================================
# Constants
# =============================================================================

HANDLE_VERSION = 0

# Encrypted integer type codes by bit width
TYPE_CODES: Dict[int, int] = {8: 2, 16: 3, 32: 4, 64: 5, 128: 6, 256: 8}

# Sealed payload: chain_id(8) + acl(20) + contract(20) + user(20)
#                 + index(1) + bit_width(2) + value(32)
PAYLOAD_FORMAT = ">Q20s20s20sBH32s"
PAYLOAD_SIZE = struct.calcsize(PAYLOAD_FORMAT)


def _addr_bytes(address: str) -> bytes:
    return bytes.fromhex(address[2:])


def _derive_handle(ciphertext: bytes, index: int, chain_id: int, bit_width: int) -> bytes:
    """hash(21) + index(1) + chain_id(8) + type(1) + version(1)."""
    digest = bytes(Web3.keccak(ciphertext + bytes([index])))[:21]
    return (
        digest
        + bytes([index])
        + chain_id.to_bytes(8, "big")
        + bytes([TYPE_CODES.get(bit_width, 0xFF), HANDLE_VERSION])
    )


def _pack_proof(ciphertexts: Sequence[bytes]) -> bytes:
    out = bytearray([len(ciphertexts)])
    for ct in ciphertexts:
        out += struct.pack(">H", len(ct)) + ct
    return bytes(out)


def _unpack_proof(proof: bytes) -> List[bytes]:
    if not proof:
        raise InputVerificationError("Empty input proof")
    count, offset, cts = proof[0], 1, []
    for _ in range(count):
        if offset + 2 > len(proof):
            raise InputVerificationError("Truncated input proof")
        (length,) = struct.unpack_from(">H", proof, offset)
        offset += 2
        if offset + length > len(proof):
            raise InputVerificationError("Truncated input proof")
        cts.append(proof[offset:offset + length])
        offset += length
    return cts


# =============================================================================
# Chain Side
# =============================================================================

@dataclass
class _Ciphertext:
    value: int
    bit_width: int
    allowed: Set[str] = field(default_factory=set)


class MockCoprocessor:
    """
    Chain-side stand-in for the input verifier, ACL and KMS.

    Holds plaintexts keyed by handle. Contracts gain access to inputs they
    verify; users gain access only through allow().
    """

    def __init__(
        self,
        chain_id: int = SUPPORTED_CHAIN_ID,
        parameters: Optional[NetworkParameters] = None,
    ):
        self.chain_id = chain_id
        self.parameters = parameters
        self._key = PrivateKey.generate()
        self._store: Dict[str, _Ciphertext] = {}

    @property
    def public_key(self) -> bytes:
        """Network encryption key inputs are sealed to."""
        return bytes(self._key.public_key)

    def __contains__(self, handle) -> bool:
        return handle_to_hex(handle) in self._store

    # -------------------------------------------------------------------------
    # Input verification
    # -------------------------------------------------------------------------

    def verify_input(
        self,
        handle,
        input_proof: bytes,
        contract_address: str,
        user_address: str,
    ) -> str:
        """
        Verify an external input as the consuming contract would.

        Args:
            handle: Handle submitted as a call argument
            input_proof: Proof submitted alongside
            contract_address: Contract consuming the input
            user_address: Transaction sender

        Returns:
            Canonical handle hex (now usable by the contract)

        Raises:
            InputVerificationError: Proof invalid or bound elsewhere
        """
        handle_hex = handle_to_hex(handle)
        contract = normalize_address(contract_address, "contract address")
        user = normalize_address(user_address, "user address")

        box = SealedBox(self._key)
        for index, ciphertext in enumerate(_unpack_proof(input_proof)):
            try:
                payload = box.decrypt(ciphertext)
            except CryptoError as e:
                raise InputVerificationError(f"Ciphertext {index} does not open") from e
            if len(payload) != PAYLOAD_SIZE:
                raise InputVerificationError(f"Ciphertext {index} has bad payload size")

            (chain_id, acl, bound_contract, bound_user,
             slot, bit_width, value) = struct.unpack(PAYLOAD_FORMAT, payload)

            derived = "0x" + _derive_handle(ciphertext, slot, chain_id, bit_width).hex()
            if derived != handle_hex:
                continue

            if chain_id != self.chain_id:
                raise InputVerificationError(f"Input bound to chain {chain_id}")
            if self.parameters and acl != _addr_bytes(self.parameters.acl_address):
                raise InputVerificationError("Input bound to another ACL")
            if bound_contract != _addr_bytes(contract):
                raise InputVerificationError("Input bound to another contract")
            if bound_user != _addr_bytes(user):
                raise InputVerificationError("Input bound to another user")

            entry = self._store.setdefault(
                handle_hex,
                _Ciphertext(value=int.from_bytes(value, "big"), bit_width=bit_width),
            )
            entry.allowed.add(contract)
            logger.debug(f"Verified input {handle_hex[:18]}... for {contract}")
            return handle_hex

        raise InputVerificationError(f"Handle {handle_hex[:18]}... not covered by proof")

    # -------------------------------------------------------------------------
    # Contract logic
    # -------------------------------------------------------------------------

    def _require_allowed(self, handle_hex: str, account: str) -> _Ciphertext:
        entry = self._store.get(handle_hex)
        if entry is None:
            raise UnknownHandleError(handle_hex)
        if account not in entry.allowed:
            raise UnknownHandleError(handle_hex, f"{account} is not allowed")
        return entry

    def add(self, handle_a, handle_b, contract_address: str) -> str:
        """Homomorphic addition performed by a contract; result owned by it."""
        contract = normalize_address(contract_address, "contract address")
        a_hex, b_hex = handle_to_hex(handle_a), handle_to_hex(handle_b)
        a = self._require_allowed(a_hex, contract)
        b = self._require_allowed(b_hex, contract)
        if a.bit_width != b.bit_width:
            raise ProtocolError("Operand bit widths differ")

        result = (a.value + b.value) % (1 << a.bit_width)
        digest = bytes(Web3.keccak(bytes.fromhex(a_hex[2:] + b_hex[2:]) + b"add"))
        result_hex = "0x" + digest.hex()
        self._store[result_hex] = _Ciphertext(
            value=result, bit_width=a.bit_width, allowed={contract},
        )
        return result_hex

    def allow(self, handle, account: str) -> None:
        """Grant an account access (FHE.allow)."""
        handle_hex = handle_to_hex(handle)
        if handle_hex not in self._store:
            raise UnknownHandleError(handle_hex)
        self._store[handle_hex].allowed.add(normalize_address(account))

    # -------------------------------------------------------------------------
    # KMS
    # -------------------------------------------------------------------------

    def reencrypt(self, ref: HandleRef, user_address: str, public_key: str) -> bytes:
        """
        Seal a plaintext to the requesting client's public key.

        Raises:
            UnknownHandleError: Unknown handle, or user/contract not allowed
        """
        handle_hex = handle_to_hex(ref.handle)
        entry = self._require_allowed(handle_hex, normalize_address(user_address))
        if normalize_address(ref.contract_address) not in entry.allowed:
            raise UnknownHandleError(handle_hex, "contract is not allowed")
        try:
            recipient = PublicKey(bytes.fromhex(public_key[2:]))
        except (ValueError, TypeError) as e:
            raise ProtocolError(f"Invalid client public key: {e}") from e
        return SealedBox(recipient).encrypt(entry.value.to_bytes(32, "big"))


# =============================================================================
# Client Side
# =============================================================================

class MockEngine(EngineHandle):
    """EngineHandle backed by a MockCoprocessor."""

    def __init__(
        self,
        chain_id: int,
        parameters: NetworkParameters,
        coprocessor: MockCoprocessor,
        clock: Callable[[], float] = time.time,
    ):
        self._chain_id = chain_id
        self._parameters = parameters
        self._coprocessor = coprocessor
        self._network_key = PublicKey(coprocessor.public_key)
        self._clock = clock

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def parameters(self) -> NetworkParameters:
        return self._parameters

    @property
    def coprocessor(self) -> MockCoprocessor:
        return self._coprocessor

    # -------------------------------------------------------------------------
    # Encryption
    # -------------------------------------------------------------------------

    def encrypt_input(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[int],
        bit_width: int,
    ) -> EncryptedInput:
        contract = normalize_address(contract_address, "contract address")
        user = normalize_address(user_address, "user address")
        if not 0 < len(values) <= 255:
            raise ProtocolError(f"Input must hold 1..255 values, got {len(values)}")

        box = SealedBox(self._network_key)
        handles: List[bytes] = []
        ciphertexts: List[bytes] = []
        for index, value in enumerate(values):
            payload = struct.pack(
                PAYLOAD_FORMAT,
                self._chain_id,
                _addr_bytes(self._parameters.acl_address),
                _addr_bytes(contract),
                _addr_bytes(user),
                index,
                bit_width,
                int(value).to_bytes(32, "big"),
            )
            ciphertext = bytes(box.encrypt(payload))
            ciphertexts.append(ciphertext)
            handles.append(_derive_handle(ciphertext, index, self._chain_id, bit_width))

        return EncryptedInput(
            handles=tuple(handles),
            input_proof=_pack_proof(ciphertexts),
            contract_address=contract,
            user_address=user,
        )

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    def _domain(self) -> EIP712Domain:
        return EIP712Domain(
            name=DOMAIN_NAME,
            version=DOMAIN_VERSION,
            chain_id=self._chain_id,
            verifying_contract=self._parameters.kms_verifier_address,
        )

    def create_eip712(
        self,
        public_key: str,
        contract_addresses: Sequence[str],
        start_timestamp: int,
        duration_days: int,
    ):
        return build_user_decrypt_message(
            self._domain(), public_key, contract_addresses, start_timestamp, duration_days,
        )

    def generate_keypair(self) -> Keypair:
        key = PrivateKey.generate()
        return Keypair(
            public_key="0x" + bytes(key.public_key).hex(),
            private_key="0x" + bytes(key).hex(),
        )

    # -------------------------------------------------------------------------
    # Decryption
    # -------------------------------------------------------------------------

    def _verify_signature(
        self,
        public_key: str,
        signature: str,
        contract_addresses: Sequence[str],
        user_address: str,
        start_timestamp: int,
        duration_days: int,
    ) -> None:
        typed = self.create_eip712(public_key, contract_addresses, start_timestamp, duration_days)
        try:
            signer = Account.recover_message(signable(typed), signature=signature)
        except Exception as e:
            raise UnauthorizedSignatureError(f"Signature does not recover: {e}") from e
        if signer != user_address:
            raise UnauthorizedSignatureError(
                f"Signature recovers to {signer}, not {user_address}"
            )

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
        user = normalize_address(user_address, "user address")
        contracts = [normalize_address(c, "contract address") for c in contract_addresses]

        self._verify_signature(
            public_key, signature, contracts, user, start_timestamp, duration_days,
        )

        now = int(self._clock())
        end = start_timestamp + duration_days * SECONDS_PER_DAY
        if not start_timestamp <= now < end:
            raise AuthorizationWindowError(
                f"Request at {now} outside window [{start_timestamp}, {end})"
            )

        for ref in handles:
            if normalize_address(ref.contract_address) not in contracts:
                raise UnauthorizedSignatureError(
                    f"Contract {ref.contract_address} not covered by the authorization"
                )

        box = SealedBox(PrivateKey(bytes.fromhex(private_key[2:])))
        results: Dict[str, int] = {}
        for ref in handles:
            sealed = self._coprocessor.reencrypt(ref, user, public_key)
            try:
                plaintext = box.decrypt(sealed)
            except CryptoError as e:
                raise ProtocolError(f"Re-encrypted value does not open: {e}") from e
            results[handle_to_hex(ref.handle)] = int.from_bytes(plaintext, "big")
        return results


def mock_engine_factory(
    coprocessor: Optional[MockCoprocessor] = None,
    clock: Callable[[], float] = time.time,
) -> EngineFactory:
    """
    Build an EngineFactory producing MockEngines.

    Args:
        coprocessor: Shared chain-side mock (default: one per factory)
        clock: Time source for authorization windows
    """
    shared: List[MockCoprocessor] = [coprocessor] if coprocessor else []

    async def factory(
        chain_id: int,
        rpc_url: str,
        gateway_url: str,
        parameters: NetworkParameters,
    ) -> MockEngine:
        if not shared:
            shared.append(MockCoprocessor(chain_id, parameters))
        logger.debug(f"Creating mock engine for chain {chain_id} via {gateway_url}")
        return MockEngine(chain_id, parameters, shared[0], clock=clock)

    return factory
