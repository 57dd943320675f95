# fhevm_coord/coordinator/decrypt.py
"""
fhevm_coord Coordinator: Decryption Requests

Combines handles returned by a contract read, the wallet signature over an
AuthorizationArtifact and the client keypair to obtain plaintexts.

The window (start_timestamp, duration_seconds) MUST be the one the
signature was produced for; defaults are "now" and 365 days, which only
match an authorization built in the same second.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..addresses import handle_to_hex, normalize_address
from ..config import DEFAULT_DURATION_SECONDS, SECONDS_PER_DAY, get_logger
from ..engine.base import EngineHandle, HandleRef
from ..errors import AuthorizationWindowError, EngineNotReadyError, ProtocolError
from ..registry.keypair_store import KeypairStore
from .authorization import AuthorizationArtifact, duration_to_days


logger = get_logger("decrypt")


Handle = Union[str, bytes]


def _signature_hex(signature: Union[str, bytes]) -> str:
    if isinstance(signature, (bytes, bytearray)):
        return "0x" + bytes(signature).hex()
    if isinstance(signature, str) and signature:
        return signature if signature.startswith("0x") else "0x" + signature
    raise ProtocolError("Signature must be non-empty hex or bytes")


@dataclass(frozen=True)
class DecryptionRequest:
    """One user-decryption round trip."""
    handles: Tuple[HandleRef, ...]
    contract_address: str
    user_address: str
    signature: str
    start_timestamp: int
    duration_seconds: int

    @property
    def duration_days(self) -> int:
        return duration_to_days(self.duration_seconds)


class DecryptionRequester:
    """Requests plaintexts for handles the user is authorized for."""

    def __init__(
        self,
        engine: Optional[EngineHandle],
        keypair_store: KeypairStore,
        default_duration_seconds: int = DEFAULT_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._engine = engine
        self._keypairs = keypair_store
        self._default_duration = default_duration_seconds
        self._clock = clock

    def build_request(
        self,
        contract_address: str,
        user_address: str,
        signature: Union[str, bytes],
        handles: Sequence[Handle],
        start_timestamp: Optional[int] = None,
        duration_seconds: Optional[int] = None,
    ) -> DecryptionRequest:
        """
        Validate inputs and pair every handle with the contract.

        Raises:
            InvalidAddressError: Malformed address
            ProtocolError: Malformed handle or signature
            AuthorizationWindowError: Window is not a positive whole number of days
        """
        contract = normalize_address(contract_address, "contract address")
        user = normalize_address(user_address, "user address")
        refs = tuple(
            HandleRef(handle=handle_to_hex(h), contract_address=contract) for h in handles
        )
        start = int(self._clock()) if start_timestamp is None else int(start_timestamp)
        duration = self._default_duration if duration_seconds is None else int(duration_seconds)
        # Only whole-day windows are ever signed
        if duration <= 0 or duration % SECONDS_PER_DAY:
            raise AuthorizationWindowError(
                f"Window of {duration}s cannot match a signed authorization"
            )

        return DecryptionRequest(
            handles=refs,
            contract_address=contract,
            user_address=user,
            signature=_signature_hex(signature),
            start_timestamp=start,
            duration_seconds=duration,
        )

    async def request_decryption(
        self,
        contract_address: str,
        user_address: str,
        signature: Union[str, bytes],
        handles: Sequence[Handle],
        start_timestamp: Optional[int] = None,
        duration_seconds: Optional[int] = None,
    ) -> Dict[str, int]:
        """
        Decrypt handles exposed by contract_address to user_address.

        Args:
            contract_address: Contract that returned the handles
            user_address: Account that signed the authorization
            signature: Wallet signature over the typed message
            handles: Ciphertext handles (hex or bytes)
            start_timestamp: Signed window start (default: now)
            duration_seconds: Signed window length (default: 365 days)

        Returns:
            Dict mapping 0x handle hex → plaintext integer

        Raises:
            EngineNotReadyError: No engine
            UnauthorizedSignatureError / AuthorizationWindowError: Not authorized
            UnknownHandleError: Handle not decryptable by this user
        """
        if self._engine is None:
            raise EngineNotReadyError()
        request = self.build_request(
            contract_address, user_address, signature, handles,
            start_timestamp, duration_seconds,
        )
        return await self.execute(request)

    async def request_with_artifact(
        self,
        artifact: AuthorizationArtifact,
        user_address: str,
        signature: Union[str, bytes],
        handles: Sequence[Handle],
    ) -> Dict[str, int]:
        """Decrypt using the exact window of a previously built artifact."""
        return await self.request_decryption(
            artifact.contract_address, user_address, signature, handles,
            start_timestamp=artifact.start_timestamp,
            duration_seconds=artifact.duration_seconds,
        )

    async def execute(self, request: DecryptionRequest) -> Dict[str, int]:
        """Send a prepared request through the engine."""
        if self._engine is None:
            raise EngineNotReadyError()
        if not request.handles:
            return {}

        keypair = await self._keypairs.ensure_keypair(self._engine)
        contracts: List[str] = [request.contract_address]

        logger.debug(
            f"Requesting decryption of {len(request.handles)} handle(s) "
            f"for {request.user_address} on {request.contract_address}"
        )
        return await self._engine.user_decrypt(
            list(request.handles),
            keypair.private_key,
            keypair.public_key,
            request.signature,
            contracts,
            request.user_address,
            request.start_timestamp,
            request.duration_days,
        )
