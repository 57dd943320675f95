# fhevm_coord/coordinator/authorization.py
"""
fhevm_coord Coordinator: Decryption Authorization

Builds the unsigned, contract-scoped, time-bounded typed message a wallet
signs to authorize user decryption.

Flow:
    1. Ensure the client keypair exists (KeypairStore)
    2. start = now, duration = policy window (365 days by default)
    3. engine.create_eip712(publicKey, [contract], start, durationDays)
    4. Caller hands artifact.typed_message to the wallet for signing
    5. The signature plus the SAME start/duration go to the decryption request

Identical (publicKey, contract, start, duration) give byte-identical
messages, so the decrypting side can reproduce what was signed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from eth_account.messages import SignableMessage

from ..addresses import normalize_address
from ..config import DEFAULT_DURATION_SECONDS, SECONDS_PER_DAY, get_logger
from ..engine.base import EngineHandle
from ..engine.eip712 import canonical_bytes, signable
from ..errors import EngineNotReadyError, ProtocolError
from ..registry.keypair_store import KeypairStore


logger = get_logger("authorization")


def duration_to_days(duration_seconds: int) -> int:
    """
    Convert a window length to the whole days the typed message carries.

    Raises:
        ProtocolError: Non-positive or not a whole number of days
    """
    if duration_seconds <= 0 or duration_seconds % SECONDS_PER_DAY:
        raise ProtocolError(
            f"Authorization duration must be a positive whole number of days, "
            f"got {duration_seconds}s"
        )
    return duration_seconds // SECONDS_PER_DAY


@dataclass(frozen=True)
class AuthorizationArtifact:
    """
    Unsigned decryption authorization.

    Attributes:
        typed_message: EIP-712 document for eth_signTypedData_v4
        start_timestamp: Window start (unix seconds)
        duration_seconds: Window length
        contract_address: The single contract in scope
        public_key: Client public key the grant is for
    """
    typed_message: Dict[str, Any]
    start_timestamp: int
    duration_seconds: int
    contract_address: str
    public_key: str

    @property
    def duration_days(self) -> int:
        return self.duration_seconds // SECONDS_PER_DAY

    @property
    def expires_at(self) -> int:
        """First instant no longer covered."""
        return self.start_timestamp + self.duration_seconds

    def is_valid_at(self, timestamp: float) -> bool:
        return self.start_timestamp <= timestamp < self.expires_at

    def message_bytes(self) -> bytes:
        """Canonical serialization of the typed message."""
        return canonical_bytes(self.typed_message)

    def signable_message(self) -> SignableMessage:
        """EIP-712 signable form (for local signers)."""
        return signable(self.typed_message)


class AuthorizationBuilder:
    """Produces AuthorizationArtifacts for one engine."""

    def __init__(
        self,
        engine: Optional[EngineHandle],
        keypair_store: KeypairStore,
        duration_seconds: int = DEFAULT_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            engine: Engine handle (None while not READY)
            keypair_store: Source of the client keypair
            duration_seconds: Window policy (whole days)
            clock: Time source
        """
        self._engine = engine
        self._keypairs = keypair_store
        self._duration_days = duration_to_days(duration_seconds)
        self._duration_seconds = duration_seconds
        self._clock = clock

    async def build(
        self,
        contract_address: str,
        start_timestamp: Optional[int] = None,
    ) -> AuthorizationArtifact:
        """
        Build an authorization scoped to exactly one contract.

        Args:
            contract_address: Contract whose values may be decrypted
            start_timestamp: Window start (default: now)

        Raises:
            EngineNotReadyError: No engine
            InvalidAddressError: Malformed address
        """
        if self._engine is None:
            raise EngineNotReadyError()
        contract = normalize_address(contract_address, "contract address")
        keypair = await self._keypairs.ensure_keypair(self._engine)

        start = int(self._clock()) if start_timestamp is None else int(start_timestamp)
        typed = self._engine.create_eip712(
            keypair.public_key, [contract], start, self._duration_days,
        )
        logger.debug(
            f"Built authorization for {contract}: start={start} days={self._duration_days}"
        )
        return AuthorizationArtifact(
            typed_message=typed,
            start_timestamp=start,
            duration_seconds=self._duration_seconds,
            contract_address=contract,
            public_key=keypair.public_key,
        )

    async def refresh(
        self,
        artifact: AuthorizationArtifact,
        now: Optional[float] = None,
    ) -> AuthorizationArtifact:
        """
        Return artifact if still usable at now, else re-derive a fresh one.

        Usable means inside its window and issued for the stored keypair.
        """
        current = self._clock() if now is None else now
        stored = self._keypairs.load()
        if (
            artifact.is_valid_at(current)
            and stored is not None
            and stored.public_key == artifact.public_key
        ):
            return artifact
        logger.info(f"Authorization for {artifact.contract_address} no longer usable; rebuilding")
        return await self.build(artifact.contract_address)
