# fhevm_coord/adapters/wallet.py
"""
fhevm_coord Adapters: Wallet Signing Boundary

The coordinator never signs: an AuthorizationArtifact's typed message is
handed to a wallet, which returns a signature. This module defines that
boundary and two implementations.

Signers:
    ProviderSigner: forwards eth_signTypedData_v4 to an EIP-1193 provider
    LocalAccountSigner: signs with a local eth_account key (development)

Usage:
    signer = LocalAccountSigner.create()
    artifact = await controller.build_authorization(contract)
    result = await signer.sign_typed_data(artifact.typed_message)
    values = await controller.decrypt_handles(
        contract, signer.address, result.signature, handles,
        artifact.start_timestamp, artifact.duration_seconds,
    )
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..addresses import normalize_address
from ..config import get_logger
from ..engine.eip712 import signable
from ..errors import CoordinatorError


logger = get_logger("wallet")


ETH_SIGN_TYPED_DATA = "eth_signTypedData_v4"


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class SignResult:
    """Signature result."""
    signature: str  # 0x-prefixed r || s || v
    signer: str


class SignatureRejectedError(CoordinatorError):
    """Wallet refused or failed to sign."""
    pass


# =============================================================================
# Interfaces
# =============================================================================

class EthereumProvider(ABC):
    """
    Abstract Ethereum provider interface.

    Represents window.ethereum in a browser, or any EIP-1193 bridge.
    """

    @abstractmethod
    async def request(self, method: str, params: Any = None) -> Any:
        """Send JSON-RPC request."""
        pass


class WalletSigner(ABC):
    """Something that signs EIP-712 typed data for one address."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def sign_typed_data(self, typed_message: Dict[str, Any]) -> SignResult:
        """
        Sign a full typed-data document.

        Raises:
            SignatureRejectedError: If the wallet declines
        """
        pass


# =============================================================================
# Implementations
# =============================================================================

class ProviderSigner(WalletSigner):
    """Signs through an EIP-1193 provider (eth_signTypedData_v4)."""

    def __init__(self, provider: EthereumProvider, address: str):
        self._provider = provider
        self._address = normalize_address(address, "signer address")

    @property
    def address(self) -> str:
        return self._address

    async def sign_typed_data(self, typed_message: Dict[str, Any]) -> SignResult:
        try:
            signature = await self._provider.request(
                ETH_SIGN_TYPED_DATA,
                [self._address, json.dumps(typed_message)],
            )
        except CoordinatorError:
            raise
        except Exception as e:
            raise SignatureRejectedError(f"Wallet did not sign: {e}") from e

        if not isinstance(signature, str) or not signature.startswith("0x"):
            raise SignatureRejectedError(f"Unexpected signature value: {signature!r}")
        return SignResult(signature=signature, signer=self._address)


class LocalAccountSigner(WalletSigner):
    """Signs with an in-process secp256k1 key."""

    def __init__(self, account: LocalAccount):
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> LocalAccountSigner:
        return cls(Account.from_key(private_key))

    @classmethod
    def create(cls, extra_entropy: Optional[str] = None) -> LocalAccountSigner:
        """Fresh random account."""
        return cls(Account.create(extra_entropy or ""))

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, typed_message: Dict[str, Any]) -> SignResult:
        signed = self._account.sign_message(signable(typed_message))
        signature = signed.signature.hex()
        if not signature.startswith("0x"):
            signature = "0x" + signature
        logger.debug(f"Signed typed data as {self.address}")
        return SignResult(signature=signature, signer=self.address)
