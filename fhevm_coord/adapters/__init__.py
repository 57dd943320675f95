# fhevm_coord/adapters/__init__.py
"""
fhevm_coord Adapters Layer

Wallet signing boundary.
"""

from .wallet import (
    ETH_SIGN_TYPED_DATA,
    EthereumProvider,
    LocalAccountSigner,
    ProviderSigner,
    SignatureRejectedError,
    SignResult,
    WalletSigner,
)

__all__ = [
    "ETH_SIGN_TYPED_DATA",
    "EthereumProvider",
    "LocalAccountSigner",
    "ProviderSigner",
    "SignatureRejectedError",
    "SignResult",
    "WalletSigner",
]
