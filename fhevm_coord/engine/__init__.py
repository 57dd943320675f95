# fhevm_coord/engine/__init__.py
"""
fhevm_coord Engine Layer

Opaque encryption capability and its types.

Components:
    EngineHandle: Capability interface (encrypt_input, create_eip712,
                  generate_keypair, user_decrypt)
    MockEngine / MockCoprocessor: Development-network implementation
"""

from .base import (
    EncryptedInput,
    EngineFactory,
    EngineHandle,
    HandleRef,
    Keypair,
)

from .eip712 import (
    EIP712Domain,
    build_user_decrypt_message,
    canonical_bytes,
    signable,
)

from .mock import (
    MockCoprocessor,
    MockEngine,
    mock_engine_factory,
)

__all__ = [
    # Base
    "EncryptedInput",
    "EngineFactory",
    "EngineHandle",
    "HandleRef",
    "Keypair",
    # EIP-712
    "EIP712Domain",
    "build_user_decrypt_message",
    "canonical_bytes",
    "signable",
    # Mock
    "MockCoprocessor",
    "MockEngine",
    "mock_engine_factory",
]
