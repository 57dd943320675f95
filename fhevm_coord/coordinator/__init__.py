# fhevm_coord/coordinator/__init__.py
"""
fhevm_coord Coordinator Layer

Components:
    LifecycleController: engine init/teardown per network identity
    InputEncryptor: plaintext → bound ciphertext handles
    AuthorizationBuilder: unsigned, contract-scoped typed message
    DecryptionRequester: signed request → plaintexts
"""

from .authorization import (
    AuthorizationArtifact,
    AuthorizationBuilder,
    duration_to_days,
)

from .decrypt import (
    DecryptionRequest,
    DecryptionRequester,
)

from .encrypt import (
    InputEncryptor,
    check_value,
)

from .lifecycle import (
    LifecycleController,
    LifecycleState,
    LifecycleStatus,
)

__all__ = [
    # Authorization
    "AuthorizationArtifact",
    "AuthorizationBuilder",
    "duration_to_days",
    # Decryption
    "DecryptionRequest",
    "DecryptionRequester",
    # Encryption
    "InputEncryptor",
    "check_value",
    # Lifecycle
    "LifecycleController",
    "LifecycleState",
    "LifecycleStatus",
]
