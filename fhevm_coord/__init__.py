# fhevm_coord/__init__.py
"""
fhevm_coord: Encrypted-Input / Decryption-Authorization Coordinator

Client-side coordinator for FHEVM contracts:
- Relayer metadata discovery (ACL / verifier addresses) over JSON-RPC
- Encrypted inputs bound to (contract, user)
- Durable client keypair for re-encryption
- Contract-scoped, time-bounded EIP-712 decryption authorizations
- User decryption of handles returned by contracts

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │  fhevm_coord                                            │
    │  ├── config.py         # Constants, CoordinatorConfig   │
    │  ├── errors.py         # Error taxonomy                 │
    │  ├── transport/        # JSON-RPC side channel          │
    │  ├── registry/         # Network params, keypair store  │
    │  ├── engine/           # Capability interface, mock     │
    │  ├── coordinator/      # Lifecycle, encrypt, authorize, │
    │  │                     # decrypt                        │
    │  ├── adapters/         # Wallet signing boundary        │
    │  └── survey.py         # Satisfaction survey facade     │
    └─────────────────────────────────────────────────────────┘

Quick Start:
    from fhevm_coord import LifecycleController, LocalAccountSigner

    async with LifecycleController() as controller:
        await controller.switch_network(31337)
        enc = controller.encrypt_inputs(contract, user, 7)
        artifact = await controller.build_authorization(contract)
        sig = await signer.sign_typed_data(artifact.typed_message)
        values = await controller.decrypt_handles(
            contract, user, sig.signature, handles,
            artifact.start_timestamp, artifact.duration_seconds,
        )
"""

__version__ = "0.1.0"

# =============================================================================
# Configuration & Errors
# =============================================================================

from .config import (
    CoordinatorConfig,
    configure_logging,
    SUPPORTED_CHAIN_ID,
    DEFAULT_RPC_URL,
    RELAYER_METADATA_METHOD,
    KEYPAIR_STORAGE_KEY,
    DEFAULT_DURATION_SECONDS,
    INPUT_BIT_WIDTH,
)

from .errors import (
    CoordinatorError,
    TransportError,
    UnreachableEndpointError,
    ProtocolError,
    MalformedMetadataError,
    RPCResponseError,
    InvalidAddressError,
    ValueOutOfRangeError,
    InputVerificationError,
    StateError,
    EngineNotReadyError,
    StaleEngineError,
    AuthorizationError,
    UnauthorizedSignatureError,
    AuthorizationWindowError,
    UnknownHandleError,
)

# =============================================================================
# Transport & Registry
# =============================================================================

from .transport import (
    AiohttpTransport,
    HTTPTransport,
    JSONRPCClient,
    MockHTTPTransport,
)

from .registry import (
    NetworkParameterResolver,
    NetworkParameters,
    KeypairStore,
    KeyValueStorage,
    MemoryStorage,
    JSONFileStorage,
)

# =============================================================================
# Engine
# =============================================================================

from .engine import (
    EngineHandle,
    EngineFactory,
    EncryptedInput,
    HandleRef,
    Keypair,
    MockCoprocessor,
    MockEngine,
    mock_engine_factory,
)

# =============================================================================
# Coordinator
# =============================================================================

from .coordinator import (
    LifecycleController,
    LifecycleState,
    LifecycleStatus,
    InputEncryptor,
    AuthorizationArtifact,
    AuthorizationBuilder,
    DecryptionRequest,
    DecryptionRequester,
)

# =============================================================================
# Adapters & Survey
# =============================================================================

from .adapters import (
    WalletSigner,
    LocalAccountSigner,
    ProviderSigner,
    SignResult,
    SignatureRejectedError,
)

from .survey import (
    SurveyClient,
    SurveyAggregate,
    InvalidSurveyInputError,
)

# =============================================================================
# Public API
# =============================================================================
__all__ = [
    "__version__",

    # === Config ===
    "CoordinatorConfig",
    "configure_logging",
    "SUPPORTED_CHAIN_ID",
    "DEFAULT_RPC_URL",
    "RELAYER_METADATA_METHOD",
    "KEYPAIR_STORAGE_KEY",
    "DEFAULT_DURATION_SECONDS",
    "INPUT_BIT_WIDTH",

    # === Errors ===
    "CoordinatorError",
    "TransportError",
    "UnreachableEndpointError",
    "ProtocolError",
    "MalformedMetadataError",
    "RPCResponseError",
    "InvalidAddressError",
    "ValueOutOfRangeError",
    "InputVerificationError",
    "StateError",
    "EngineNotReadyError",
    "StaleEngineError",
    "AuthorizationError",
    "UnauthorizedSignatureError",
    "AuthorizationWindowError",
    "UnknownHandleError",

    # === Transport ===
    "AiohttpTransport",
    "HTTPTransport",
    "JSONRPCClient",
    "MockHTTPTransport",

    # === Registry ===
    "NetworkParameterResolver",
    "NetworkParameters",
    "KeypairStore",
    "KeyValueStorage",
    "MemoryStorage",
    "JSONFileStorage",

    # === Engine ===
    "EngineHandle",
    "EngineFactory",
    "EncryptedInput",
    "HandleRef",
    "Keypair",
    "MockCoprocessor",
    "MockEngine",
    "mock_engine_factory",

    # === Coordinator ===
    "LifecycleController",
    "LifecycleState",
    "LifecycleStatus",
    "InputEncryptor",
    "AuthorizationArtifact",
    "AuthorizationBuilder",
    "DecryptionRequest",
    "DecryptionRequester",

    # === Adapters ===
    "WalletSigner",
    "LocalAccountSigner",
    "ProviderSigner",
    "SignResult",
    "SignatureRejectedError",

    # === Survey ===
    "SurveyClient",
    "SurveyAggregate",
    "InvalidSurveyInputError",
]
