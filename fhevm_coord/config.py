# fhevm_coord/config.py
"""
fhevm_coord: Configuration

Protocol constants and the runtime configuration for the coordinator.

Constants mirror what the local development network (Hardhat, chain 31337)
expects from a client: the relayer metadata RPC method, the keypair storage
key and the authorization window policy.

Environment overrides (all optional):
    FHEVM_CHAIN_ID            Supported chain id (default: 31337)
    FHEVM_RPC_URL             JSON-RPC endpoint (default: http://localhost:8545)
    FHEVM_GATEWAY_URL         Gateway endpoint (default: same as RPC URL)
    FHEVM_RELAYER_METHOD      Metadata method (default: fhevm_relayer_metadata)
    FHEVM_KEYPAIR_KEY         Storage key for the keypair (default: fhevm-keypair)
    FHEVM_KEYPAIR_PATH        JSON file for durable keypair storage
    FHEVM_AUTH_DURATION_DAYS  Authorization window in days (default: 365)
    FHEVM_LOG_LEVEL           Logging level name (default: INFO)

Usage:
    from fhevm_coord.config import CoordinatorConfig

    config = CoordinatorConfig.from_env()
    controller = LifecycleController(config)

Version: 0.1.0
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional


# =============================================================================
# Network
# =============================================================================

# Hardhat local node, the only network with a mock coprocessor
SUPPORTED_CHAIN_ID = 31337

DEFAULT_RPC_URL = "http://localhost:8545"

# Reserved side-channel method exposing ACL / verifier addresses
RELAYER_METADATA_METHOD = "fhevm_relayer_metadata"

JSONRPC_VERSION = "2.0"


# =============================================================================
# Keypair Storage
# =============================================================================

KEYPAIR_STORAGE_KEY = "fhevm-keypair"


# =============================================================================
# Encryption / Authorization Policy
# =============================================================================

# Declared bit width of encrypted inputs
INPUT_BIT_WIDTH = 32

# Auxiliary constant sent with every value (counter increment)
AUX_INCREMENT = 1

SECONDS_PER_DAY = 86_400

# Policy value, subject to review (see DESIGN.md)
DEFAULT_DURATION_DAYS = 365
DEFAULT_DURATION_SECONDS = DEFAULT_DURATION_DAYS * SECONDS_PER_DAY  # 31,536,000


# =============================================================================
# Logging
# =============================================================================

LOGGER_NAMESPACE = "fhevm-coord"
DEFAULT_LOG_LEVEL = "INFO"


# =============================================================================
# Runtime Configuration
# =============================================================================

@dataclass(frozen=True)
class CoordinatorConfig:
    """
    Coordinator runtime configuration.

    Attributes:
        chain_id: The single supported network identity
        rpc_url: JSON-RPC endpoint for relayer metadata
        gateway_url: Gateway endpoint handed to the engine (defaults to rpc_url)
        relayer_method: Reserved RPC method name for relayer metadata
        keypair_storage_key: Fixed storage key for the client keypair
        keypair_path: JSON file for durable keypair storage (None = in-memory)
        authorization_duration_seconds: Window of built authorizations
        input_bit_width: Bit width of encrypted integer inputs
        log_level: Logging level name applied by configure_logging()
    """
    chain_id: int = SUPPORTED_CHAIN_ID
    rpc_url: str = DEFAULT_RPC_URL
    gateway_url: Optional[str] = None
    relayer_method: str = RELAYER_METADATA_METHOD
    keypair_storage_key: str = KEYPAIR_STORAGE_KEY
    keypair_path: Optional[str] = None
    authorization_duration_seconds: int = DEFAULT_DURATION_SECONDS
    input_bit_width: int = INPUT_BIT_WIDTH
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        if self.authorization_duration_seconds <= 0:
            raise ValueError("authorization_duration_seconds must be positive")
        if self.authorization_duration_seconds % SECONDS_PER_DAY:
            raise ValueError("authorization_duration_seconds must be whole days")
        if not 1 <= self.input_bit_width <= 256:
            raise ValueError(f"Unsupported input bit width: {self.input_bit_width}")

    @property
    def effective_gateway_url(self) -> str:
        """Gateway URL, falling back to the RPC URL."""
        return self.gateway_url or self.rpc_url

    def with_overrides(self, **changes) -> CoordinatorConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> CoordinatorConfig:
        """
        Build configuration from FHEVM_* environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            CoordinatorConfig with defaults for unset variables
        """
        env = os.environ if environ is None else environ

        duration_days = env.get("FHEVM_AUTH_DURATION_DAYS")
        duration_seconds = (
            int(duration_days) * SECONDS_PER_DAY
            if duration_days else DEFAULT_DURATION_SECONDS
        )

        return cls(
            chain_id=int(env.get("FHEVM_CHAIN_ID", SUPPORTED_CHAIN_ID)),
            rpc_url=env.get("FHEVM_RPC_URL", DEFAULT_RPC_URL),
            gateway_url=env.get("FHEVM_GATEWAY_URL") or None,
            relayer_method=env.get("FHEVM_RELAYER_METHOD", RELAYER_METADATA_METHOD),
            keypair_storage_key=env.get("FHEVM_KEYPAIR_KEY", KEYPAIR_STORAGE_KEY),
            keypair_path=env.get("FHEVM_KEYPAIR_PATH") or None,
            authorization_duration_seconds=duration_seconds,
            log_level=env.get("FHEVM_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_logging(config: Optional[CoordinatorConfig] = None) -> None:
    """Apply the configured level to the package loggers (opt-in)."""
    level = (config or CoordinatorConfig()).log_level
    logging.basicConfig(level=level)
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)
