# fhevm_coord/coordinator/lifecycle.py
"""
fhevm_coord Coordinator: Lifecycle Controller

Owns the EngineHandle for the current network identity and exposes
readiness to dependents.

States:
    IDLE ──(supported chain)──→ RESOLVING ──→ READY
      ↑                             │
      └──(unsupported chain)        └──→ FAILED (carries the error)

Every network identity change (including the first) starts a new
resolution attempt with a fresh generation id. The previous in-flight
attempt is cancelled, and any result whose generation is no longer current
is discarded: last writer wins by request order, not completion order.

An unsupported chain id is not an error: the controller stays IDLE with no
engine, and callers treat the missing engine as "unsupported network".

Usage:
    async with LifecycleController(config) as controller:
        status = await controller.switch_network(31337)
        if status.ready:
            enc = controller.encrypt_inputs(contract, user, 7)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, Optional, Sequence, Union

from ..config import CoordinatorConfig, get_logger
from ..engine.base import EncryptedInput, EngineFactory, EngineHandle
from ..engine.mock import mock_engine_factory
from ..errors import EngineNotReadyError, StaleEngineError
from ..registry.keypair_store import JSONFileStorage, KeypairStore, MemoryStorage
from ..registry.resolver import NetworkParameterResolver, NetworkParameters
from .authorization import AuthorizationArtifact, AuthorizationBuilder
from .decrypt import DecryptionRequester
from .encrypt import InputEncryptor


logger = get_logger("lifecycle")


# =============================================================================
# State
# =============================================================================

class LifecycleState(Enum):
    """Engine readiness state."""
    IDLE = auto()
    RESOLVING = auto()
    READY = auto()
    FAILED = auto()


@dataclass(frozen=True)
class LifecycleStatus:
    """Snapshot of readiness for display."""
    state: LifecycleState
    chain_id: Optional[int] = None
    error: Optional[BaseException] = None

    @property
    def ready(self) -> bool:
        return self.state == LifecycleState.READY

    @property
    def loading(self) -> bool:
        return self.state == LifecycleState.RESOLVING


# =============================================================================
# LifecycleController
# =============================================================================

class LifecycleController:
    """Network-scoped owner of the EngineHandle."""

    def __init__(
        self,
        config: Optional[CoordinatorConfig] = None,
        resolver: Optional[NetworkParameterResolver] = None,
        engine_factory: Optional[EngineFactory] = None,
        keypair_store: Optional[KeypairStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize controller.

        Args:
            config: Runtime configuration (default: CoordinatorConfig())
            resolver: Parameter resolver (default: aiohttp-backed)
            engine_factory: Builds the EngineHandle (default: mock engine)
            keypair_store: Keypair store (default: from config.keypair_path)
            clock: Time source for authorization windows
        """
        self._config = config or CoordinatorConfig()
        self._resolver = resolver or NetworkParameterResolver(
            method=self._config.relayer_method,
        )
        self._engine_factory = engine_factory or mock_engine_factory(clock=clock)
        if keypair_store is None:
            storage = (
                JSONFileStorage(self._config.keypair_path)
                if self._config.keypair_path else MemoryStorage()
            )
            keypair_store = KeypairStore(storage, key=self._config.keypair_storage_key)
        self._keypairs = keypair_store
        self._clock = clock

        self._state = LifecycleState.IDLE
        self._chain_id: Optional[int] = None
        self._engine: Optional[EngineHandle] = None
        self._parameters: Optional[NetworkParameters] = None
        self._error: Optional[BaseException] = None

        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> CoordinatorConfig:
        return self._config

    @property
    def keypair_store(self) -> KeypairStore:
        return self._keypairs

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def status(self) -> LifecycleStatus:
        return LifecycleStatus(self._state, self._chain_id, self._error)

    @property
    def ready(self) -> bool:
        return self._state == LifecycleState.READY

    @property
    def loading(self) -> bool:
        return self._state == LifecycleState.RESOLVING

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def chain_id(self) -> Optional[int]:
        return self._chain_id

    @property
    def engine(self) -> Optional[EngineHandle]:
        """Current engine, None unless READY."""
        return self._engine

    @property
    def parameters(self) -> Optional[NetworkParameters]:
        return self._parameters

    @property
    def generation(self) -> int:
        return self._generation

    def require_engine(self) -> EngineHandle:
        """
        Raises:
            EngineNotReadyError: Not READY (resolving, failed, idle or unsupported)
        """
        if self._engine is None:
            raise EngineNotReadyError()
        return self._engine

    # =========================================================================
    # Network Identity
    # =========================================================================

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def on_network_changed(self, chain_id: Optional[int]) -> Optional[asyncio.Task]:
        """
        React to a network identity change. Must run inside an event loop.

        Args:
            chain_id: New chain id (None = disconnected)

        Returns:
            The resolution task, or None for an unsupported network

        Raises:
            RuntimeError: No running event loop (state is left untouched)
        """
        loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation
        self._cancel_pending()

        self._chain_id = chain_id
        self._engine = None
        self._parameters = None
        self._error = None

        if chain_id != self._config.chain_id:
            self._state = LifecycleState.IDLE
            logger.info(f"Chain {chain_id} not supported; encryption disabled")
            return None

        self._state = LifecycleState.RESOLVING
        logger.info(f"Resolving FHEVM engine for chain {chain_id} (generation {generation})")
        self._task = loop.create_task(self._resolve(generation, chain_id))
        return self._task

    async def switch_network(self, chain_id: Optional[int]) -> LifecycleStatus:
        """Change network and wait for that attempt to settle."""
        task = self.on_network_changed(chain_id)
        if task is not None:
            # asyncio.wait does not raise if a newer switch cancels the task
            await asyncio.wait([task])
        return self.status

    async def wait_settled(self) -> LifecycleStatus:
        """Wait for the in-flight resolution (if any) to finish."""
        task = self._task
        if task is not None:
            await asyncio.wait([task])
        return self.status

    async def _resolve(self, generation: int, chain_id: int) -> None:
        rpc_url = self._config.rpc_url
        try:
            params = await self._resolver.resolve(rpc_url)
            if not self._is_current(generation):
                logger.debug(f"Discarding stale metadata (generation {generation})")
                return
            engine = await self._engine_factory(
                chain_id, rpc_url, self._config.effective_gateway_url, params,
            )
        except Exception as e:
            if not self._is_current(generation):
                logger.debug(f"Discarding stale failure (generation {generation}): {e}")
                return
            self._state = LifecycleState.FAILED
            self._error = e
            logger.error(f"Init error for chain {chain_id}: {e}")
            return

        if not self._is_current(generation):
            logger.debug(f"Discarding stale engine (generation {generation})")
            return

        self._engine = engine
        self._parameters = params
        self._state = LifecycleState.READY
        logger.info(f"FHEVM engine ready for chain {chain_id}")

    async def aclose(self) -> None:
        """End the session: cancel in-flight work and drop the engine."""
        self._generation += 1
        task = self._task
        self._cancel_pending()
        if task is not None:
            await asyncio.wait([task])
        self._engine = None
        self._parameters = None
        self._chain_id = None
        self._error = None
        self._state = LifecycleState.IDLE

    async def __aenter__(self) -> LifecycleController:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # =========================================================================
    # Components bound to the current engine
    # =========================================================================

    def encryptor(self) -> InputEncryptor:
        return InputEncryptor(self._engine, bit_width=self._config.input_bit_width)

    def authorization_builder(self) -> AuthorizationBuilder:
        return AuthorizationBuilder(
            self._engine,
            self._keypairs,
            duration_seconds=self._config.authorization_duration_seconds,
            clock=self._clock,
        )

    def decryption_requester(self) -> DecryptionRequester:
        return DecryptionRequester(
            self._engine,
            self._keypairs,
            default_duration_seconds=self._config.authorization_duration_seconds,
            clock=self._clock,
        )

    def _ensure_current(self, generation: int) -> None:
        if not self._is_current(generation):
            raise StaleEngineError(
                "Network changed while the operation was in flight; result discarded"
            )

    # =========================================================================
    # Operations
    # =========================================================================

    def encrypt_inputs(self, contract_address: str, user_address: str, value: int) -> EncryptedInput:
        """Encrypt value and the auxiliary increment for (contract, user)."""
        return self.encryptor().encrypt(contract_address, user_address, value)

    async def build_authorization(self, contract_address: str) -> AuthorizationArtifact:
        """Build an unsigned authorization scoped to contract_address."""
        generation = self._generation
        artifact = await self.authorization_builder().build(contract_address)
        self._ensure_current(generation)
        return artifact

    async def decrypt_handles(
        self,
        contract_address: str,
        user_address: str,
        signature: Union[str, bytes],
        handles: Sequence[Union[str, bytes]],
        start_timestamp: Optional[int] = None,
        duration_seconds: Optional[int] = None,
    ) -> Dict[str, int]:
        """Decrypt handles; results of a superseded engine are discarded."""
        generation = self._generation
        result = await self.decryption_requester().request_decryption(
            contract_address, user_address, signature, handles,
            start_timestamp=start_timestamp,
            duration_seconds=duration_seconds,
        )
        self._ensure_current(generation)
        return result
