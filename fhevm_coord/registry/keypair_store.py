# fhevm_coord/registry/keypair_store.py
"""
fhevm_coord Registry: Keypair Store

Client-held keypair used only for decryption requests, persisted in a
key-value storage under a fixed key ("fhevm-keypair").

Invariant: at most one keypair per storage profile. A stored keypair is
never regenerated; concurrent first-time callers serialize on a lock so
check-generate-store behaves as one critical section.

Storage backends:
    MemoryStorage: process-local (tests, ephemeral sessions)
    JSONFileStorage: durable JSON file, survives restarts

Usage:
    store = KeypairStore(JSONFileStorage("~/.fhevm/keys.json"))
    keypair = await store.ensure_keypair(engine)
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from ..config import KEYPAIR_STORAGE_KEY, get_logger
from ..engine.base import EngineHandle, Keypair
from ..errors import EngineNotReadyError, ProtocolError


logger = get_logger("keypair")


# =============================================================================
# Storage Backends
# =============================================================================

class KeyValueStorage(ABC):
    """Minimal string key-value storage (localStorage semantics)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MemoryStorage(KeyValueStorage):
    """In-memory storage."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JSONFileStorage(KeyValueStorage):
    """
    Durable storage in a single JSON object file.

    Writes go to a temp file in the same directory, then os.replace, so a
    crash never leaves a half-written file.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            raise ProtocolError(f"Storage file {self._path} is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProtocolError(f"Storage file {self._path} is not a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".fhevm-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self._path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


# =============================================================================
# KeypairStore
# =============================================================================

class KeypairStore:
    """Get-or-create access to the persisted client keypair."""

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        key: str = KEYPAIR_STORAGE_KEY,
    ):
        """
        Initialize store.

        Args:
            storage: Backend (default: MemoryStorage)
            key: Fixed storage key
        """
        self._storage = storage if storage is not None else MemoryStorage()
        self._key = key
        self._lock = asyncio.Lock()

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    def load(self) -> Optional[Keypair]:
        """
        Read the stored keypair, if any.

        Raises:
            ProtocolError: Stored value is corrupt
        """
        raw = self._storage.get(self._key)
        if raw is None:
            return None
        return Keypair.from_json(raw)

    async def ensure_keypair(self, engine: Optional[EngineHandle]) -> Keypair:
        """
        Return the stored keypair, generating and persisting one if absent.

        Args:
            engine: Engine used to generate a keypair when none is stored

        Raises:
            EngineNotReadyError: Generation needed but no engine
            ProtocolError: Stored value is corrupt
        """
        existing = self.load()
        if existing is not None:
            return existing

        async with self._lock:
            # Another caller may have generated while we waited
            existing = self.load()
            if existing is not None:
                return existing

            if engine is None:
                raise EngineNotReadyError()
            keypair = engine.generate_keypair()
            self._storage.set(self._key, keypair.to_json())
            logger.info(f"Generated and stored new keypair under '{self._key}'")
            return keypair

    def clear(self) -> None:
        """Remove the stored keypair (authorizations signed for it become useless)."""
        self._storage.delete(self._key)
        logger.info(f"Cleared keypair '{self._key}'")
