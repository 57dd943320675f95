# fhevm_coord/registry/__init__.py
"""
fhevm_coord Registry Layer

Network trust anchors and the client keypair.

Components:
    NetworkParameterResolver: relayer metadata → NetworkParameters
    KeypairStore: persisted client keypair (get-or-create)
"""

from .resolver import (
    NetworkParameterResolver,
    NetworkParameters,
)

from .keypair_store import (
    JSONFileStorage,
    KeypairStore,
    KeyValueStorage,
    MemoryStorage,
)

__all__ = [
    # Resolver
    "NetworkParameterResolver",
    "NetworkParameters",
    # Keypair
    "JSONFileStorage",
    "KeypairStore",
    "KeyValueStorage",
    "MemoryStorage",
]
